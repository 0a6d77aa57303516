"""Core modules for vidctl."""

from vidctl.core.cancellation import CANCELLED_MESSAGE, CancellationToken
from vidctl.core.client import VideoAPIClient
from vidctl.core.config import CONFIG_DIR, CONFIG_FILE, Config, Profile, UploadSettings
from vidctl.core.exceptions import (
    APIError,
    AuthenticationError,
    BatchInitError,
    ChunkCountMismatch,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    OperationError,
    PartUploadError,
    ResourceNotFoundError,
    RetryExhaustedError,
    UploadCancelledError,
    UploadError,
    UploadFailed,
    UploadVerificationFailed,
    ValidationError,
    VidCtlError,
)
from vidctl.core.logging import LogContext, get_audit_logger, get_logger, setup_logging
from vidctl.core.output import (
    OutputFormat,
    console,
    print_error,
    print_json,
    print_output,
    print_success,
    print_table,
    print_warning,
)
from vidctl.core.validation import (
    validate_batch,
    validate_channel_id,
    validate_server_url,
    validate_timeout,
    validate_upload_file,
    validate_upload_id,
    validate_workers,
)

__all__ = [
    # Exceptions
    "VidCtlError",
    "APIError",
    "AuthenticationError",
    "BatchInitError",
    "ChunkCountMismatch",
    "ConfigurationError",
    "ConnectionError",
    "NetworkError",
    "OperationError",
    "PartUploadError",
    "ResourceNotFoundError",
    "RetryExhaustedError",
    "UploadCancelledError",
    "UploadError",
    "UploadFailed",
    "UploadVerificationFailed",
    "ValidationError",
    # Validation
    "validate_batch",
    "validate_channel_id",
    "validate_server_url",
    "validate_timeout",
    "validate_upload_file",
    "validate_upload_id",
    "validate_workers",
    # Config
    "Config",
    "Profile",
    "UploadSettings",
    "CONFIG_DIR",
    "CONFIG_FILE",
    # Client
    "VideoAPIClient",
    # Cancellation
    "CANCELLED_MESSAGE",
    "CancellationToken",
    # Output
    "OutputFormat",
    "print_output",
    "print_table",
    "print_json",
    "print_error",
    "print_warning",
    "print_success",
    "console",
    # Logging
    "get_logger",
    "get_audit_logger",
    "setup_logging",
    "LogContext",
]
