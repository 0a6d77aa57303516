"""vidctl - A CLI and library for resumable batch video uploads.

This package uploads local video files to a video platform backend:
- One batch session request per set of files
- Single-shot or 5 MiB chunked transfer to pre-signed storage URLs
- Per-part retry, backend-driven bulk retry and completion verification
- Thread-safe progress tracking and cancellation
"""

__version__ = "0.1.0"

from vidctl.core.client import VideoAPIClient
from vidctl.core.config import Config, Profile
from vidctl.core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    ConnectionError,
    NetworkError,
    ResourceNotFoundError,
    UploadCancelledError,
    UploadError,
    UploadFailed,
    ValidationError,
    VidCtlError,
)

__all__ = [
    "__version__",
    "VideoAPIClient",
    "Config",
    "Profile",
    "VidCtlError",
    "AuthenticationError",
    "ConfigurationError",
    "ConnectionError",
    "NetworkError",
    "ResourceNotFoundError",
    "UploadCancelledError",
    "UploadError",
    "UploadFailed",
    "ValidationError",
]
