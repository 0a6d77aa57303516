"""Exception hierarchy for vidctl.

Provides typed exceptions for different failure modes with clear error messages.
"""

from __future__ import annotations

from typing import Any


class VidCtlError(Exception):
    """Base exception for all vidctl errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(VidCtlError):
    """Error in configuration (missing, invalid, or malformed)."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = repr(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class ProfileNotFoundError(ConfigurationError):
    """Requested profile does not exist."""

    def __init__(self, profile: str):
        super().__init__(f"Profile not found: {profile}", field="profile", value=profile)
        self.profile = profile


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(VidCtlError):
    """Input validation failed."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
    ):
        details = {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = repr(value)
        super().__init__(message, details)
        self.field = field
        self.value = value


class InvalidURLError(ValidationError):
    """Invalid URL format."""

    def __init__(self, url: str, reason: str = ""):
        msg = f"Invalid URL: {url}"
        if reason:
            msg = f"{msg} - {reason}"
        super().__init__(msg, field="url", value=url)
        self.url = url
        self.reason = reason


class PathValidationError(ValidationError):
    """Path validation failed."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Invalid path: {path} - {reason}", field="path", value=path)
        self.path = path
        self.reason = reason


# =============================================================================
# Connection Errors
# =============================================================================


class ConnectionError(VidCtlError):
    """Base class for connection-related errors."""

    def __init__(self, message: str, url: str | None = None):
        details = {"url": url} if url else {}
        super().__init__(message, details)
        self.url = url


class NetworkError(ConnectionError):
    """Network-level error (DNS, TCP, TLS)."""

    def __init__(self, url: str, cause: str | None = None):
        msg = f"Network error connecting to {url}"
        if cause:
            msg = f"{msg}: {cause}"
        super().__init__(msg, url)
        self.cause = cause


class ServerUnreachableError(ConnectionError):
    """Server is not reachable."""

    def __init__(self, url: str):
        super().__init__(f"Server unreachable: {url}", url)


class RetryExhaustedError(ConnectionError):
    """All retry attempts failed."""

    def __init__(self, operation: str, attempts: int, last_error: Exception | None = None):
        msg = f"Operation '{operation}' failed after {attempts} attempts"
        if last_error:
            msg = f"{msg}: {last_error}"
        super().__init__(msg)
        self.operation = operation
        self.attempts = attempts
        self.last_error = last_error


class APIError(VidCtlError):
    """Backend answered with an unexpected HTTP status."""

    def __init__(self, method: str, path: str, status_code: int, body: str = ""):
        msg = f"{method} {path} returned HTTP {status_code}"
        if body:
            msg = f"{msg}: {body[:200]}"
        super().__init__(msg, {"status_code": status_code})
        self.method = method
        self.path = path
        self.status_code = status_code


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthenticationError(VidCtlError):
    """Authentication failed."""

    def __init__(self, url: str | None = None, reason: str = ""):
        msg = "Authentication failed"
        if url:
            msg = f"{msg} for {url}"
        if reason:
            msg = f"{msg}: {reason}"
        details = {"url": url} if url else {}
        super().__init__(msg, details)
        self.url = url
        self.reason = reason


class PermissionDeniedError(AuthenticationError):
    """User lacks permission for the requested operation."""

    def __init__(self, resource: str, operation: str = "access"):
        super().__init__(reason=f"Permission denied to {operation} {resource}")
        self.resource = resource
        self.operation = operation


# =============================================================================
# Resource Errors
# =============================================================================


class ResourceNotFoundError(VidCtlError):
    """Requested resource does not exist."""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            {"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


# =============================================================================
# Operation Errors
# =============================================================================


class OperationError(VidCtlError):
    """Error during an operation."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: dict[str, Any] | None = None,
    ):
        full_details = {"operation": operation}
        if details:
            full_details.update(details)
        super().__init__(message, full_details)
        self.operation = operation


class UploadError(OperationError):
    """Error during upload."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        full_details = details or {}
        if file_path:
            full_details["file"] = file_path
        super().__init__("upload", message, full_details)
        self.file_path = file_path


class BatchInitError(UploadError):
    """Backend could not allocate upload sessions for a batch."""

    def __init__(self, reason: str, channel_id: str | None = None):
        details = {"channel": channel_id} if channel_id else None
        super().__init__(f"Failed to initialize upload batch: {reason}", details=details)
        self.reason = reason
        self.channel_id = channel_id


class ChunkCountMismatch(UploadError):
    """Client and server disagree on the number of parts of a file."""

    def __init__(self, upload_id: str, expected: int, actual: int, file_path: str | None = None):
        super().__init__(
            f"Mismatch between file chunks and presigned URLs for upload {upload_id}: "
            f"file splits into {actual} parts, session expects {expected}",
            file_path=file_path,
            details={"upload_id": upload_id},
        )
        self.upload_id = upload_id
        self.expected = expected
        self.actual = actual


class PartUploadError(UploadError):
    """A single part could not be uploaded within its retry budget."""

    def __init__(
        self,
        upload_id: str,
        part_number: int,
        attempts: int,
        cause: Exception | None = None,
    ):
        msg = f"Part {part_number} of upload {upload_id} failed after {attempts} attempts"
        if cause:
            msg = f"{msg}: {cause}"
        super().__init__(msg, details={"upload_id": upload_id, "part": part_number})
        self.upload_id = upload_id
        self.part_number = part_number
        self.attempts = attempts
        self.cause = cause


class UploadVerificationFailed(UploadError):
    """Backend never confirmed that all parts of an upload were recorded."""

    def __init__(self, upload_id: str, rounds: int):
        super().__init__(f"Upload {upload_id} verification failed after {rounds} rounds")
        self.upload_id = upload_id
        self.rounds = rounds


class UploadCancelledError(UploadError):
    """Upload was cancelled by the user."""

    def __init__(self, message: str = "Upload cancelled"):
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class BatchOperationError(OperationError):
    """Error in batch operation with partial success."""

    def __init__(
        self,
        operation: str,
        succeeded: int,
        failed: int,
        errors: list[str],
    ):
        super().__init__(
            operation,
            f"Batch {operation} partially failed: {succeeded} succeeded, {failed} failed",
            {"succeeded": succeeded, "failed": failed},
        )
        self.succeeded = succeeded
        self.failed = failed
        self.errors = errors


class UploadFailed(BatchOperationError):
    """One or more files of a batch could not be uploaded."""

    def __init__(self, results: list[Any]):
        failed = [r for r in results if not r.success]
        super().__init__(
            "upload",
            succeeded=len(results) - len(failed),
            failed=len(failed),
            errors=[f"{r.display_name}: {r.error}" for r in failed],
        )
        self.results = results
        self.sessions = [r.session for r in results]


# Names used by callers that think in terms of session init / verification timeout.
SessionInitError = BatchInitError
VerificationTimeout = UploadVerificationFailed
