"""Custom exception classes for diskfoundry.

Two families live here:

- Misconfiguration errors (``ConfigurationError`` and friends,
  ``UnsupportedOperation``, path normalisation errors). These always
  propagate to the caller.
- Operation errors (``FilesystemOperationError`` subclasses). These are
  routed through the per-disk throw policy: raised when the disk is
  configured with ``throw: true``, otherwise turned into a sentinel value
  by the driver.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

__all__ = [
    "FilesystemError",
    "ConfigurationError",
    "ConfigurationNotFound",
    "InvalidDiskConfiguration",
    "UnsupportedOperation",
    "PathTraversalDetected",
    "CorruptedPathDetected",
    "FilesystemOperationError",
    "ReadFailure",
    "WriteFailure",
    "VisibilitySetFailure",
    "CopyFailure",
    "MoveFailure",
    "DeleteFailure",
    "DirectoryCreateFailure",
    "DirectoryDeleteFailure",
    "MetadataUnavailable",
    "ListingFailure",
    "SymbolicLinkEncountered",
]


class FilesystemError(Exception):
    """Base exception for all diskfoundry errors."""

    error_code: str = "ERR000"  # Override in subclasses

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None,
    ):
        """
        Initialize diskfoundry exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context
            error_code: Optional error code override
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def __str__(self) -> str:
        """Return string representation with error code and details."""
        parts = [f"[{self.error_code}] {self.message}"]
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f"({detail_str})")
        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# =============================================================================
# Misconfiguration (never subject to the throw policy)
# =============================================================================


class ConfigurationError(FilesystemError):
    """Raised when disk configuration is missing or invalid."""

    error_code = "CFG000"


class ConfigurationNotFound(ConfigurationError):
    """Raised when no configuration exists for a requested disk name.

    Examples:
        - ``manager.disk("archive")`` with no ``archive`` entry under ``disks``
        - No default disk configured and ``disk()`` called without a name
    """

    error_code = "CFG001"

    def __init__(self, message: str, disk: Optional[str] = None):
        details = {}
        if disk:
            details["disk"] = disk
        super().__init__(message, details)
        self.disk = disk


class InvalidDiskConfiguration(ConfigurationError):
    """Raised when a disk configuration fails validation.

    Examples:
        - Missing required credentials (``bucket`` for s3, ``host`` for ftp)
        - Unknown backend kind with no registered factory
        - Type mismatches in configuration values
    """

    error_code = "CFG002"

    def __init__(
        self,
        message: str,
        disk: Optional[str] = None,
        kind: Optional[str] = None,
        issues: Optional[List[str]] = None,
    ):
        details: Dict[str, Any] = {}
        if disk:
            details["disk"] = disk
        if kind:
            details["kind"] = kind
        self.issues = issues or []
        if self.issues:
            issue_lines = "\n".join(f"  - {issue}" for issue in self.issues)
            message = f"{message}\n\nIssues found:\n{issue_lines}"
        super().__init__(message, details)
        self.disk = disk
        self.kind = kind


class UnsupportedOperation(FilesystemError):
    """Raised when a driver cannot perform an operation at all.

    Examples:
        - ``url()`` on a backend with no URL capability and no base URL
        - ``temporary_url()`` on a backend that cannot sign URLs
    """

    error_code = "OPS001"

    def __init__(self, message: str, operation: Optional[str] = None, disk: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation
        if disk:
            details["disk"] = disk
        super().__init__(message, details)
        self.operation = operation


class PathTraversalDetected(FilesystemError):
    """Raised when a path resolves above the disk root."""

    error_code = "PATH001"

    def __init__(self, path: str):
        super().__init__("Path traversal detected", {"path": path})
        self.path = path


class CorruptedPathDetected(FilesystemError):
    """Raised when a path contains control characters."""

    error_code = "PATH002"

    def __init__(self, path: str):
        super().__init__("Corrupted path detected", {"path": repr(path)})
        self.path = path


# =============================================================================
# Operation errors (subject to the throw policy)
# =============================================================================


class FilesystemOperationError(FilesystemError):
    """Raised when a storage operation fails.

    Examples:
        - Object store request failures
        - Local filesystem permission errors
        - Network connectivity issues on FTP/SFTP
    """

    error_code = "STG000"
    operation: str = "operation"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
        disk: Optional[str] = None,
        **extra: Any,
    ):
        """
        Initialize storage operation error.

        Args:
            message: Description of the failure
            path: Logical path involved in the operation
            cause: Original exception that caused this error
            disk: Name of the disk the operation ran on
            **extra: Additional context recorded in details
        """
        details: Dict[str, Any] = {"operation": self.operation}
        if disk:
            details["disk"] = disk
        if path is not None:
            details["path"] = path
        details.update({k: v for k, v in extra.items() if v is not None})
        if cause is not None:
            details["original_error"] = str(cause)
            details["error_type"] = type(cause).__name__
        super().__init__(message, details)
        self.path = path
        self.cause = cause

    @classmethod
    def at(cls, path: str, cause: Optional[BaseException] = None, reason: str = "") -> "FilesystemOperationError":
        """Build the error for ``path`` with a standard message."""
        message = f"Unable to {cls.operation} at location: {path}."
        if reason:
            message = f"{message} {reason}"
        elif cause is not None:
            message = f"{message} {cause}"
        return cls(message, path=path, cause=cause)

    @classmethod
    def between(
        cls, source: str, destination: str, cause: Optional[BaseException] = None
    ) -> "FilesystemOperationError":
        """Build the error for a two-path operation (copy, move)."""
        message = f"Unable to {cls.operation} from {source} to {destination}"
        if cause is not None:
            message = f"{message}: {cause}"
        return cls(message, path=source, cause=cause, destination=destination)


class ReadFailure(FilesystemOperationError):
    error_code = "STG001"
    operation = "read file"


class WriteFailure(FilesystemOperationError):
    error_code = "STG002"
    operation = "write file"


class VisibilitySetFailure(FilesystemOperationError):
    error_code = "STG003"
    operation = "set visibility"


class CopyFailure(FilesystemOperationError):
    error_code = "STG004"
    operation = "copy file"


class MoveFailure(FilesystemOperationError):
    error_code = "STG005"
    operation = "move file"


class DeleteFailure(FilesystemOperationError):
    """Raised when one or more paths could not be deleted.

    Every requested path is attempted before this error is raised;
    ``failed_paths`` lists the ones that did not go away.
    """

    error_code = "STG006"
    operation = "delete file"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        cause: Optional[BaseException] = None,
        disk: Optional[str] = None,
        failed_paths: Optional[Iterable[str]] = None,
        **extra: Any,
    ):
        self.failed_paths = list(failed_paths or ([path] if path else []))
        if len(self.failed_paths) > 1:
            extra["failed_paths"] = ", ".join(self.failed_paths)
        super().__init__(message, path=path, cause=cause, disk=disk, **extra)


class DirectoryCreateFailure(FilesystemOperationError):
    error_code = "STG007"
    operation = "create directory"


class DirectoryDeleteFailure(FilesystemOperationError):
    error_code = "STG008"
    operation = "delete directory"


class MetadataUnavailable(FilesystemOperationError):
    """Raised when size, mime type, timestamp or visibility cannot be read."""

    error_code = "STG009"
    operation = "retrieve metadata"

    @classmethod
    def for_attribute(
        cls, path: str, attribute: str, cause: Optional[BaseException] = None, reason: str = ""
    ) -> "MetadataUnavailable":
        message = f"Unable to retrieve the {attribute} for file at location: {path}."
        if reason:
            message = f"{message} {reason}"
        elif cause is not None:
            message = f"{message} {cause}"
        return cls(message, path=path, cause=cause, attribute=attribute)


class ListingFailure(FilesystemOperationError):
    error_code = "STG010"
    operation = "list contents"


class SymbolicLinkEncountered(ListingFailure):
    error_code = "STG011"
    operation = "follow symbolic link"
