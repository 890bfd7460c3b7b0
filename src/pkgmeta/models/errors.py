"""Error taxonomy for metadata updates.

Every fatal failure of a run is raised as a ``PackageMetadataError`` subclass.
Condition failures of the graph store are not errors and never appear here.
"""

from typing import Any, Dict, Optional


class PackageMetadataError(Exception):
    """Base class for all fatal metadata update failures."""

    code = "metadata_error"

    def __init__(self, msg: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the error.

        Args:
            msg: Human-readable error message
            details: Additional structured context for logging
        """
        self.msg = msg
        self.details = details or {}
        super().__init__(msg)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dict format for structured logging."""
        error_dict: Dict[str, Any] = {"code": self.code, "message": self.msg}
        if self.details:
            error_dict["details"] = self.details
        return error_dict


class ConfigurationError(PackageMetadataError):
    """Execution context is missing or invalid."""

    code = "configuration_error"


class ManifestError(PackageMetadataError):
    """Package manifest is unreadable or lacks required fields."""

    code = "manifest_error"


class KeyDecodeError(PackageMetadataError):
    """A fully-qualified package key does not parse."""

    code = "malformed_key"

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Malformed package key {value!r}: expected 'ecosystem/name:version'",
            details={"value": value},
        )


class StoreError(PackageMetadataError):
    """Graph store failure other than a condition failure."""

    code = "store_error"

    def __init__(self, operation: str, key: Any, reason: str):
        self.operation = operation
        self.key = key
        self.reason = reason
        super().__init__(
            f"Graph store {operation} failed for {key}: {reason}",
            details={"operation": operation, "key": str(key), "reason": reason},
        )


class TriggerError(PackageMetadataError):
    """Build trigger failure."""

    code = "trigger_error"

    def __init__(self, project: str, reason: str, status_code: Optional[int] = None):
        self.project = project
        self.status_code = status_code
        details: Dict[str, Any] = {"project": project}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(f"Failed to start build for {project}: {reason}", details=details)
