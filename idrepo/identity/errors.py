"""
Error taxonomy for the identity repository.

Every error carries a stable code plus, where known, the field path and the
index of the submitted document that caused it, so callers can report a
precise validation message. All of them abort the current unit of work.
"""

from typing import Any, Dict, Optional


class IdRepoError(Exception):
    """
    Base class for identity repository errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
        path: Offending field path, if any
        index: Index of the offending submitted document, if any
    """

    code = "IDREPO_ERROR"

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        index: Optional[int] = None,
    ):
        self.message = message
        self.path = path
        self.index = index
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        result: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.path is not None:
            result["path"] = self.path
        if self.index is not None:
            result["index"] = self.index
        return result


class InvalidInputError(IdRepoError):
    """Malformed identifier, document value or biometric container."""

    code = "INVALID_INPUT"


class PathResolutionError(InvalidInputError):
    """A merge path could not be resolved against a payload tree."""

    code = "INVALID_PATH"


class RecordNotFoundError(IdRepoError):
    """An update or read targets an identifier with no record."""

    code = "RECORD_NOT_FOUND"


class RecordAlreadyExistsError(IdRepoError):
    """A create targets an identifier that already has a record."""

    code = "RECORD_EXISTS"


class SaltNotFoundError(IdRepoError):
    """The shard has no provisioned salt. Configuration problem, never retried."""

    code = "SALT_NOT_FOUND"


class StorageAccessError(IdRepoError):
    """The blob store could not be read or written."""

    code = "STORAGE_ACCESS_ERROR"


class ProcessingFailedError(IdRepoError):
    """Payload (de)serialization or structural comparison failed."""

    code = "PROCESSING_FAILED"


class ConcurrentUpdateError(IdRepoError):
    """The record kept changing underneath the update; retries exhausted."""

    code = "CONCURRENT_UPDATE"
