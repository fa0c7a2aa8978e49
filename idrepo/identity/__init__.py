"""
Identity reconciliation engine.

Exports the value types and errors; services and stores are imported from
their modules directly.
"""

from .enums import ArtifactKind, CredentialRequestStatus, DifferenceKind, SaltPurpose
from .errors import (
    ConcurrentUpdateError,
    IdRepoError,
    InvalidInputError,
    PathResolutionError,
    ProcessingFailedError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    SaltNotFoundError,
    StorageAccessError,
)
from .primitives import TreeValue, generate_ulid, utc_now
from .schemas import DocumentPayload, IdentityRequest, IdentityResponse

__all__ = [
    "ArtifactKind",
    "CredentialRequestStatus",
    "DifferenceKind",
    "SaltPurpose",
    "IdRepoError",
    "InvalidInputError",
    "PathResolutionError",
    "RecordNotFoundError",
    "RecordAlreadyExistsError",
    "SaltNotFoundError",
    "StorageAccessError",
    "ProcessingFailedError",
    "ConcurrentUpdateError",
    "TreeValue",
    "generate_ulid",
    "utc_now",
    "DocumentPayload",
    "IdentityRequest",
    "IdentityResponse",
]
