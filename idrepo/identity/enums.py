"""
Canonical enums for identity records, artifacts and credential requests.
"""

from enum import Enum


class SaltPurpose(str, Enum):
    """Which salt of a shard entry is being requested."""

    HASH = "hash"
    ENCRYPT = "encrypt"


class ArtifactKind(str, Enum):
    """Kinds of artifacts attached to an identity record.

    The value doubles as the blob store folder the artifact is written to.
    """

    DOCUMENT = "Demographics"
    BIOMETRIC = "Biometrics"


class CredentialRequestStatus(str, Enum):
    """Lifecycle of a credential reissue request.

    NEW and DELETED are written by this engine; REQUESTED and FAILED are
    written by the downstream credential service that consumes the request.
    """

    NEW = "NEW"
    REQUESTED = "REQUESTED"
    FAILED = "FAILED"
    DELETED = "DELETED"


class DifferenceKind(str, Enum):
    """Classes of structural differences reported by the lenient comparator."""

    MISSING_FIELD = "missing_field"
    FAILING_FIELD = "failing_field"
    MISSING_VALUE = "missing_value"


class ActorKind(str, Enum):
    """Type of actor performing a change."""

    HUMAN = "human"
    SERVICE = "service"
    SYSTEM = "system"
