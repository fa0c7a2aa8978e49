"""
Database package for the identity repository.
"""

from .base import Base, get_engine, get_session_local, init_database
from .models import (
    BiometricArtifactModel,
    CredentialRequestModel,
    DocumentArtifactModel,
    IdentityHistoryModel,
    IdentityRecordModel,
    ShardSaltModel,
)

__all__ = [
    "Base",
    "get_engine",
    "get_session_local",
    "init_database",
    "IdentityRecordModel",
    "IdentityHistoryModel",
    "DocumentArtifactModel",
    "BiometricArtifactModel",
    "ShardSaltModel",
    "CredentialRequestModel",
]
