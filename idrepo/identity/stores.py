"""
SQLAlchemy-backed collaborator stores.

Stores only add and flush; the identity service owns the transaction and
decides when to commit or roll back.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from ..db.models import (
    BiometricArtifactModel,
    BiometricHistoryModel,
    CredentialRequestModel,
    DocumentArtifactModel,
    DocumentHistoryModel,
    IdentityHistoryModel,
    IdentityRecordModel,
    ShardSaltModel,
)
from .encryption import FieldEncryptor
from .enums import SaltPurpose
from .errors import SaltNotFoundError
from .primitives import generate_ulid

logger = logging.getLogger(__name__)


class SaltStore(ABC):
    """Per-shard salt lookup."""

    @abstractmethod
    def salt_for(self, shard: int, purpose: SaltPurpose) -> str:
        """Return the salt of ``shard`` for ``purpose`` or raise SaltNotFoundError."""


class SqlSaltStore(SaltStore):
    """Salt store reading the ``shard_salts`` table."""

    def __init__(self, db: Session):
        self.db = db

    def salt_for(self, shard: int, purpose: SaltPurpose) -> str:
        entry = self.db.get(ShardSaltModel, shard)
        if entry is None:
            raise SaltNotFoundError(f"No salt provisioned for shard {shard}", path="identifier")
        if purpose == SaltPurpose.HASH:
            return entry.hash_salt
        return entry.encrypt_salt

    def provision(self, shard: int, hash_salt: str, encrypt_salt: str) -> ShardSaltModel:
        """Create or replace the salt pair of a shard."""
        entry = self.db.get(ShardSaltModel, shard)
        if entry is None:
            entry = ShardSaltModel(shard=shard)
            self.db.add(entry)
        entry.hash_salt = hash_salt
        entry.encrypt_salt = encrypt_salt
        self.db.flush()
        return entry

    def exists(self, shard: int) -> bool:
        return self.db.get(ShardSaltModel, shard) is not None


class SqlRecordStore:
    """Persistence of identity records and their history."""

    def __init__(self, db: Session, encryptor: Optional[FieldEncryptor] = None):
        self.db = db
        self.encryptor = encryptor
        if encryptor is None:
            logger.warning("No encryption key configured; identifiers are stored unencrypted")

    def encode_identifier(self, composite: str) -> str:
        if self.encryptor is None:
            return composite
        return self.encryptor.encrypt(composite)

    def decode_identifier(self, encoded: str) -> str:
        if self.encryptor is None:
            return encoded
        return self.encryptor.decrypt(encoded)

    def find_by_hash(self, identifier_hash: str) -> Optional[IdentityRecordModel]:
        return (
            self.db.query(IdentityRecordModel)
            .filter(IdentityRecordModel.identifier_hash == identifier_hash)
            .first()
        )

    def exists(self, identifier_hash: str) -> bool:
        return (
            self.db.query(IdentityRecordModel.ref_id)
            .filter(IdentityRecordModel.identifier_hash == identifier_hash)
            .first()
            is not None
        )

    def save(self, record: IdentityRecordModel) -> IdentityRecordModel:
        self.db.add(record)
        self.db.flush()
        return record

    def append_history(
        self, record: IdentityRecordModel, effective_at: datetime, actor_id: str
    ) -> IdentityHistoryModel:
        """Snapshot the record as it stands after the flush."""
        entry = IdentityHistoryModel(
            id=generate_ulid(),
            ref_id=record.ref_id,
            effective_at=effective_at,
            encrypted_identifier=record.encrypted_identifier,
            identifier_hash=record.identifier_hash,
            payload=record.payload,
            payload_hash=record.payload_hash,
            registration_id=record.registration_id,
            status_code=record.status_code,
            anonymous_profile=record.anonymous_profile,
            created_by=actor_id,
            created_at=effective_at,
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def append_document_history(
        self, document: DocumentArtifactModel, effective_at: datetime
    ) -> DocumentHistoryModel:
        entry = DocumentHistoryModel(
            id=generate_ulid(),
            ref_id=document.ref_id,
            effective_at=effective_at,
            category=document.category,
            type_code=document.type_code,
            doc_id=document.doc_id,
            doc_name=document.doc_name,
            format_code=document.format_code,
            doc_hash=document.doc_hash,
            created_by=document.created_by,
            created_at=effective_at,
        )
        self.db.add(entry)
        return entry

    def append_biometric_history(
        self, biometric: BiometricArtifactModel, effective_at: datetime
    ) -> BiometricHistoryModel:
        entry = BiometricHistoryModel(
            id=generate_ulid(),
            ref_id=biometric.ref_id,
            effective_at=effective_at,
            file_type=biometric.file_type,
            bio_file_id=biometric.bio_file_id,
            file_name=biometric.file_name,
            file_hash=biometric.file_hash,
            created_by=biometric.created_by,
            created_at=effective_at,
        )
        self.db.add(entry)
        return entry

    def list_history(self, ref_id: str) -> List[IdentityHistoryModel]:
        """History snapshots of a record, oldest first."""
        return (
            self.db.query(IdentityHistoryModel)
            .filter(IdentityHistoryModel.ref_id == ref_id)
            .order_by(IdentityHistoryModel.effective_at, IdentityHistoryModel.id)
            .all()
        )


class SqlCredentialRequestStore:
    """Persistence of credential reissue requests."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_hash(self, individual_id_hash: str) -> List[CredentialRequestModel]:
        return (
            self.db.query(CredentialRequestModel)
            .filter(CredentialRequestModel.individual_id_hash == individual_id_hash)
            .order_by(CredentialRequestModel.created_at)
            .all()
        )

    def save(self, request: CredentialRequestModel) -> CredentialRequestModel:
        self.db.add(request)
        self.db.flush()
        return request
