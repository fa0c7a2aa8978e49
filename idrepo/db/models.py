"""
SQLAlchemy models for the identity repository.

Current-state tables (records, documents, biometrics, credential requests)
sit next to append-only history tables that are written once and never
updated. Payloads are stored as serialized JSON text so the stored bytes are
exactly the bytes the payload hash was computed over.
"""

from typing import Any, Dict

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..identity.primitives import parse_tree
from .base import Base


credential_request_status_enum = Enum(
    "NEW",
    "REQUESTED",
    "FAILED",
    "DELETED",
    name="credential_request_status",
)


def _iso(value) -> Any:
    return value.isoformat() if value else None


class ShardSaltModel(Base):
    """Salt pair of one shard. Provisioned out of band, read-only to the engine."""

    __tablename__ = "shard_salts"

    shard = Column(Integer, primary_key=True, autoincrement=False)
    hash_salt = Column(String(64), nullable=False)
    encrypt_salt = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())


class IdentityRecordModel(Base):
    """Canonical identity record."""

    __tablename__ = "identity_records"

    ref_id = Column(String(36), primary_key=True)
    encrypted_identifier = Column(Text, nullable=False)
    identifier_hash = Column(String(128), nullable=False, unique=True, index=True)

    payload = Column(Text, nullable=False)
    payload_hash = Column(String(64), nullable=False)
    registration_id = Column(String(64), nullable=True, index=True)
    status_code = Column(String(32), nullable=False, index=True)
    anonymous_profile = Column(Text, nullable=True)

    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_by = Column(String(128), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic lock; bumped by SQLAlchemy on every UPDATE
    version = Column(Integer, nullable=False)

    documents = relationship(
        "DocumentArtifactModel",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="DocumentArtifactModel.created_at",
    )
    biometrics = relationship(
        "BiometricArtifactModel",
        back_populates="record",
        cascade="all, delete-orphan",
        order_by="BiometricArtifactModel.created_at",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def payload_tree(self) -> Any:
        return parse_tree(self.payload)

    @property
    def anonymous_profile_tree(self) -> Any:
        return parse_tree(self.anonymous_profile) if self.anonymous_profile else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary. The encoded identifier is left out."""
        return {
            "ref_id": self.ref_id,
            "identifier_hash": self.identifier_hash,
            "payload_hash": self.payload_hash,
            "registration_id": self.registration_id,
            "status_code": self.status_code,
            "has_anonymous_profile": bool(self.anonymous_profile),
            "documents": [d.to_dict() for d in self.documents],
            "biometrics": [b.to_dict() for b in self.biometrics],
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
            "updated_by": self.updated_by,
            "updated_at": _iso(self.updated_at),
        }


class DocumentArtifactModel(Base):
    """Demographic document attached to a record; one per category."""

    __tablename__ = "identity_documents"

    ref_id = Column(String(36), ForeignKey("identity_records.ref_id"), primary_key=True)
    category = Column(String(64), primary_key=True)
    type_code = Column(String(64), nullable=True)
    doc_id = Column(String(128), nullable=False)
    doc_name = Column(String(256), nullable=False)
    format_code = Column(String(32), nullable=False)
    doc_hash = Column(String(64), nullable=False)

    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_by = Column(String(128), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    record = relationship("IdentityRecordModel", back_populates="documents")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "type_code": self.type_code,
            "doc_id": self.doc_id,
            "doc_name": self.doc_name,
            "format_code": self.format_code,
            "doc_hash": self.doc_hash,
            "updated_at": _iso(self.updated_at or self.created_at),
        }


class BiometricArtifactModel(Base):
    """Biometric container attached to a record; one per biometric category."""

    __tablename__ = "identity_biometrics"

    ref_id = Column(String(36), ForeignKey("identity_records.ref_id"), primary_key=True)
    file_type = Column(String(64), primary_key=True)
    bio_file_id = Column(String(128), nullable=False)
    file_name = Column(String(256), nullable=False)
    file_hash = Column(String(64), nullable=False)

    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_by = Column(String(128), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    record = relationship("IdentityRecordModel", back_populates="biometrics")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_type": self.file_type,
            "bio_file_id": self.bio_file_id,
            "file_name": self.file_name,
            "file_hash": self.file_hash,
            "updated_at": _iso(self.updated_at or self.created_at),
        }


class IdentityHistoryModel(Base):
    """Immutable snapshot of a record at a point in time."""

    __tablename__ = "identity_history"

    id = Column(String(36), primary_key=True)
    ref_id = Column(String(36), nullable=False)
    effective_at = Column(DateTime(timezone=True), nullable=False)

    encrypted_identifier = Column(Text, nullable=False)
    identifier_hash = Column(String(128), nullable=False)
    payload = Column(Text, nullable=False)
    payload_hash = Column(String(64), nullable=False)
    registration_id = Column(String(64), nullable=True)
    status_code = Column(String(32), nullable=False)
    anonymous_profile = Column(Text, nullable=True)

    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_identity_history_ref_effective", "ref_id", "effective_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "ref_id": self.ref_id,
            "effective_at": _iso(self.effective_at),
            "payload_hash": self.payload_hash,
            "registration_id": self.registration_id,
            "status_code": self.status_code,
            "created_by": self.created_by,
        }


class DocumentHistoryModel(Base):
    """Immutable snapshot of a document artifact at ingestion time."""

    __tablename__ = "identity_document_history"

    id = Column(String(36), primary_key=True)
    ref_id = Column(String(36), nullable=False, index=True)
    effective_at = Column(DateTime(timezone=True), nullable=False)
    category = Column(String(64), nullable=False)
    type_code = Column(String(64), nullable=True)
    doc_id = Column(String(128), nullable=False)
    doc_name = Column(String(256), nullable=False)
    format_code = Column(String(32), nullable=False)
    doc_hash = Column(String(64), nullable=False)
    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class BiometricHistoryModel(Base):
    """Immutable snapshot of a biometric artifact at ingestion time."""

    __tablename__ = "identity_biometric_history"

    id = Column(String(36), primary_key=True)
    ref_id = Column(String(36), nullable=False, index=True)
    effective_at = Column(DateTime(timezone=True), nullable=False)
    file_type = Column(String(64), nullable=False)
    bio_file_id = Column(String(128), nullable=False)
    file_name = Column(String(256), nullable=False)
    file_hash = Column(String(64), nullable=False)
    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)


class CredentialRequestModel(Base):
    """Pending instruction for a downstream partner to (re)issue or revoke a credential."""

    __tablename__ = "credential_requests"

    id = Column(String(36), primary_key=True)
    individual_id = Column(Text, nullable=False)
    individual_id_hash = Column(String(128), nullable=False, index=True)
    partner_id = Column(String(64), nullable=False)
    request_id = Column(String(64), nullable=True)
    status = Column(credential_request_status_enum, nullable=False, index=True)
    id_expiry_at = Column(DateTime(timezone=True), nullable=True)

    created_by = Column(String(128), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_by = Column(String(128), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("individual_id_hash", "partner_id", name="uq_credential_requests_hash_partner"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "individual_id_hash": self.individual_id_hash,
            "partner_id": self.partner_id,
            "request_id": self.request_id,
            "status": self.status,
            "id_expiry_at": _iso(self.id_expiry_at),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
