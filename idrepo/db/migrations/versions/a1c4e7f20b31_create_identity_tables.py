"""Create identity repository tables

Revision ID: a1c4e7f20b31
Revises:
Create Date: 2026-10-18

Identity records with their document and biometric artifacts, append-only
history tables, shard salts, credential reissue requests and the audit log.
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "a1c4e7f20b31"
down_revision = None
branch_labels = None
depends_on = None


def _audit_columns(include_update: bool = True):
    columns = [
        sa.Column("created_by", sa.String(length=128), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    ]
    if include_update:
        columns += [
            sa.Column("updated_by", sa.String(length=128), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        ]
    return columns


def upgrade() -> None:
    op.create_table(
        "shard_salts",
        sa.Column("shard", sa.Integer, primary_key=True, autoincrement=False),
        sa.Column("hash_salt", sa.String(length=64), nullable=False),
        sa.Column("encrypt_salt", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "identity_records",
        sa.Column("ref_id", sa.String(length=36), primary_key=True),
        sa.Column("encrypted_identifier", sa.Text, nullable=False),
        sa.Column("identifier_hash", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("payload_hash", sa.String(length=64), nullable=False),
        sa.Column("registration_id", sa.String(length=64), nullable=True),
        sa.Column("status_code", sa.String(length=32), nullable=False),
        sa.Column("anonymous_profile", sa.Text, nullable=True),
        *_audit_columns(),
        sa.Column("version", sa.Integer, nullable=False),
    )
    op.create_index("ix_identity_records_identifier_hash", "identity_records", ["identifier_hash"], unique=True)
    op.create_index("ix_identity_records_registration_id", "identity_records", ["registration_id"])
    op.create_index("ix_identity_records_status_code", "identity_records", ["status_code"])

    op.create_table(
        "identity_documents",
        sa.Column("ref_id", sa.String(length=36), sa.ForeignKey("identity_records.ref_id"), primary_key=True),
        sa.Column("category", sa.String(length=64), primary_key=True),
        sa.Column("type_code", sa.String(length=64), nullable=True),
        sa.Column("doc_id", sa.String(length=128), nullable=False),
        sa.Column("doc_name", sa.String(length=256), nullable=False),
        sa.Column("format_code", sa.String(length=32), nullable=False),
        sa.Column("doc_hash", sa.String(length=64), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "identity_biometrics",
        sa.Column("ref_id", sa.String(length=36), sa.ForeignKey("identity_records.ref_id"), primary_key=True),
        sa.Column("file_type", sa.String(length=64), primary_key=True),
        sa.Column("bio_file_id", sa.String(length=128), nullable=False),
        sa.Column("file_name", sa.String(length=256), nullable=False),
        sa.Column("file_hash", sa.String(length=64), nullable=False),
        *_audit_columns(),
    )

    op.create_table(
        "identity_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ref_id", sa.String(length=36), nullable=False),
        sa.Column("effective_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("encrypted_identifier", sa.Text, nullable=False),
        sa.Column("identifier_hash", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.Text, nullable=False),
        sa.Column("payload_hash", sa.String(length=64), nullable=False),
        sa.Column("registration_id", sa.String(length=64), nullable=True),
        sa.Column("status_code", sa.String(length=32), nullable=False),
        sa.Column("anonymous_profile", sa.Text, nullable=True),
        *_audit_columns(include_update=False),
    )
    op.create_index("ix_identity_history_ref_effective", "identity_history", ["ref_id", "effective_at"])

    op.create_table(
        "identity_document_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ref_id", sa.String(length=36), nullable=False),
        sa.Column("effective_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("category", sa.String(length=64), nullable=False),
        sa.Column("type_code", sa.String(length=64), nullable=True),
        sa.Column("doc_id", sa.String(length=128), nullable=False),
        sa.Column("doc_name", sa.String(length=256), nullable=False),
        sa.Column("format_code", sa.String(length=32), nullable=False),
        sa.Column("doc_hash", sa.String(length=64), nullable=False),
        *_audit_columns(include_update=False),
    )
    op.create_index("ix_identity_document_history_ref_id", "identity_document_history", ["ref_id"])

    op.create_table(
        "identity_biometric_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ref_id", sa.String(length=36), nullable=False),
        sa.Column("effective_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("file_type", sa.String(length=64), nullable=False),
        sa.Column("bio_file_id", sa.String(length=128), nullable=False),
        sa.Column("file_name", sa.String(length=256), nullable=False),
        sa.Column("file_hash", sa.String(length=64), nullable=False),
        *_audit_columns(include_update=False),
    )
    op.create_index("ix_identity_biometric_history_ref_id", "identity_biometric_history", ["ref_id"])

    op.create_table(
        "credential_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("individual_id", sa.Text, nullable=False),
        sa.Column("individual_id_hash", sa.String(length=128), nullable=False),
        sa.Column("partner_id", sa.String(length=64), nullable=False),
        sa.Column("request_id", sa.String(length=64), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "NEW", "REQUESTED", "FAILED", "DELETED",
                name="credential_request_status",
                create_constraint=True,
            ),
            nullable=False,
        ),
        sa.Column("id_expiry_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.UniqueConstraint("individual_id_hash", "partner_id", name="uq_credential_requests_hash_partner"),
    )
    op.create_index("ix_credential_requests_individual_id_hash", "credential_requests", ["individual_id_hash"])
    op.create_index("ix_credential_requests_status", "credential_requests", ["status"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ts", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column(
            "actor_kind",
            sa.Enum("human", "service", "system", name="audit_actor_kind", create_constraint=True),
            nullable=False,
        ),
        sa.Column("actor_id", sa.String(length=128), nullable=False),
        sa.Column(
            "action",
            sa.Enum("created", "updated", "status_changed", name="audit_action", create_constraint=True),
            nullable=False,
        ),
        sa.Column("entity_kind", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.String(length=128), nullable=False),
        sa.Column("before", sa.JSON, nullable=True),
        sa.Column("after", sa.JSON, nullable=True),
        sa.Column("note", sa.Text, nullable=True),
        sa.Column("trace_id", sa.String(length=36), nullable=True),
    )
    op.create_index("ix_audit_log_ts", "audit_log", ["ts"])
    op.create_index("ix_audit_log_actor_id", "audit_log", ["actor_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_entity_kind", "audit_log", ["entity_kind"])
    op.create_index("ix_audit_log_entity_id", "audit_log", ["entity_id"])
    op.create_index("ix_audit_log_trace_id", "audit_log", ["trace_id"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity_kind", "entity_id"])
    op.create_index("ix_audit_log_actor", "audit_log", ["actor_kind", "actor_id"])
    op.create_index("ix_audit_log_entity_ts", "audit_log", ["entity_kind", "entity_id", "ts"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("credential_requests")
    op.drop_table("identity_biometric_history")
    op.drop_table("identity_document_history")
    op.drop_table("identity_history")
    op.drop_table("identity_biometrics")
    op.drop_table("identity_documents")
    op.drop_table("identity_records")
    op.drop_table("shard_salts")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        sa.Enum(name="audit_action").drop(bind, checkfirst=True)
        sa.Enum(name="audit_actor_kind").drop(bind, checkfirst=True)
        sa.Enum(name="credential_request_status").drop(bind, checkfirst=True)
