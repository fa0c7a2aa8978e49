"""
Audit Log Database Models.

Every state change of an identity record is recorded with before/after
snapshots, actor information and trace context. Snapshots never carry the
plaintext identifier.
"""

from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Enum,
    Index,
    String,
    Text,
)
from sqlalchemy.sql import func

from .base import Base


audit_actor_kind_enum = Enum(
    "human",
    "service",
    "system",
    name="audit_actor_kind",
)

audit_action_enum = Enum(
    "created",
    "updated",
    "status_changed",
    name="audit_action",
)


class AuditLogModel(Base):
    """Audit log entry for identity record changes."""

    __tablename__ = "audit_log"

    # ULID for sortability and uniqueness
    id = Column(String(36), primary_key=True)

    ts = Column(
        DateTime(timezone=True),
        nullable=False,
        default=func.now(),
        index=True,
    )

    actor_kind = Column(audit_actor_kind_enum, nullable=False)
    actor_id = Column(String(128), nullable=False, index=True)

    action = Column(audit_action_enum, nullable=False, index=True)

    entity_kind = Column(String(50), nullable=False, index=True)
    entity_id = Column(String(128), nullable=False, index=True)

    before = Column(JSON, nullable=True)
    after = Column(JSON, nullable=True)

    note = Column(Text, nullable=True)

    trace_id = Column(String(36), nullable=True, index=True)

    __table_args__ = (
        Index("ix_audit_log_entity", "entity_kind", "entity_id"),
        Index("ix_audit_log_actor", "actor_kind", "actor_id"),
        Index("ix_audit_log_entity_ts", "entity_kind", "entity_id", "ts"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "ts": self.ts.isoformat() if self.ts else None,
            "actor_kind": self.actor_kind,
            "actor_id": self.actor_id,
            "action": self.action,
            "entity_kind": self.entity_kind,
            "entity_id": self.entity_id,
            "before": self.before,
            "after": self.after,
            "note": self.note,
            "trace_id": self.trace_id,
        }
