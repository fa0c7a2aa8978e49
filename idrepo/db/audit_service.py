"""
Audit Log Service.

Provides a clean interface for recording audit events for identity records.
Entries are added to the caller's session and flushed, never committed here:
they commit or roll back together with the unit of work that produced them.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from ..identity.primitives import generate_ulid
from .audit_models import AuditLogModel


class AuditService:
    """Service for managing audit log entries.

    Usage:
        audit = AuditService(db_session)
        audit.log_create("IdentityRecord", record.ref_id, record.to_dict(), actor_id="registration-client")
    """

    def __init__(self, db: Session):
        self.db = db

    def _record(
        self,
        action: str,
        entity_kind: str,
        entity_id: str,
        before: Optional[Dict[str, Any]],
        after: Optional[Dict[str, Any]],
        actor_kind: str,
        actor_id: str,
        note: Optional[str],
        trace_id: Optional[str],
    ) -> AuditLogModel:
        entry = AuditLogModel(
            id=generate_ulid(),
            ts=datetime.now(timezone.utc),
            actor_kind=actor_kind,
            actor_id=actor_id,
            action=action,
            entity_kind=entity_kind,
            entity_id=entity_id,
            before=before,
            after=after,
            note=note,
            trace_id=trace_id,
        )

        self.db.add(entry)
        self.db.flush()
        return entry

    def log_create(
        self,
        entity_kind: str,
        entity_id: str,
        after: Dict[str, Any],
        actor_kind: str = "system",
        actor_id: str = "unknown",
        note: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log the creation of an entity.

        Args:
            entity_kind: Type of entity (e.g., "IdentityRecord")
            entity_id: ID of the entity
            after: State of the entity after creation
            actor_kind: Type of actor ("human", "service", "system")
            actor_id: ID of the actor
            note: Optional human-readable note
            trace_id: Optional trace ID for correlation

        Returns:
            The created AuditLogModel
        """
        return self._record(
            "created", entity_kind, entity_id, None, after,
            actor_kind, actor_id, note, trace_id,
        )

    def log_update(
        self,
        entity_kind: str,
        entity_id: str,
        before: Dict[str, Any],
        after: Dict[str, Any],
        actor_kind: str = "system",
        actor_id: str = "unknown",
        note: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log an update to an entity, capturing both states."""
        return self._record(
            "updated", entity_kind, entity_id, before, after,
            actor_kind, actor_id, note, trace_id,
        )

    def log_status_change(
        self,
        entity_kind: str,
        entity_id: str,
        old_status: Optional[str],
        new_status: str,
        actor_kind: str = "system",
        actor_id: str = "unknown",
        note: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> AuditLogModel:
        """Log a status change on an entity."""
        return self._record(
            "status_changed",
            entity_kind,
            entity_id,
            {"status": old_status},
            {"status": new_status},
            actor_kind,
            actor_id,
            note or f"Status changed: {old_status} -> {new_status}",
            trace_id,
        )

    # Query methods

    def query_by_entity(
        self,
        entity_kind: str,
        entity_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get audit history for a specific entity, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.entity_kind == entity_kind,
                AuditLogModel.entity_id == entity_id,
            )
            .order_by(desc(AuditLogModel.ts))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_trace(
        self,
        trace_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries for a trace ID, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(AuditLogModel.trace_id == trace_id)
            .order_by(desc(AuditLogModel.ts))
            .offset(offset)
            .limit(limit)
            .all()
        )

    def query_by_actor(
        self,
        actor_kind: str,
        actor_id: str,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLogModel]:
        """Get all audit entries by a specific actor, newest first."""
        return (
            self.db.query(AuditLogModel)
            .filter(
                AuditLogModel.actor_kind == actor_kind,
                AuditLogModel.actor_id == actor_id,
            )
            .order_by(desc(AuditLogModel.ts))
            .offset(offset)
            .limit(limit)
            .all()
        )
