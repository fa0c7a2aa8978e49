"""
Credential reissue trigger.

After a record is saved, pending credential requests for its identifier are
refreshed, revoked or created depending on whether the record is active:

    existing requests | active | action
    ------------------+--------+-----------------------------------
    none              | yes    | create one NEW request, no expiry
    some              | yes    | all -> NEW, expiry unchanged
    some              | no     | all -> DELETED
    none              | no     | nothing
"""

from __future__ import annotations

from typing import List, Optional

import structlog

from ..db.models import CredentialRequestModel, IdentityRecordModel
from .addressing import IdentityAddress
from .enums import CredentialRequestStatus
from .primitives import generate_ulid, utc_now
from .stores import SqlCredentialRequestStore

logger = structlog.get_logger()


class CredentialReissueTrigger:
    """Keeps credential requests in step with a record's status."""

    def __init__(
        self,
        store: SqlCredentialRequestStore,
        active_status: str,
        partner_id: str,
    ):
        self.store = store
        self.active_status = active_status
        self.partner_id = partner_id

    def evaluate(
        self,
        record: IdentityRecordModel,
        address: IdentityAddress,
        actor_id: str,
        request_id: Optional[str] = None,
    ) -> List[CredentialRequestModel]:
        """Apply the transition for ``record`` and return the touched requests."""
        individual_id_hash = address.salted_hash
        existing = self.store.find_by_hash(individual_id_hash)
        active = record.status_code == self.active_status
        log = logger.bind(ref_id=record.ref_id, active=active, existing=len(existing))

        if not existing and active:
            now = utc_now()
            request = CredentialRequestModel(
                id=generate_ulid(),
                individual_id=record.encrypted_identifier,
                individual_id_hash=individual_id_hash,
                partner_id=self.partner_id,
                request_id=request_id,
                status=CredentialRequestStatus.NEW.value,
                id_expiry_at=None,
                created_by=actor_id,
                created_at=now,
            )
            self.store.save(request)
            log.info("credential_request_created", partner_id=self.partner_id)
            return [request]

        if existing:
            target = CredentialRequestStatus.NEW if active else CredentialRequestStatus.DELETED
            now = utc_now()
            for request in existing:
                request.status = target.value
                request.updated_by = actor_id
                request.updated_at = now
                self.store.save(request)
            log.info("credential_requests_transitioned", status=target.value)
            return existing

        log.debug("credential_request_unchanged")
        return []
