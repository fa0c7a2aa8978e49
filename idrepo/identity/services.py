"""
Identity service layer.

Orchestrates addressing, payload reconciliation, artifact ingestion, history
and the credential reissue trigger for one identity record. Each create or
update is a single unit of work on the session: committed on success, rolled
back on any error. Audit logging is part of that unit of work.
"""

from __future__ import annotations

from typing import List, Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ..config import EngineConfig, Settings, get_settings
from ..db.audit_service import AuditService
from ..db.models import IdentityHistoryModel, IdentityRecordModel
from .addressing import IdentityAddress, ShardAddresser
from .artifacts import ArtifactIngestor, blob_key
from .biometrics import BiometricContainerValidator, CbeffXmlValidator
from .blob_store import BlobStore, BlobStoreError, create_blob_store
from .encryption import FieldEncryptor
from .enums import ActorKind, ArtifactKind
from .errors import (
    ConcurrentUpdateError,
    IdRepoError,
    InvalidInputError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
    StorageAccessError,
)
from .hashing import Sha256Hasher
from .merge import PayloadReconciler
from .primitives import name_based_id, serialize_tree, utc_now
from .reissue import CredentialReissueTrigger
from .schemas import IdentityRequest
from .stores import SqlCredentialRequestStore, SqlRecordStore, SqlSaltStore

logger = structlog.get_logger()

ENTITY_KIND = "IdentityRecord"


class IdentityService:
    """Creates, updates and reads identity records."""

    def __init__(
        self,
        db: Session,
        config: EngineConfig,
        blob_store: BlobStore,
        validator: Optional[BiometricContainerValidator] = None,
        hasher: Optional[Sha256Hasher] = None,
        encryptor: Optional[FieldEncryptor] = None,
        audit: Optional[AuditService] = None,
    ):
        self.db = db
        self.config = config
        self.blob_store = blob_store
        self.hasher = hasher or Sha256Hasher()
        self.audit = audit or AuditService(db)

        self.salt_store = SqlSaltStore(db)
        self.record_store = SqlRecordStore(db, encryptor)
        self.credential_store = SqlCredentialRequestStore(db)

        self.addresser = ShardAddresser(self.salt_store, self.hasher, config.shard_modulus)
        self.reconciler = PayloadReconciler(max_passes=config.merge_max_passes)
        self.ingestor = ArtifactIngestor(
            blob_store,
            validator or CbeffXmlValidator(),
            self.hasher,
            self.record_store,
            config,
        )
        self.reissue = CredentialReissueTrigger(
            self.credential_store, config.active_status, config.credential_partner_id
        )

    # Writes

    def add_identity(
        self,
        identifier: str,
        request: IdentityRequest,
        actor_id: Optional[str] = None,
        actor_kind: str = ActorKind.SERVICE.value,
        trace_id: Optional[str] = None,
        is_draft: bool = False,
    ) -> IdentityRecordModel:
        """Create a new record for ``identifier``."""
        actor_id = actor_id or self.config.default_actor_id
        if request.identity is None:
            raise InvalidInputError("An identity payload is required to create a record", path="identity")

        try:
            address = self.addresser.address(identifier)
            log = logger.bind(identifier_hash=address.hashed_identifier)
            if self.record_store.exists(address.hashed_identifier):
                raise RecordAlreadyExistsError("A record already exists for this identifier", path="identifier")

            now = utc_now()
            payload = serialize_tree(request.identity)
            record = IdentityRecordModel(
                ref_id=name_based_id(identifier, now.isoformat()),
                encrypted_identifier=self.record_store.encode_identifier(address.encryption_composite),
                identifier_hash=address.hashed_identifier,
                payload=payload.decode("utf-8"),
                payload_hash=self.hasher.hash(payload),
                registration_id=request.registration_id,
                status_code=request.status or self.config.active_status,
                anonymous_profile=(
                    serialize_tree(request.anonymous_profile).decode("utf-8")
                    if request.anonymous_profile is not None
                    else None
                ),
                created_by=actor_id,
                created_at=now,
            )
            log = log.bind(ref_id=record.ref_id)
            log.info("identity_create_start", documents=len(request.documents))

            ingested = self.ingestor.ingest(
                address, request.identity, request.documents, record.ref_id, actor_id, is_draft
            )
            self.ingestor.upsert_documents(record, ingested.documents, actor_id, now)
            self.ingestor.upsert_biometrics(record, ingested.biometrics, actor_id, now)

            self.record_store.save(record)
            self.record_store.append_history(record, now, actor_id)
            self.reissue.evaluate(record, address, actor_id, request_id=trace_id)

            self.audit.log_create(
                entity_kind=ENTITY_KIND,
                entity_id=record.ref_id,
                after=record.to_dict(),
                actor_kind=actor_kind,
                actor_id=actor_id,
                trace_id=trace_id,
            )
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("identity_create_conflict", error=str(e.orig))
            raise RecordAlreadyExistsError(
                "A record already exists for this identifier", path="identifier"
            ) from e
        except IdRepoError as e:
            self.db.rollback()
            logger.warning("identity_create_failed", **e.to_dict())
            raise
        except Exception:
            self.db.rollback()
            logger.exception("identity_create_error")
            raise

        log.info("identity_created", status=record.status_code)
        return record

    def update_identity(
        self,
        identifier: str,
        request: IdentityRequest,
        actor_id: Optional[str] = None,
        actor_kind: str = ActorKind.SERVICE.value,
        trace_id: Optional[str] = None,
        is_draft: bool = False,
    ) -> IdentityRecordModel:
        """Reconcile ``request`` into the record of ``identifier``.

        A concurrent writer that wins the optimistic lock makes this call
        start over from the record load, up to ``update_conflict_retries``
        extra attempts.
        """
        actor_id = actor_id or self.config.default_actor_id
        attempts = self.config.update_conflict_retries + 1

        for attempt in range(1, attempts + 1):
            try:
                record = self._update_once(identifier, request, actor_id, actor_kind, trace_id, is_draft)
                self.db.commit()
                return record
            except StaleDataError:
                self.db.rollback()
                logger.warning("identity_update_conflict", attempt=attempt, max_attempts=attempts)
            except IdRepoError as e:
                self.db.rollback()
                logger.warning("identity_update_failed", **e.to_dict())
                raise
            except Exception:
                self.db.rollback()
                logger.exception("identity_update_error")
                raise

        raise ConcurrentUpdateError(
            f"Record changed concurrently on {attempts} attempts", path="identifier"
        )

    def _update_once(
        self,
        identifier: str,
        request: IdentityRequest,
        actor_id: str,
        actor_kind: str,
        trace_id: Optional[str],
        is_draft: bool,
    ) -> IdentityRecordModel:
        address = self.addresser.address(identifier)
        record = self._load(address)
        log = logger.bind(identifier_hash=address.hashed_identifier, ref_id=record.ref_id)
        log.info("identity_update_start")

        before = record.to_dict()
        old_status = record.status_code
        now = utc_now()
        touched = False

        if request.registration_id:
            record.registration_id = request.registration_id

        if request.status and request.status != record.status_code:
            record.status_code = request.status
            touched = True

        if request.anonymous_profile is not None:
            stored_profile = record.anonymous_profile_tree
            if stored_profile is None:
                record.anonymous_profile = serialize_tree(request.anonymous_profile).decode("utf-8")
                touched = True
            else:
                merged = self.reconciler.reconcile(request.anonymous_profile, stored_profile)
                if merged.changed:
                    record.anonymous_profile = serialize_tree(merged.stored).decode("utf-8")
                    touched = True

        if request.identity is not None:
            merged = self.reconciler.reconcile(request.identity, record.payload_tree)
            if merged.changed:
                payload = serialize_tree(merged.stored)
                record.payload = payload.decode("utf-8")
                record.payload_hash = self.hasher.hash(payload)
                touched = True
                log.info("identity_payload_merged", rounds=merged.rounds, converged=merged.converged)

        if request.documents:
            canonical = record.payload_tree
            documents = self.ingestor.resync_biometric_containers(record, canonical, request.documents)
            ingested = self.ingestor.ingest(address, canonical, documents, record.ref_id, actor_id, is_draft)
            self.ingestor.upsert_documents(record, ingested.documents, actor_id, now)
            self.ingestor.upsert_biometrics(record, ingested.biometrics, actor_id, now)
            touched = touched or bool(ingested.documents or ingested.biometrics)

        if touched:
            record.updated_by = actor_id
            record.updated_at = now

        self.record_store.save(record)
        self.record_store.append_history(record, now, actor_id)
        self.reissue.evaluate(record, address, actor_id, request_id=trace_id)

        if record.status_code != old_status:
            self.audit.log_status_change(
                entity_kind=ENTITY_KIND,
                entity_id=record.ref_id,
                old_status=old_status,
                new_status=record.status_code,
                actor_kind=actor_kind,
                actor_id=actor_id,
                trace_id=trace_id,
            )
        self.audit.log_update(
            entity_kind=ENTITY_KIND,
            entity_id=record.ref_id,
            before=before,
            after=record.to_dict(),
            actor_kind=actor_kind,
            actor_id=actor_id,
            trace_id=trace_id,
        )

        log.info("identity_updated", changed=touched, status=record.status_code)
        return record

    # Reads

    def _load(self, address: IdentityAddress) -> IdentityRecordModel:
        record = self.record_store.find_by_hash(address.hashed_identifier)
        if record is None:
            raise RecordNotFoundError("No record exists for this identifier", path="identifier")
        return record

    def retrieve_identity(self, identifier: str) -> IdentityRecordModel:
        """Get the record of a plaintext identifier."""
        return self._load(self.addresser.address(identifier))

    def get_history(self, identifier: str) -> List[IdentityHistoryModel]:
        """Get all history snapshots of a record, oldest first."""
        record = self.retrieve_identity(identifier)
        return self.record_store.list_history(record.ref_id)

    def load_artifact(self, identifier: str, category: str) -> bytes:
        """Read the stored bytes of the document or biometric artifact of ``category``."""
        address = self.addresser.address(identifier)
        record = self._load(address)

        for document in record.documents:
            if document.category == category:
                key = blob_key(ArtifactKind.DOCUMENT, document.doc_id)
                break
        else:
            for biometric in record.biometrics:
                if biometric.file_type == category:
                    key = blob_key(ArtifactKind.BIOMETRIC, biometric.bio_file_id)
                    break
            else:
                raise RecordNotFoundError(f"No artifact stored for category '{category}'", path=category)

        try:
            return self.blob_store.get(address.salted_hash, key)
        except BlobStoreError as e:
            raise StorageAccessError(f"Artifact could not be read: {e}", path=category) from e

    def verify_identifier(self, identifier: str, hashed_identifier: str) -> bool:
        return self.addresser.verify(identifier, hashed_identifier)


def build_identity_service(db: Session, source: Optional[Settings] = None) -> IdentityService:
    """Wire an IdentityService from environment settings."""
    source = source or get_settings()
    encryptor = FieldEncryptor(source.encryption_key) if source.encryption_key else None
    return IdentityService(
        db,
        EngineConfig.from_settings(source),
        create_blob_store(source.blob_store_uri),
        encryptor=encryptor,
    )
