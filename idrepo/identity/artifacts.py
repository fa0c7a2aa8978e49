"""
Document and biometric artifact ingestion.

Submitted documents are decoded, validated, written to the blob store under
the record's salted hash and turned into artifact rows. The blob write happens
before anything is flushed to the database, so a storage failure aborts the
unit of work without a record ever pointing at a missing blob.
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import Any, List, Mapping, NamedTuple, Optional, Sequence

import structlog

from ..config import EngineConfig
from ..db.models import BiometricArtifactModel, DocumentArtifactModel, IdentityRecordModel
from .addressing import IdentityAddress
from .biometrics import BiometricContainerError, BiometricContainerValidator
from .blob_store import BlobStore, BlobStoreError
from .enums import ArtifactKind
from .errors import InvalidInputError, StorageAccessError
from .hashing import Sha256Hasher
from .primitives import SEPARATOR, timestamped_id, utc_now
from .schemas import DocumentPayload
from .stores import SqlRecordStore

logger = structlog.get_logger()

# Descriptor attributes inside the identity payload entry of a document category
FILE_NAME_ATTRIBUTE = "value"
FILE_FORMAT_ATTRIBUTE = "format"
TYPE_ATTRIBUTE = "type"


class IngestionResult(NamedTuple):
    documents: List[DocumentArtifactModel]
    biometrics: List[BiometricArtifactModel]


def decode_document_value(value: str) -> bytes:
    """Decode base64 in either the standard or the URL-safe alphabet, padded or not."""
    normalized = value.strip().replace("-", "+").replace("_", "/")
    normalized += "=" * (-len(normalized) % 4)
    return base64.b64decode(normalized, validate=True)


def encode_document_value(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def _value_path(index: int) -> str:
    return f"documents/{index}/value"


def blob_key(kind: ArtifactKind, file_id: str) -> str:
    return f"{kind.value}/{file_id}"


class ArtifactIngestor:
    """Turns submitted documents into stored blobs and artifact rows."""

    def __init__(
        self,
        blob_store: BlobStore,
        validator: BiometricContainerValidator,
        hasher: Sha256Hasher,
        record_store: SqlRecordStore,
        config: EngineConfig,
    ):
        self.blob_store = blob_store
        self.validator = validator
        self.hasher = hasher
        self.record_store = record_store
        self.config = config

    def is_biometric(self, category: str) -> bool:
        return category in self.config.biometric_categories

    def _descriptor(self, payload: Mapping[str, Any], category: str, index: int) -> Mapping[str, Any]:
        descriptor = payload.get(category)
        if not isinstance(descriptor, Mapping):
            raise InvalidInputError(
                f"Payload entry for document category '{category}' must be an object",
                path=f"identity/{category}",
                index=index,
            )
        for attribute in (FILE_NAME_ATTRIBUTE, FILE_FORMAT_ATTRIBUTE):
            if not isinstance(descriptor.get(attribute), str) or not descriptor[attribute]:
                raise InvalidInputError(
                    f"Payload entry for document category '{category}' has no '{attribute}'",
                    path=f"identity/{category}/{attribute}",
                    index=index,
                )
        return descriptor

    def _decode(self, document: DocumentPayload, index: int) -> bytes:
        try:
            return decode_document_value(document.value)
        except (binascii.Error, ValueError) as e:
            raise InvalidInputError(
                f"Document value is not valid base64: {e}", path=_value_path(index), index=index
            ) from e

    def _store(self, namespace: str, kind: ArtifactKind, file_id: str, data: bytes, index: int) -> None:
        try:
            self.blob_store.put(namespace, blob_key(kind, file_id), data)
        except BlobStoreError as e:
            logger.error("artifact_store_failed", kind=kind.value, index=index, error=str(e))
            raise StorageAccessError(
                f"Artifact could not be stored: {e}", path=_value_path(index), index=index
            ) from e

    def ingest(
        self,
        address: IdentityAddress,
        canonical_payload: Mapping[str, Any],
        documents: Sequence[DocumentPayload],
        ref_id: str,
        actor_id: str,
        is_draft: bool = False,
    ) -> IngestionResult:
        """Store every submitted document whose category the payload describes.

        Documents for categories absent from the payload are skipped. Returned
        artifacts are not attached to any record.
        """
        result = IngestionResult(documents=[], biometrics=[])
        namespace = address.salted_hash

        for index, document in enumerate(documents):
            if document.category not in canonical_payload:
                logger.debug("document_skipped", category=document.category, index=index)
                continue

            descriptor = self._descriptor(canonical_payload, document.category, index)
            file_name = descriptor[FILE_NAME_ATTRIBUTE]
            file_format = descriptor[FILE_FORMAT_ATTRIBUTE]
            file_id = f"{timestamped_id(file_name, document.category, str(index))}.{file_format}"
            data = self._decode(document, index)
            now = utc_now()

            if self.is_biometric(document.category):
                try:
                    self.validator.validate(data)
                except BiometricContainerError as e:
                    raise InvalidInputError(
                        f"Invalid biometric container: {e}", path=_value_path(index), index=index
                    ) from e
                self._store(namespace, ArtifactKind.BIOMETRIC, file_id, data, index)
                biometric = BiometricArtifactModel(
                    ref_id=ref_id,
                    file_type=document.category,
                    bio_file_id=file_id,
                    file_name=file_name,
                    file_hash=self.hasher.hash(data),
                    created_by=actor_id,
                    created_at=now,
                )
                result.biometrics.append(biometric)
                if not is_draft:
                    self.record_store.append_biometric_history(biometric, now)
            else:
                self._store(namespace, ArtifactKind.DOCUMENT, file_id, data, index)
                artifact = DocumentArtifactModel(
                    ref_id=ref_id,
                    category=document.category,
                    type_code=descriptor.get(TYPE_ATTRIBUTE),
                    doc_id=file_id,
                    doc_name=file_name,
                    format_code=file_format,
                    doc_hash=self.hasher.hash(data),
                    created_by=actor_id,
                    created_at=now,
                )
                result.documents.append(artifact)
                if not is_draft:
                    self.record_store.append_document_history(artifact, now)

        logger.info(
            "artifacts_ingested",
            ref_id=ref_id,
            documents=len(result.documents),
            biometrics=len(result.biometrics),
            draft=is_draft,
        )
        return result

    def resync_biometric_containers(
        self,
        record: IdentityRecordModel,
        canonical_payload: Mapping[str, Any],
        documents: Sequence[DocumentPayload],
    ) -> List[DocumentPayload]:
        """Merge resubmitted containers into the stored ones.

        Returns the document list with the value of every resynced container
        replaced by the merged container; the input list is left untouched.
        """
        container_format = self.config.biometric_container_format.lower()
        namespace = record.identifier_hash.split(SEPARATOR, 1)[1]
        resynced = list(documents)

        for biometric in record.biometrics:
            descriptor = canonical_payload.get(biometric.file_type)
            if not isinstance(descriptor, Mapping):
                continue
            declared = str(descriptor.get(FILE_FORMAT_ATTRIBUTE, "")).lower()
            if declared != container_format or not biometric.bio_file_id.lower().endswith(container_format):
                continue

            for index, document in enumerate(resynced):
                if document.category != biometric.file_type:
                    continue
                try:
                    existing = self.blob_store.get(
                        namespace, blob_key(ArtifactKind.BIOMETRIC, biometric.bio_file_id)
                    )
                except BlobStoreError as e:
                    raise StorageAccessError(
                        f"Stored container could not be read: {e}", path=_value_path(index), index=index
                    ) from e
                try:
                    records = self.validator.extract(decode_document_value(document.value))
                    merged = self.validator.merge(records, existing)
                except (BiometricContainerError, binascii.Error, ValueError) as e:
                    raise InvalidInputError(
                        f"Biometric container could not be merged: {e}",
                        path=_value_path(index),
                        index=index,
                    ) from e
                resynced[index] = document.model_copy(update={"value": encode_document_value(merged)})
                logger.debug("biometric_container_resynced", category=biometric.file_type, index=index)

        return resynced

    def upsert_documents(
        self,
        record: IdentityRecordModel,
        documents: Sequence[DocumentArtifactModel],
        actor_id: str,
        now: Optional[datetime] = None,
    ) -> None:
        """Update the artifact of the same category in place, append otherwise."""
        now = now or utc_now()
        existing = {d.category: d for d in record.documents}
        for document in documents:
            current = existing.get(document.category)
            if current is None:
                record.documents.append(document)
                existing[document.category] = document
                continue
            current.doc_id = document.doc_id
            current.doc_name = document.doc_name
            current.type_code = document.type_code
            current.format_code = document.format_code
            current.doc_hash = document.doc_hash
            current.updated_by = actor_id
            current.updated_at = now

    def upsert_biometrics(
        self,
        record: IdentityRecordModel,
        biometrics: Sequence[BiometricArtifactModel],
        actor_id: str,
        now: Optional[datetime] = None,
    ) -> None:
        """Update the artifact of the same file type in place, append otherwise."""
        now = now or utc_now()
        existing = {b.file_type: b for b in record.biometrics}
        for biometric in biometrics:
            current = existing.get(biometric.file_type)
            if current is None:
                record.biometrics.append(biometric)
                existing[biometric.file_type] = biometric
                continue
            current.bio_file_id = biometric.bio_file_id
            current.file_name = biometric.file_name
            current.file_hash = biometric.file_hash
            current.updated_by = actor_id
            current.updated_at = now
