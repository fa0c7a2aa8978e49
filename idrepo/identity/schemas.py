"""
Request and response schemas for identity create and update.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, constr


class DocumentPayload(BaseModel):
    """A submitted document: the payload category it belongs to and its base64 content."""

    model_config = ConfigDict(extra="forbid")

    category: constr(min_length=1, max_length=64) = Field(
        ..., description="Payload key whose descriptor describes this document"
    )
    value: str = Field(..., description="Base64-encoded document bytes")


class IdentityRequest(BaseModel):
    """Create or update request for one identity record.

    Every field is optional on update; an absent field leaves the stored
    value as it is.
    """

    model_config = ConfigDict(extra="forbid")

    registration_id: Optional[constr(min_length=1, max_length=64)] = Field(
        None, description="Registration the submission originates from"
    )
    status: Optional[constr(min_length=1, max_length=32)] = Field(
        None, description="New record status"
    )
    identity: Optional[Dict[str, Any]] = Field(
        None, description="Partial identity payload"
    )
    anonymous_profile: Optional[Dict[str, Any]] = Field(
        None, description="Anonymised statistics profile"
    )
    documents: List[DocumentPayload] = Field(
        default_factory=list, description="Documents and biometric containers"
    )


class ArtifactSummary(BaseModel):
    """Reference to a stored document or biometric artifact."""

    category: str
    file_id: str
    name: str
    hash: str
    updated_at: Optional[datetime] = None


class IdentityResponse(BaseModel):
    """Read view of a record. The identifier itself never appears here."""

    ref_id: str
    identifier_hash: str
    registration_id: Optional[str] = None
    status: str
    identity: Dict[str, Any]
    anonymous_profile: Optional[Dict[str, Any]] = None
    documents: List[ArtifactSummary] = Field(default_factory=list)
    biometrics: List[ArtifactSummary] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Any) -> "IdentityResponse":
        return cls(
            ref_id=record.ref_id,
            identifier_hash=record.identifier_hash,
            registration_id=record.registration_id,
            status=record.status_code,
            identity=record.payload_tree,
            anonymous_profile=record.anonymous_profile_tree,
            documents=[
                ArtifactSummary(
                    category=d.category,
                    file_id=d.doc_id,
                    name=d.doc_name,
                    hash=d.doc_hash,
                    updated_at=d.updated_at or d.created_at,
                )
                for d in record.documents
            ],
            biometrics=[
                ArtifactSummary(
                    category=b.file_type,
                    file_id=b.bio_file_id,
                    name=b.file_name,
                    hash=b.file_hash,
                    updated_at=b.updated_at or b.created_at,
                )
                for b in record.biometrics
            ],
            updated_at=record.updated_at or record.created_at,
        )
