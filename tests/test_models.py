"""
Tests for the identity database models.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from idrepo.db.models import (
    CredentialRequestModel,
    DocumentArtifactModel,
    IdentityRecordModel,
)

NOW = datetime(2026, 3, 1, 8, 30, tzinfo=timezone.utc)


def _record(**overrides):
    values = dict(
        ref_id="ref-1",
        encrypted_identifier="ENCODED-IDENTIFIER",
        identifier_hash="3_ABCDEF",
        payload='{"phone":"1"}',
        payload_hash="HASH",
        status_code="ACTIVATED",
        created_by="tester",
        created_at=NOW,
    )
    values.update(overrides)
    return IdentityRecordModel(**values)


def _document(category):
    return DocumentArtifactModel(
        category=category,
        type_code="DOC001",
        doc_id=f"{category}.pdf",
        doc_name=category,
        format_code="pdf",
        doc_hash="H",
        created_by="tester",
        created_at=NOW,
    )


class TestIdentityRecordModel:
    """Tests for IdentityRecordModel."""

    def test_version_starts_at_one_and_increments(self, db_session):
        record = _record()
        db_session.add(record)
        db_session.commit()
        assert record.version == 1

        record.status_code = "BLOCKED"
        db_session.commit()
        assert record.version == 2

    def test_identifier_hash_unique(self, db_session):
        db_session.add(_record())
        db_session.commit()

        db_session.add(_record(ref_id="ref-2"))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_payload_trees(self):
        record = _record(anonymous_profile='{"gender":"F"}')
        assert record.payload_tree == {"phone": "1"}
        assert record.anonymous_profile_tree == {"gender": "F"}
        assert _record().anonymous_profile_tree is None

    def test_to_dict_leaves_out_encoded_identifier(self, db_session):
        record = _record()
        record.documents.append(_document("proofOfAddress"))
        db_session.add(record)
        db_session.commit()

        result = record.to_dict()

        assert "encrypted_identifier" not in result
        assert "ENCODED-IDENTIFIER" not in str(result)
        assert result["identifier_hash"] == "3_ABCDEF"
        assert result["has_anonymous_profile"] is False
        assert result["documents"][0]["category"] == "proofOfAddress"

    def test_artifacts_follow_record(self, db_session):
        record = _record()
        record.documents.extend([_document("proofOfAddress"), _document("proofOfIdentity")])
        db_session.add(record)
        db_session.commit()
        assert db_session.query(DocumentArtifactModel).count() == 2

        record.documents.pop(0)
        db_session.commit()
        assert db_session.query(DocumentArtifactModel).count() == 1

        db_session.delete(record)
        db_session.commit()
        assert db_session.query(DocumentArtifactModel).count() == 0


class TestCredentialRequestModel:
    """Tests for CredentialRequestModel."""

    def _request(self, request_id, partner_id="partner-a"):
        return CredentialRequestModel(
            id=request_id,
            individual_id="ENCODED",
            individual_id_hash="ABCDEF",
            partner_id=partner_id,
            status="NEW",
            created_by="tester",
            created_at=NOW,
        )

    def test_one_request_per_partner(self, db_session):
        db_session.add(self._request("req-1"))
        db_session.commit()

        db_session.add(self._request("req-2"))
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_to_dict(self):
        result = self._request("req-1").to_dict()
        assert result["status"] == "NEW"
        assert result["id_expiry_at"] is None
        assert "individual_id" not in result
