"""
Tests for settings and engine configuration.
"""

import pytest

from idrepo.config import EngineConfig, Settings, _parse_categories


class TestSettings:
    """Tests for environment-driven Settings."""

    def test_defaults(self, monkeypatch):
        for name in ("SHARD_MODULUS", "ACTIVE_STATUS", "MERGE_MAX_PASSES", "UPDATE_CONFLICT_RETRIES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.shard_modulus == 1000
        assert settings.active_status == "ACTIVATED"
        assert settings.merge_max_passes == 5
        assert settings.update_conflict_retries == 3

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SHARD_MODULUS", "10")
        monkeypatch.setenv("BIOMETRIC_CATEGORIES", "individualBiometrics,parentBiometrics")

        settings = Settings(_env_file=None)

        assert settings.shard_modulus == 10
        assert settings.biometric_categories == "individualBiometrics,parentBiometrics"

    def test_fields(self):
        assert set(Settings.model_fields) == {
            "database_url",
            "log_level",
            "log_format",
            "shard_modulus",
            "active_status",
            "default_actor_id",
            "biometric_categories",
            "biometric_container_format",
            "blob_store_uri",
            "encryption_key",
            "merge_max_passes",
            "update_conflict_retries",
            "credential_partner_id",
        }


class TestParseCategories:
    """Tests for _parse_categories()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("individualBiometrics", ["individualBiometrics"]),
            (" a , b ,, ", ["a", "b"]),
            ("", []),
            ("   ", []),
        ],
    )
    def test_parse(self, raw, expected):
        assert _parse_categories(raw) == expected


class TestEngineConfig:
    """Tests for EngineConfig."""

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            shard_modulus=16,
            biometric_categories="individualBiometrics, parentBiometrics",
            credential_partner_id="partner-x",
        )

        config = EngineConfig.from_settings(settings)

        assert config.shard_modulus == 16
        assert config.biometric_categories == ["individualBiometrics", "parentBiometrics"]
        assert config.credential_partner_id == "partner-x"
        assert config.active_status == settings.active_status

    def test_defaults(self):
        config = EngineConfig()
        assert config.shard_modulus == 1000
        assert config.biometric_categories == ["individualBiometrics"]
