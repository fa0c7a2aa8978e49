"""
Configuration management for the identity repository.
"""

from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(default="sqlite:///./idrepo.db", env="DATABASE_URL")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")

    # Addressing
    shard_modulus: int = Field(default=1000, env="SHARD_MODULUS")

    # Record lifecycle
    active_status: str = Field(default="ACTIVATED", env="ACTIVE_STATUS")
    default_actor_id: str = Field(default="idrepo", env="DEFAULT_ACTOR_ID")

    # Artifacts
    biometric_categories: str = Field(
        default="individualBiometrics",
        env="BIOMETRIC_CATEGORIES",
        description="Comma-separated list of payload categories holding biometric containers.",
    )
    biometric_container_format: str = Field(
        default="cbeff", env="BIOMETRIC_CONTAINER_FORMAT"
    )
    blob_store_uri: str = Field(
        default="file:///var/lib/idrepo/objects", env="BLOB_STORE_URI"
    )

    # Security
    encryption_key: Optional[str] = Field(
        default=None,
        env="ENCRYPTION_KEY",
        description="Fernet key used by the record store to encode identifiers. Unset = stored as composite.",
    )

    # Reconciliation
    merge_max_passes: int = Field(default=5, env="MERGE_MAX_PASSES")
    update_conflict_retries: int = Field(default=3, env="UPDATE_CONFLICT_RETRIES")

    # Credential reissue
    credential_partner_id: str = Field(
        default="mpartner-default-print", env="CREDENTIAL_PARTNER_ID"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings


def _parse_categories(raw: str) -> List[str]:
    """
    Parse a comma-separated category list.

    Examples:
        "individualBiometrics" -> ["individualBiometrics"]
        " a , b ,, " -> ["a", "b"]
        "" -> []
    """
    if not raw or not raw.strip():
        return []

    categories = [category.strip() for category in raw.split(",")]
    return [c for c in categories if c]


class EngineConfig(BaseModel):
    """Read-only configuration handed to the reconciliation engine at construction."""

    shard_modulus: int = 1000
    active_status: str = "ACTIVATED"
    biometric_categories: List[str] = ["individualBiometrics"]
    biometric_container_format: str = "cbeff"
    merge_max_passes: int = 5
    update_conflict_retries: int = 3
    credential_partner_id: str = "mpartner-default-print"
    default_actor_id: str = "idrepo"

    @classmethod
    def from_settings(cls, source: Settings) -> "EngineConfig":
        return cls(
            shard_modulus=source.shard_modulus,
            active_status=source.active_status,
            biometric_categories=_parse_categories(source.biometric_categories),
            biometric_container_format=source.biometric_container_format,
            merge_max_passes=source.merge_max_passes,
            update_conflict_retries=source.update_conflict_retries,
            credential_partner_id=source.credential_partner_id,
            default_actor_id=source.default_actor_id,
        )
