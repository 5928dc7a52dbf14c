"""branchsync configuration loaded from environment variables and ``.env``."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from branch_engine.errors import ConfigurationError

logger = logging.getLogger(__name__)

NEON_API_KEYS_URL = "https://console.neon.tech/app/settings/api-keys"
DEFAULT_NEON_API_URL = "https://console.neon.tech/api/v2"


class EnvUpdateMode(str, Enum):
    """How the final ``DATABASE_URL`` rewrite is performed."""

    AUTO = "auto"
    MANUAL = "manual"


class NeonCredentials(BaseModel):
    """Validated provider credentials required by every networked workflow."""

    api_key: SecretStr
    project_id: str = Field(..., min_length=1)


class Settings(BaseSettings):
    """Settings read from the process environment and the working-copy ``.env``.

    Provider and database keys use their conventional unprefixed names
    (``NEON_API_KEY``, ``DATABASE_URL`` ...).  Tool knobs are read from
    ``BRANCHSYNC_*`` variables.  Process environment values win over the
    ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Provider
    neon_api_key: SecretStr | None = None
    neon_project_id: str | None = None
    neon_api_url: str = DEFAULT_NEON_API_URL
    neon_database_name: str = "neondb"
    neon_role_name: str = "neondb_owner"

    # Connection strings
    database_url: str | None = None
    production_database_url: str | None = None
    development_database_url: str | None = None

    # Workflow behaviour
    env_update_mode: EnvUpdateMode = Field(
        default=EnvUpdateMode.AUTO,
        validation_alias=AliasChoices("branchsync_env_update_mode", "env_update_mode"),
    )
    request_timeout: float = Field(
        default=30.0,
        gt=0,
        validation_alias=AliasChoices("branchsync_request_timeout", "request_timeout"),
    )
    ready_timeout: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("branchsync_ready_timeout", "ready_timeout"),
    )
    ready_poll_interval: float = Field(
        default=2.0,
        gt=0,
        validation_alias=AliasChoices("branchsync_ready_poll_interval", "ready_poll_interval"),
    )

    @field_validator("neon_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, v: str | SecretStr | None) -> SecretStr | None:
        if v is None:
            return None
        if isinstance(v, SecretStr):
            return v if v.get_secret_value().strip() else None
        return SecretStr(v) if v.strip() else None

    @field_validator("neon_project_id", "database_url", "production_database_url", "development_database_url")
    @classmethod
    def _blank_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def require_neon_credentials(self) -> NeonCredentials:
        """Return provider credentials or fail naming the missing variable."""
        if self.neon_api_key is None:
            raise ConfigurationError(
                "NEON_API_KEY environment variable is required",
                hints=[f"Get your API key from: {NEON_API_KEYS_URL}"],
            )
        if not self.neon_project_id:
            raise ConfigurationError(
                "NEON_PROJECT_ID environment variable is required",
                hints=["Find your project ID in the Neon Console Settings page"],
            )
        return NeonCredentials(api_key=self.neon_api_key, project_id=self.neon_project_id)


def load_settings(env_file: Path | None = None, **overrides: object) -> Settings:
    """Load settings from environment and *env_file*, with optional overrides for testing."""
    if env_file is not None:
        settings = Settings(_env_file=env_file, **overrides)  # type: ignore[call-arg]
    else:
        settings = Settings(**overrides)  # type: ignore[arg-type]

    logger.debug(
        "Loaded settings (project=%s, env_update_mode=%s)",
        settings.neon_project_id or "<unset>",
        settings.env_update_mode.value,
    )
    return settings
