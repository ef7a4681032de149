"""Process-level settings for ebdeploy.

Two pydantic-settings models:

- **EbDeploySettings:** logging and reporting knobs, ``EBDEPLOY_`` prefix
- **AwsEnvironmentCredentials:** the credential fallback read from the
  standard ``AWS_ACCESS_KEY_ID`` / ``AWS_SECRET_ACCESS_KEY`` variables when a
  deployment request does not carry explicit keys

Example:
    >>> from ebdeploy.core.settings import EbDeploySettings
    >>> settings = EbDeploySettings()
    >>> settings.log_level
    'INFO'
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EbDeploySettings(BaseSettings):
    """Settings shared by the CLI and programmatic callers.

    Fields
    ──────
    log_level    : Structlog log level
    json_logs    : Force JSON (True) or console (False) output; None = auto
    service_name : ``service.name`` field stamped on every log event
    """

    model_config = SettingsConfigDict(
        env_prefix="EBDEPLOY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logs: bool | None = None
    service_name: str = "ebdeploy"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class AwsEnvironmentCredentials(BaseSettings):
    """AWS keys taken from the process environment."""

    model_config = SettingsConfigDict(extra="ignore")

    aws_access_key_id: str | None = Field(default=None, description="AWS_ACCESS_KEY_ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS_SECRET_ACCESS_KEY")
