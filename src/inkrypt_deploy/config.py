"""Settings for deployment commands (pydantic-settings).

Reads the same environment variables the CI workflow exports. Command-line
flags are merged over these values by the command layer; the reconciler and
client never read the environment themselves.

Usage:
    from inkrypt_deploy.config import get_settings

    settings = get_settings()
    token = settings.cloudflare_api_token
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

TRUTHY_VALUES = frozenset({"1", "true", "yes", "y", "on"})


def parse_bool(value: Any) -> bool:
    """Interpret a flag/env value; only the conventional truthy words count as true."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in TRUTHY_VALUES


class DeploySettings(BaseSettings):
    """Configuration record for one command invocation."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # === Credentials / API ===

    cloudflare_api_token: str | None = Field(
        default=None,
        alias="CLOUDFLARE_API_TOKEN",
        description="Bearer token for the Cloudflare API",
    )
    cloudflare_api_base_url: str = Field(
        default="https://api.cloudflare.com/client/v4",
        alias="CLOUDFLARE_API_BASE_URL",
        description="Cloudflare API v4 base URL",
    )
    http_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        alias="CLOUDFLARE_HTTP_TIMEOUT",
        description="Per-request timeout (seconds)",
    )

    # === Deployment inputs ===

    domain: str | None = Field(
        default=None,
        validation_alias=AliasChoices("DOMAIN", "INKRYPT_DOMAIN"),
        description="Public domain of the deployment",
    )
    rp_name: str = Field(default="Inkrypt", alias="INKRYPT_RP_NAME")
    cookie_samesite: str = Field(default="Lax", alias="INKRYPT_COOKIE_SAMESITE")
    cors_origin: str | None = Field(default=None, alias="INKRYPT_CORS_ORIGIN")
    worker_name: str | None = Field(default=None, alias="INKRYPT_WORKER_NAME")
    d1_name: str | None = Field(default=None, alias="INKRYPT_D1_NAME")

    force_takeover_dns: bool = Field(default=False, alias="FORCE_TAKEOVER_DNS")
    force_takeover_routes: bool = Field(default=False, alias="FORCE_TAKEOVER_ROUTES")

    # === Output / logging ===

    github_output: Path | None = Field(
        default=None,
        alias="GITHUB_OUTPUT",
        description="Step output file; when unset results are printed as JSON",
    )
    log_format: Literal["json", "console"] = Field(default="console", alias="LOG_FORMAT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("force_takeover_dns", "force_takeover_routes", mode="before")
    @classmethod
    def coerce_bool(cls, v: Any) -> bool:
        return parse_bool(v)

    @field_validator(
        "cloudflare_api_token",
        "domain",
        "cors_origin",
        "worker_name",
        "d1_name",
        "github_output",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        """Empty strings exported by CI mean "not set"."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_v = v.upper()
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v


def get_settings() -> DeploySettings:
    return DeploySettings()


def pick(flag_value: str | None, fallback: str | None) -> str | None:
    """Prefer an explicit, non-blank flag value over the settings fallback."""
    if flag_value is not None and flag_value.strip():
        return flag_value.strip()
    if fallback is not None and fallback.strip():
        return fallback.strip()
    return None
