"""
Configuration management.

Uses Pydantic Settings for environment variable handling and validation.
`ConfigResolver` turns the raw settings into a frozen `Config`, looking the
ingestion key up in SSM when it is not supplied directly.
"""

import re
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__
from .core.secrets import SecretResolver, SSMSecretResolver

logger = structlog.get_logger(__name__)

PACKAGE_NAME = "logdna-cloudwatch"
DEFAULT_LOGDNA_URL = "https://logs.logdna.com/logs/ingest"

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class Settings(BaseSettings):
    """Raw configuration variables, read from the environment."""

    # Ingestion
    logdna_key: Optional[str] = Field(default=None, description="LogDNA ingestion key")
    logdna_url: str = Field(default=DEFAULT_LOGDNA_URL, description="Ingestion endpoint")
    logdna_tags: Optional[str] = Field(default=None, description="Comma separated tags")
    log_raw_event: Optional[str] = Field(default=None, description="Send messages verbatim (yes/true)")

    # Routing
    logdna_hostname: Optional[str] = Field(default=None, description="Hostname override")
    hostname_prefix: str = Field(default="", description="Prepended to every hostname")
    hostname_postfix: str = Field(default="", description="Appended to every hostname")
    logdna_app_name: Optional[str] = Field(default=None, description="App name override")
    logdna_hostname_for_fargate: Optional[str] = Field(
        default=None, description="Derive hostname and task fields from Fargate stream paths (yes/true)"
    )

    # Transport
    logdna_max_request_timeout: int = Field(default=30000, description="Total request timeout (ms)")
    logdna_free_socket_timeout: int = Field(default=300000, description="Idle keep-alive socket timeout (ms)")
    logdna_max_request_retries: int = Field(default=5, description="Maximum delivery attempts")
    logdna_request_retry_interval: int = Field(default=100, description="Base backoff interval (ms)")

    # Secret lookup
    ssm_secret_lognda_key_name: Optional[str] = Field(default=None, description="SSM parameter name of the key")
    ssm_params_path: Optional[str] = Field(default=None, description="SSM path holding the key parameter")

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="json or console")

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    @field_validator(
        "logdna_key",
        "logdna_tags",
        "log_raw_event",
        "logdna_hostname",
        "logdna_app_name",
        "logdna_hostname_for_fargate",
        "ssm_secret_lognda_key_name",
        "ssm_params_path",
        mode="before",
    )
    @classmethod
    def empty_as_absent(cls, v: Any) -> Any:
        """Treat empty variables as unset."""
        if v == "":
            return None
        return v

    @field_validator("hostname_prefix", "hostname_postfix", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator(
        "logdna_max_request_timeout",
        "logdna_free_socket_timeout",
        "logdna_max_request_retries",
        "logdna_request_retry_interval",
        mode="before",
    )
    @classmethod
    def parse_int_or_default(cls, v: Any, info: ValidationInfo) -> int:
        """Leading-integer parse; unparsable or zero values fall back to the default."""
        default = cls.model_fields[info.field_name].default
        if isinstance(v, int):
            return v or default
        match = _LEADING_INT.match(str(v)) if v is not None else None
        if not match:
            return default
        return int(match.group(1)) or default


def parse_flag(value: Optional[str]) -> bool:
    """True iff the lower-cased value is exactly "yes" or "true"."""
    if value is None:
        return False
    return value.lower() in ("yes", "true")


def normalize_tags(value: Optional[str]) -> Optional[str]:
    """Trim each comma separated tag and rejoin: " a, b ,c" -> "a,b,c"."""
    if not value:
        return None
    return ",".join(tag.strip() for tag in value.split(","))


@dataclass(frozen=True)
class Config:
    """Configuration resolved for one invocation."""

    key: Optional[str] = None
    hostname: Optional[str] = None
    tags: Optional[str] = None
    log_raw_event: bool = False
    hostname_prefix: str = ""
    hostname_postfix: str = ""
    app_name: Optional[str] = None
    fargate: bool = False
    user_agent: str = f"{PACKAGE_NAME}/{__version__}"
    url: str = DEFAULT_LOGDNA_URL
    max_request_timeout_ms: int = 30000
    free_socket_timeout_ms: int = 300000
    max_request_retries: int = 5
    request_retry_interval_ms: int = 100


class ConfigResolver:
    """
    Builds a Config from settings and an optional SSM key lookup.

    A key resolved from SSM is cached for the life of the resolver and
    reused by later resolutions; call `invalidate()` to force a new lookup.
    """

    def __init__(self, secret_resolver: Optional[SecretResolver] = None) -> None:
        self.secret_resolver = secret_resolver or SSMSecretResolver()
        self._cached_key: Optional[str] = None

    async def resolve(self, settings: Optional[Settings] = None) -> Config:
        if settings is None:
            settings = Settings()

        key = settings.logdna_key
        if not key and settings.ssm_secret_lognda_key_name:
            key = await self._resolve_key(settings)

        return Config(
            key=key,
            hostname=settings.logdna_hostname,
            tags=normalize_tags(settings.logdna_tags),
            log_raw_event=parse_flag(settings.log_raw_event),
            hostname_prefix=settings.hostname_prefix,
            hostname_postfix=settings.hostname_postfix,
            app_name=settings.logdna_app_name,
            fargate=parse_flag(settings.logdna_hostname_for_fargate),
            url=settings.logdna_url,
            max_request_timeout_ms=settings.logdna_max_request_timeout,
            free_socket_timeout_ms=settings.logdna_free_socket_timeout,
            max_request_retries=settings.logdna_max_request_retries,
            request_retry_interval_ms=settings.logdna_request_retry_interval,
        )

    async def _resolve_key(self, settings: Settings) -> Optional[str]:
        if self._cached_key:
            logger.debug("Using cached ingestion key")
            return self._cached_key

        logger.info(
            "Looking for the ingestion key in SSM",
            ssm_path=settings.ssm_params_path,
            parameter=settings.ssm_secret_lognda_key_name,
        )
        try:
            key = await self.secret_resolver.resolve(
                settings.ssm_params_path,
                settings.ssm_secret_lognda_key_name,
            )
        except Exception as e:
            # Delivery raises MissingCredentialError later
            logger.error("Failed to get the ingestion key from SSM", error=str(e), exc_info=True)
            return None

        if not key:
            logger.warning("Ingestion key not found in SSM", parameter=settings.ssm_secret_lognda_key_name)
            return None

        self._cached_key = key
        logger.debug("Ingestion key was successfully set")
        return key

    def invalidate(self) -> None:
        """Drop the cached key."""
        self._cached_key = None


# Global resolver instance
_config_resolver: Optional[ConfigResolver] = None


def get_config_resolver() -> ConfigResolver:
    """Get or create global config resolver instance."""
    global _config_resolver

    if _config_resolver is None:
        _config_resolver = ConfigResolver()

    return _config_resolver
