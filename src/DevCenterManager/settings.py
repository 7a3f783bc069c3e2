"""Typed settings for the certification API client.

Settings are grouped into frozen pydantic models (HTTP, retry, polling,
logging) under a single :class:`Settings` root.  Values come from, in order of
increasing precedence: model defaults, an optional YAML/JSON settings file,
and ``DEVCENTER_*`` environment variables read through ``pydantic-settings``.

Client credentials are handled separately because they are secret and may be
supplied either through the environment or through an ``authconfig.json``
file holding one entry per server.
"""

from __future__ import annotations

import json
import logging
import os
import random
import threading
from enum import Enum
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import yaml
from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError, CredentialsNotFoundError

__all__ = [
    "Credentials",
    "CredentialSource",
    "HttpSettings",
    "RetrySettings",
    "PollingSettings",
    "LoggingSettings",
    "Settings",
    "EnvironmentOverrides",
    "CredentialsEnvironment",
    "load_raw_settings",
    "build_settings",
    "load_settings",
    "get_default_settings",
    "invalidate_default_settings_cache",
    "load_credentials",
    "select_credentials",
]

logger = logging.getLogger(__name__)

PLACEHOLDER_CLIENT_ID = "guid"
DEFAULT_CREDENTIALS_FILE = Path("authconfig.json")


# ============================================================================
# Credentials
# ============================================================================


class Credentials(BaseModel):
    """Client-credential grant inputs plus the API location for one server."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    client_id: str = Field(alias="clientId", min_length=1)
    client_secret: str = Field(alias="key", min_length=1)
    tenant_id: str = Field(alias="tenantId", min_length=1)
    url: str = Field(min_length=1)
    url_prefix: str = Field(default="", alias="urlPrefix")

    @property
    def base_url(self) -> str:
        """API root formed by joining ``url`` and ``url_prefix``."""
        prefix = self.url_prefix.strip("/")
        root = self.url.rstrip("/")
        return f"{root}/{prefix}" if prefix else root

    def __repr__(self) -> str:
        return (
            f"Credentials(client_id={self.client_id!r}, tenant_id={self.tenant_id!r}, "
            f"base_url={self.base_url!r}, client_secret='***REDACTED***')"
        )

    __str__ = __repr__


class CredentialSource(str, Enum):
    """Where :func:`load_credentials` may look for client credentials."""

    ENV_ONLY = "envonly"
    FILE_ONLY = "fileonly"
    ENV_THEN_FILE = "envthenfile"

    @classmethod
    def parse(cls, value: Optional[str]) -> "CredentialSource":
        if value is None:
            return cls.ENV_THEN_FILE
        try:
            return cls(value.strip().lower())
        except ValueError as exc:
            choices = ", ".join(member.value for member in cls)
            raise ConfigurationError(
                f"Unknown credential source '{value}' (expected one of: {choices})"
            ) from exc


class CredentialsEnvironment(BaseSettings):
    """Credentials supplied through ``DEVCENTER_*`` environment variables."""

    model_config = SettingsConfigDict(env_prefix="DEVCENTER_", case_sensitive=False, extra="ignore")

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    tenant_id: Optional[str] = None
    url: Optional[str] = None
    url_prefix: str = ""

    def to_credentials(self) -> Optional[Credentials]:
        if not (self.client_id and self.client_secret and self.tenant_id and self.url):
            return None
        return Credentials(
            client_id=self.client_id,
            client_secret=self.client_secret,
            tenant_id=self.tenant_id,
            url=self.url,
            url_prefix=self.url_prefix,
        )


def _read_credentials_file(path: Path) -> List[Credentials]:
    if not path.exists():
        logger.debug("credentials file not found", extra={"path": str(path)})
        return []
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"Credentials file '{path}' could not be read") from exc
    if isinstance(payload, Mapping):
        payload = [payload]
    if not isinstance(payload, list):
        raise ConfigurationError(f"Credentials file '{path}' must contain a list of servers")
    try:
        entries = [Credentials.model_validate(item) for item in payload]
    except ValidationError as exc:
        raise ConfigurationError(f"Credentials file '{path}' is invalid: {exc}") from exc
    # A template file still carrying the placeholder id counts as absent.
    if entries and entries[0].client_id == PLACEHOLDER_CLIENT_ID:
        return []
    return entries


def load_credentials(
    source: CredentialSource = CredentialSource.ENV_THEN_FILE,
    *,
    path: Optional[Path] = None,
) -> List[Credentials]:
    """Return every configured server's credentials from ``source``.

    Raises:
        CredentialsNotFoundError: When the selected sources yield nothing.
    """

    credentials: List[Credentials] = []
    if source in (CredentialSource.ENV_ONLY, CredentialSource.ENV_THEN_FILE):
        from_env = CredentialsEnvironment().to_credentials()
        if from_env is not None:
            credentials.append(from_env)
    if not credentials and source in (CredentialSource.FILE_ONLY, CredentialSource.ENV_THEN_FILE):
        credentials = _read_credentials_file(path or DEFAULT_CREDENTIALS_FILE)
    if not credentials:
        raise CredentialsNotFoundError("Unable to get Dev Center credentials")
    return credentials


def select_credentials(
    credentials: Sequence[Credentials],
    *,
    server: Optional[int] = None,
    loop_servers: Sequence[int] = (),
    rng: Optional[random.Random] = None,
) -> Credentials:
    """Pick one server entry, honouring an explicit index or the loop list."""

    if server is None:
        server = 0
        if loop_servers:
            server = (rng or random).choice(list(loop_servers))
    if server < 0 or server >= len(credentials):
        raise ConfigurationError(f"Server index invalid - {server}")
    return credentials[server]


# ============================================================================
# Settings models
# ============================================================================


class HttpSettings(BaseModel):
    """HTTP client settings for the API and identity endpoints."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    timeout: float = Field(
        default=300.0,
        gt=0.0,
        le=86400.0,
        description="Overall per-request timeout in seconds",
    )
    timeout_connect: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Connect timeout in seconds",
    )
    pool_max_connections: int = Field(default=10, ge=1, le=256)
    pool_keepalive_max: int = Field(default=5, ge=0, le=256)
    trust_env: bool = Field(
        default=True,
        description="Honor HTTP(S)_PROXY and NO_PROXY environment variables",
    )
    user_agent: str = Field(default="DevCenterManager (+python-httpx)")
    authority: str = Field(
        default="https://login.microsoftonline.com",
        description="OAuth2 authority; the tenant id is appended",
    )
    resource: str = Field(default="https://manage.devcenter.microsoft.com")


class RetrySettings(BaseModel):
    """Retry budget and delays for transient API failures."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    max_attempts: int = Field(default=10, ge=1, le=100)
    timeout_delay: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Fixed delay after a timeout that was not caller-cancelled",
    )
    server_error_min_delay: float = Field(default=1.0, ge=0.0, le=300.0)
    server_error_max_delay: float = Field(default=10.0, ge=0.0, le=300.0)

    @field_validator("server_error_max_delay")
    @classmethod
    def check_range(cls, value: float, info: ValidationInfo) -> float:
        lower = info.data.get("server_error_min_delay", 0.0)
        if value < lower:
            raise ValueError("server_error_max_delay must be >= server_error_min_delay")
        return value


class PollingSettings(BaseModel):
    """Polling cadence for wait operations."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    interval: float = Field(default=5.0, ge=0.0, le=3600.0)
    rate_limit_delay: float = Field(default=5.0, ge=0.0, le=3600.0)
    deadline: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Give up waiting after this many seconds (unbounded when unset)",
    )


class LoggingSettings(BaseModel):
    """Logging configuration."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    level: str = Field(default="INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    emit_json_logs: bool = Field(
        default=True,
        description="Write JSON lines to the rotating log file",
        validation_alias=AliasChoices("emit_json_logs", "json"),
    )
    log_dir: Optional[Path] = Field(default=None, description="Override for the log directory")
    max_log_size_mb: int = Field(default=10, ge=1, le=1024)
    backup_count: int = Field(default=5, ge=0, le=100)

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize and validate logging level."""
        upper = str(v).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}, got '{v}'")
        return upper

    def level_int(self) -> int:
        return getattr(logging, self.level)


class Settings(BaseModel):
    """Root settings object handed to the client and the CLI."""

    model_config = ConfigDict(frozen=True, validate_assignment=False)

    http: HttpSettings = Field(default_factory=HttpSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    polling: PollingSettings = Field(default_factory=PollingSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    loop_servers: List[int] = Field(
        default_factory=list,
        description="Server indices to pick from at random when no server is given",
    )
    credentials_file: Path = Field(default=DEFAULT_CREDENTIALS_FILE)

    @field_validator("loop_servers", mode="before")
    @classmethod
    def split_servers(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [int(part) for part in value.split(",") if part.strip()]
        return value


# ============================================================================
# Loading
# ============================================================================


class EnvironmentOverrides(BaseSettings):
    """Pydantic settings model exposing environment-derived overrides."""

    http_timeout: Optional[float] = Field(default=None, alias="DEVCENTER_HTTP_TIMEOUT")
    max_retries: Optional[int] = Field(default=None, alias="DEVCENTER_MAX_RETRIES")
    poll_interval: Optional[float] = Field(default=None, alias="DEVCENTER_POLL_INTERVAL")
    poll_deadline: Optional[float] = Field(default=None, alias="DEVCENTER_POLL_DEADLINE")
    log_level: Optional[str] = Field(default=None, alias="DEVCENTER_LOG_LEVEL")
    log_dir: Optional[Path] = Field(default=None, alias="DEVCENTER_LOG_DIR")
    loop_servers: Optional[str] = Field(default=None, alias="DEVCENTER_LOOP_SERVERS")
    credentials_file: Optional[Path] = Field(default=None, alias="DEVCENTER_CREDENTIALS_FILE")

    model_config = SettingsConfigDict(env_prefix="DEVCENTER_", case_sensitive=False, extra="ignore")


def _apply_env_overrides(raw: dict) -> dict:
    env = EnvironmentOverrides()
    merged = {key: dict(value) if isinstance(value, Mapping) else value for key, value in raw.items()}

    def section(name: str) -> dict:
        return merged.setdefault(name, {})

    if env.http_timeout is not None:
        section("http")["timeout"] = env.http_timeout
    if env.max_retries is not None:
        section("retry")["max_attempts"] = env.max_retries
    if env.poll_interval is not None:
        section("polling")["interval"] = env.poll_interval
    if env.poll_deadline is not None:
        section("polling")["deadline"] = env.poll_deadline
    if env.log_level is not None:
        section("logging")["level"] = env.log_level
    if env.log_dir is not None:
        section("logging")["log_dir"] = env.log_dir
    if env.loop_servers is not None:
        merged["loop_servers"] = env.loop_servers
    if env.credentials_file is not None:
        merged["credentials_file"] = env.credentials_file
    return merged


def load_raw_settings(config_path: Path) -> Mapping[str, object]:
    """Read a YAML (or JSON) settings file and return its top-level mapping."""

    path = Path(config_path).expanduser()
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Configuration file '{path}' contains invalid YAML") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError("Configuration file must contain a mapping at the root")
    return data


def build_settings(raw: Optional[Mapping[str, object]] = None) -> Settings:
    """Validate ``raw`` merged with environment overrides into :class:`Settings`."""

    merged = _apply_env_overrides(dict(raw or {}))
    try:
        return Settings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid settings: {exc}") from exc


def load_settings(config_path: Optional[Path] = None) -> Settings:
    """Load settings from ``config_path`` (or ``DEVCENTER_CONFIG``) plus the environment."""

    if config_path is None:
        env_path = os.environ.get("DEVCENTER_CONFIG")
        config_path = Path(env_path) if env_path else None
    raw = load_raw_settings(config_path) if config_path is not None else {}
    return build_settings(raw)


_DEFAULT_SETTINGS_CACHE: Optional[Settings] = None
_DEFAULT_SETTINGS_LOCK = threading.Lock()


def get_default_settings() -> Settings:
    """Return memoised settings built from defaults and the environment."""

    global _DEFAULT_SETTINGS_CACHE  # noqa: PLW0603

    with _DEFAULT_SETTINGS_LOCK:
        if _DEFAULT_SETTINGS_CACHE is None:
            _DEFAULT_SETTINGS_CACHE = load_settings()
        return _DEFAULT_SETTINGS_CACHE


def invalidate_default_settings_cache() -> None:
    """Invalidate the cached default settings."""

    global _DEFAULT_SETTINGS_CACHE  # noqa: PLW0603

    with _DEFAULT_SETTINGS_LOCK:
        _DEFAULT_SETTINGS_CACHE = None
# === NAVMAP v1 ===
# {
#   "module": "DevCenterManager.settings",
#   "purpose": "Typed settings models, environment overrides, and credential loading",
#   "sections": [
#     {"id": "credentials", "name": "Credentials", "anchor": "CRD", "kind": "api"},
#     {"id": "models", "name": "Settings models", "anchor": "MOD", "kind": "api"},
#     {"id": "loading", "name": "Loading", "anchor": "LOD", "kind": "api"}
#   ]
# }
# === /NAVMAP ===
