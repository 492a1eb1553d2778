# === NAVMAP v1 ===
# {
#   "module": "SplitCode.SecondaryArchives.settings",
#   "purpose": "Pydantic v2 settings for extraction, verification, and logging",
#   "sections": [
#     {"id": "compression", "name": "Compression", "anchor": "class-compression", "kind": "class"},
#     {"id": "extractorsettings", "name": "ExtractorSettings", "anchor": "class-extractorsettings", "kind": "class"},
#     {"id": "loggingsettings", "name": "LoggingSettings", "anchor": "class-loggingsettings", "kind": "class"},
#     {"id": "settings", "name": "Settings", "anchor": "class-settings", "kind": "class"},
#     {"id": "load-settings", "name": "load_settings", "anchor": "function-load-settings", "kind": "function"},
#     {"id": "get-default-settings", "name": "get_default_settings", "anchor": "function-get-default-settings", "kind": "function"}
#   ]
# }
# === /NAVMAP ===

"""
Typed configuration for secondary archive extraction.

Settings are layered ENV > YAML file > defaults. Environment variables use the
``SPLITCODE_`` prefix for extractor knobs and ``SPLITCODE_LOG_`` for logging.
The naming convention of entries and cache files is fixed and deliberately
not configurable.
"""

from __future__ import annotations

import logging
import threading
import zipfile
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

__all__ = [
    "Compression",
    "ExtractorSettings",
    "LoggingSettings",
    "Settings",
    "load_settings",
    "get_default_settings",
    "invalidate_default_settings_cache",
]


class Compression(str, Enum):
    """Compression method applied to the repackaged entry."""

    DEFLATED = "deflated"
    STORED = "stored"

    def zip_constant(self) -> int:
        if self is Compression.STORED:
            return zipfile.ZIP_STORED
        return zipfile.ZIP_DEFLATED


class _EnvFirstSettings(BaseSettings):
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # Environment beats values read from a configuration file.
        return env_settings, init_settings, dotenv_settings, file_secret_settings


class ExtractorSettings(_EnvFirstSettings):
    """Extraction and verification knobs."""

    model_config = SettingsConfigDict(
        env_prefix="SPLITCODE_",
        case_sensitive=False,
        extra="ignore",
    )

    max_extract_attempts: int = Field(
        3, ge=1, le=10, description="Attempts per secondary archive before failing the load"
    )
    buffer_size: int = Field(
        0x4000, ge=512, description="Chunk size used when streaming entries (bytes)"
    )
    compression: Compression = Field(
        Compression.DEFLATED, description="Compression of the repackaged entry"
    )
    strict_discovery: bool = Field(
        False, description="Fail when classesN.dex indices are not contiguous"
    )
    verify_crc: bool = Field(
        False, description="Also CRC-check entries when verifying a cache file"
    )
    fingerprint: bool = Field(True, description="Log a digest of every extracted file")
    digest_algorithm: str = Field("sha1", description="hashlib algorithm used for fingerprints")
    max_digest_lookup_attempts: int = Field(
        2, ge=1, description="Digest algorithm lookups before fingerprinting is skipped"
    )

    @field_validator("digest_algorithm")
    @classmethod
    def normalize_algorithm(cls, v: str) -> str:
        value = v.strip().lower()
        if not value:
            raise ValueError("digest_algorithm must not be empty")
        return value


class LoggingSettings(_EnvFirstSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SPLITCODE_LOG_",
        case_sensitive=False,
        extra="ignore",
    )

    level: str = Field("INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR)")
    emit_json_logs: bool = Field(False, description="Render console output as JSON lines")
    log_dir: Optional[Path] = Field(None, description="Directory for rotated JSONL log files")

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Normalize and validate logging level."""
        upper = str(v).upper()
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR"}
        if upper not in valid_levels:
            raise ValueError(f"level must be one of {sorted(valid_levels)}, got '{v}'")
        return upper

    @field_validator("log_dir", mode="before")
    @classmethod
    def expand_log_dir(cls, v: Any) -> Any:
        if v is None or v == "":
            return None
        return Path(v).expanduser()

    def level_int(self) -> int:
        return getattr(logging, self.level)


class Settings(BaseModel):
    """Root aggregation of all settings."""

    extractor: ExtractorSettings = Field(default_factory=ExtractorSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def _load_yaml(path: Path) -> Mapping[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Configuration file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigError(f"Configuration file {path} must contain a mapping at the top level")
    return data


def _section(raw: Mapping[str, Any], name: str, path: Path) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"Section '{name}' in {path} must be a mapping")
    return value


def load_settings(path: Optional[Path] = None) -> Settings:
    """Build :class:`Settings` from an optional YAML file plus the environment.

    Raises:
        ConfigError: If the file cannot be read or any value is invalid.
    """

    extractor_raw: Mapping[str, Any] = {}
    logging_raw: Mapping[str, Any] = {}
    if path is not None:
        resolved = Path(path).expanduser()
        raw = _load_yaml(resolved)
        extractor_raw = _section(raw, "extractor", resolved)
        logging_raw = _section(raw, "logging", resolved)
    try:
        return Settings(
            extractor=ExtractorSettings(**extractor_raw),
            logging=LoggingSettings(**logging_raw),
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


_DEFAULT_SETTINGS_LOCK = threading.Lock()
_DEFAULT_SETTINGS_CACHE: Optional[Settings] = None


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
