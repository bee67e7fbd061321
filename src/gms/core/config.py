"""
Environment configuration for GMS.

Settings are read from the process environment once and cached. Call
``reset_settings()`` after changing the environment (tests do this).
"""

import os
from enum import StrEnum
from pathlib import Path
from typing import Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator


class Backend(StrEnum):
    """Goal repository backends selectable from the environment."""

    SQLITE = "sqlite"
    MEMORY = "memory"


class LogLevel(StrEnum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class Settings(BaseModel):
    """Validated environment settings."""

    backend: Backend = Field(default=Backend.SQLITE, alias="GMS_BACKEND")
    db_path: Optional[Path] = Field(default=None, alias="GMS_DB_PATH")
    snapshot_path: Optional[Path] = Field(default=None, alias="GMS_SNAPSHOT_PATH")
    log_level: LogLevel = Field(default=LogLevel.INFO, alias="LOG_LEVEL")

    @field_validator("backend", "log_level", mode="before")
    @classmethod
    def normalize_choice(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            # Accept the common "warn" spelling
            return "warning" if v == "warn" else v
        return v

    @field_validator("db_path", "snapshot_path", mode="before")
    @classmethod
    def validate_absolute(cls, v):
        """Path overrides must be absolute; empty strings mean unset."""
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        path = Path(v)
        if not path.is_absolute():
            raise ValueError(f"must be an absolute path, got: {v}")
        return path


_settings: Optional[Settings] = None


def reset_settings() -> None:
    """Forget cached settings so the next load re-reads the environment."""
    global _settings
    _settings = None


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load and validate settings from the environment (cached after first call).

    Args:
        environ: Mapping to read instead of os.environ; bypasses the cache

    Raises:
        ValueError: If any variable holds an invalid value
    """
    global _settings
    if environ is None and _settings is not None:
        return _settings

    source = os.environ if environ is None else environ
    keys = ("GMS_BACKEND", "GMS_DB_PATH", "GMS_SNAPSHOT_PATH", "LOG_LEVEL")
    try:
        settings = Settings.model_validate({k: source[k] for k in keys if k in source})
    except ValidationError as exc:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in exc.errors()
        )
        raise ValueError(f"Invalid environment configuration: {issues}") from exc

    if environ is None:
        _settings = settings
    return settings
