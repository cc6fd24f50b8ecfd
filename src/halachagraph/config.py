"""
halachagraph Configuration

Engine settings read from environment variables:

    HALACHAGRAPH_LOG_LEVEL               Log level for the 'halachagraph' logger (INFO)
    HALACHAGRAPH_LOG_FORMAT              'json' or 'text' (text)
    HALACHAGRAPH_SNAPSHOT_CACHE          Enable the snapshot cache (true)
    HALACHAGRAPH_SNAPSHOT_CACHE_SIZE     Snapshots kept by the cache (64)
    HALACHAGRAPH_STRICT_SCHEMA_VERSION   Reject registry packs of another major version (true)
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Engine settings."""
    log_level: str = "INFO"
    log_format: str = "text"
    snapshot_cache: bool = True
    snapshot_cache_size: int = 64
    strict_schema_version: bool = True

    @classmethod
    def from_env(cls) -> Settings:
        cache_size = int(os.getenv("HALACHAGRAPH_SNAPSHOT_CACHE_SIZE", "64"))
        if cache_size < 1:
            raise ValueError(
                f"HALACHAGRAPH_SNAPSHOT_CACHE_SIZE must be at least 1, got {cache_size}"
            )
        return cls(
            log_level=os.getenv("HALACHAGRAPH_LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("HALACHAGRAPH_LOG_FORMAT", "text").lower(),
            snapshot_cache=_env_bool("HALACHAGRAPH_SNAPSHOT_CACHE", "true"),
            snapshot_cache_size=cache_size,
            strict_schema_version=_env_bool("HALACHAGRAPH_STRICT_SCHEMA_VERSION", "true"),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings, read from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None


# =============================================================================
# Logging Setup
# =============================================================================

class JSONFormatter(logging.Formatter):
    """JSON log formatter for structured logging."""

    EXTRA_FIELDS = ("slice_index", "graph_version", "registry_id", "profile_id", "from_id", "to_id")

    def format(self, record):
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in self.EXTRA_FIELDS:
            if hasattr(record, name):
                log_entry[name] = getattr(record, name)
        return json.dumps(log_entry)


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """
    Attach a stream handler to the 'halachagraph' logger.

    Library modules only create module loggers; applications call this
    once to see their output.
    """
    settings = settings or get_settings()
    logger = logging.getLogger("halachagraph")
    logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    for existing in list(logger.handlers):
        if getattr(existing, "_halachagraph_handler", False):
            logger.removeHandler(existing)
    handler = logging.StreamHandler()
    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    handler._halachagraph_handler = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
