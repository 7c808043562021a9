from __future__ import annotations

import os
from dataclasses import dataclass

from .errors import ConfigurationError

DEFAULT_FALLBACK_FONT = "DejaVuSansMono.ttf"
DEFAULT_CACHE_SIZE = 8
DEFAULT_WORKERS = 1
DEFAULT_LOG_LEVEL = "INFO"


def _int_from_env(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigurationError(f"{name} must be at least 1, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    fallback_font: str = DEFAULT_FALLBACK_FONT
    cache_size: int = DEFAULT_CACHE_SIZE
    workers: int = DEFAULT_WORKERS
    log_level: str = DEFAULT_LOG_LEVEL

    @classmethod
    def from_env(cls) -> "Settings":
        """Read settings from the process environment (call load_dotenv first)."""
        return cls(
            fallback_font=os.environ.get("FONT_ATLAS_FALLBACK_FONT") or DEFAULT_FALLBACK_FONT,
            cache_size=_int_from_env("FONT_ATLAS_CACHE_SIZE", DEFAULT_CACHE_SIZE),
            workers=_int_from_env("FONT_ATLAS_WORKERS", DEFAULT_WORKERS),
            log_level=(os.environ.get("FONT_ATLAS_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
        )
