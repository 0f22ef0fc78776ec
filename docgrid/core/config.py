"""Environment driven settings and logging setup."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

DEFAULT_API_BASE = "https://test.v5.pryaniky.com/"
DEFAULT_TIMEOUT = 10.0
DEFAULT_ORIGINS = ("http://localhost:3000", "http://127.0.0.1:3000")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(slots=True)
class Settings:
    api_base: str = DEFAULT_API_BASE
    timeout: float = DEFAULT_TIMEOUT
    cors_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.api_base.endswith("/"):
            self.api_base = f"{self.api_base}/"


def _parse_timeout(raw: str | None) -> float:
    if not raw:
        return DEFAULT_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT
    return value if value > 0 else DEFAULT_TIMEOUT


def load_settings() -> Settings:
    """Read settings from the process environment."""

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    return Settings(
        api_base=os.getenv("DOCGRID_API_BASE") or DEFAULT_API_BASE,
        timeout=_parse_timeout(os.getenv("DOCGRID_API_TIMEOUT")),
        cors_origins=origins or list(DEFAULT_ORIGINS),
        log_level=(os.getenv("DOCGRID_LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stream handler to the ``docgrid`` logger."""

    logger = logging.getLogger("docgrid")
    resolved = logging.getLevelName(level) if isinstance(level, str) else level
    if not isinstance(resolved, int):
        resolved = logging.INFO
    logger.setLevel(resolved)
    if not any(getattr(handler, "_docgrid", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        handler._docgrid = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
