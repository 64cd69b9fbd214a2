"""Environment-driven configuration.

- PLATFORM_ANALYZER_GATING_MODE: server | client (default: server)
- PLATFORM_ANALYZER_API_TOKENS: comma-separated bearer tokens that count as signed in
- PLATFORM_ANALYZER_CORS_ORIGINS: comma-separated allowed frontend origins
- PLATFORM_ANALYZER_COLLECT_TIMEOUT_S: overall deadline for signal collection
- PLATFORM_ANALYZER_COLLECTOR_TIMEOUT_S: per-collector deadline
- GEMINI_API_KEY / GEMINI_MODEL: optional AI commentary
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from .disclosure import GATING_MODES

DEFAULT_CORS_ORIGINS = ("http://localhost:5173", "http://localhost:3000")


@dataclass(frozen=True)
class Settings:
    gating_mode: str = "server"
    api_tokens: frozenset[str] = frozenset()
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    collect_timeout_s: float = 8.0
    collector_timeout_s: float = 3.0
    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"


def _csv(raw: str | None) -> list[str]:
    return [v.strip() for v in (raw or "").split(",") if v.strip()]


def _float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def load_settings() -> Settings:
    gating_mode = (os.getenv("PLATFORM_ANALYZER_GATING_MODE") or "server").strip().lower()
    if gating_mode not in GATING_MODES:
        raise ValueError(f"PLATFORM_ANALYZER_GATING_MODE must be one of {GATING_MODES}, got {gating_mode!r}")

    return Settings(
        gating_mode=gating_mode,
        api_tokens=frozenset(_csv(os.getenv("PLATFORM_ANALYZER_API_TOKENS"))),
        cors_origins=tuple(_csv(os.getenv("PLATFORM_ANALYZER_CORS_ORIGINS"))) or DEFAULT_CORS_ORIGINS,
        collect_timeout_s=_float("PLATFORM_ANALYZER_COLLECT_TIMEOUT_S", 8.0),
        collector_timeout_s=_float("PLATFORM_ANALYZER_COLLECTOR_TIMEOUT_S", 3.0),
        gemini_api_key=(os.getenv("GEMINI_API_KEY") or "").strip() or None,
        gemini_model=(os.getenv("GEMINI_MODEL") or "gemini-2.5-flash").strip(),
    )
