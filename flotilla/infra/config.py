"""Application configuration and env loading."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_AI_THINK_DELAY = 1.5
DEFAULT_AI_END_TURN_DELAY = 1.0


@dataclass(frozen=True, slots=True)
class Settings:
    """Immutable runtime settings."""

    ai_think_delay: float = DEFAULT_AI_THINK_DELAY
    ai_end_turn_delay: float = DEFAULT_AI_END_TURN_DELAY
    log_level: str = "INFO"
    log_format: str = "text"
    log_dir: str | None = None
    seed: int | None = None


def load_env_file(
    path: str | Path = ".env", *, override_existing: bool = True
) -> list[str]:
    """Load `KEY=VALUE` lines (optionally `export`-prefixed) into the environment.

    Returns the keys actually written. Existing variables are overwritten
    unless ``override_existing`` is false.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return []

    applied: list[str] = []
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.removeprefix("export ").strip()
        value = value.strip()
        if not key:
            continue

        if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
            value = value[1:-1]

        if override_existing or key not in os.environ:
            os.environ[key] = value
            applied.append(key)
    return applied


def load_settings() -> Settings:
    """Read settings from ``FLOTILLA_*`` environment variables."""
    log_dir = os.getenv("FLOTILLA_LOG_DIR", "").strip()
    return Settings(
        ai_think_delay=max(0.0, _float("FLOTILLA_AI_THINK_DELAY", DEFAULT_AI_THINK_DELAY)),
        ai_end_turn_delay=max(0.0, _float("FLOTILLA_AI_END_TURN_DELAY", DEFAULT_AI_END_TURN_DELAY)),
        log_level=resolve_log_level_name(),
        log_format=os.getenv("LOG_FORMAT", "text").strip().lower() or "text",
        log_dir=log_dir or None,
        seed=_optional_int("FLOTILLA_SEED"),
    )


def resolve_log_level_name(default: str = "INFO") -> str:
    """Resolve log level with the app-prefixed override first."""
    value = os.getenv("FLOTILLA_LOG_LEVEL")
    if value is None:
        value = os.getenv("LOG_LEVEL", default)
    return value.strip().upper()


def _float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _optional_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None
