"""Environment-driven settings for the draw console core."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import time
from typing import Mapping, Optional

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:8080/api/v1"
DEFAULT_TIMEOUT = 45.0
# Time given to the remote engine to finish selecting winners before the
# single read-back attempt.
DEFAULT_SETTLE_DELAY = 3.0
DEFAULT_DRAW_TIME = time(20, 0)


def _float_setting(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"Environment variable '{key}' must be a number, got {raw!r}") from exc
    if value < 0:
        raise ValueError(f"Environment variable '{key}' must not be negative")
    return value


def _time_setting(env: Mapping[str, str], key: str, default: time) -> time:
    raw = env.get(key)
    if not raw:
        return default
    try:
        return time.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Environment variable '{key}' must look like HH:MM, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration.

    Attributes
    ----------
    api_url : str
        Base URL of the draw-execution and winner-ledger services.
    api_token : Optional[str]
        Bearer token forwarded to the services, if any.
    timeout : float
        Per-request timeout in seconds.
    settle_delay : float
        Bounded wait between triggering execution and fetching winners.
    draw_time : datetime.time
        Time of day at which a draw for a calendar date takes place.
    db_url : Optional[str]
        Display cache database URL; ``None`` uses the engine default.
    """

    api_url: str = DEFAULT_API_URL
    api_token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    settle_delay: float = DEFAULT_SETTLE_DELAY
    draw_time: time = DEFAULT_DRAW_TIME
    db_url: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ`` after loading ``.env``)."""
        if env is None:
            load_dotenv()
            env = os.environ
        return cls(
            api_url=(env.get("DRAW_API_URL") or DEFAULT_API_URL).rstrip("/"),
            api_token=env.get("DRAW_API_TOKEN") or None,
            timeout=_float_setting(env, "DRAW_API_TIMEOUT", DEFAULT_TIMEOUT),
            settle_delay=_float_setting(env, "DRAW_SETTLE_DELAY", DEFAULT_SETTLE_DELAY),
            draw_time=_time_setting(env, "DRAW_TIME", DEFAULT_DRAW_TIME),
            db_url=env.get("DB_URL") or None,
        )


__all__ = ["Settings", "DEFAULT_SETTLE_DELAY"]
