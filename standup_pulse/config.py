"""Configuration helpers for Standup Pulse."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    api_key: str
    database_path: Path
    team_roster_path: Path
    slack_bot_token: Optional[str] = None
    tick_seconds: int = 60
    recovery_grace_minutes: int = 5
    escalation_marks_missed: bool = True


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {value!r}") from exc


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db_path = Path(os.getenv("DATABASE_PATH", "standup_pulse.db")).expanduser()
    roster_path = Path(
        os.getenv("TEAM_ROSTER_PATH", "team_roster.csv")
    ).expanduser()

    api_key = os.getenv("API_KEY")
    if not api_key:
        raise RuntimeError("API_KEY must be configured")

    tick_seconds = _env_int("TICK_SECONDS", 60)
    if tick_seconds <= 0:
        raise RuntimeError("TICK_SECONDS must be positive")

    return Settings(
        api_key=api_key,
        database_path=db_path,
        team_roster_path=roster_path,
        slack_bot_token=os.getenv("SLACK_BOT_TOKEN") or None,
        tick_seconds=tick_seconds,
        recovery_grace_minutes=_env_int("RECOVERY_GRACE_MINUTES", 5),
        escalation_marks_missed=_env_bool("ESCALATION_MARKS_MISSED", True),
    )


__all__ = ["Settings", "load_settings"]
