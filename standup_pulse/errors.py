"""Exception taxonomy for the standup automation engine."""

from __future__ import annotations

from typing import Any


class StandupError(Exception):
    """Base error carrying a message plus keyword context for logging."""

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigurationError(StandupError):
    """Automation cannot run with the team's current configuration."""


class AlreadyStartedError(StandupError):
    """A standup session already exists for the team today."""

    def __init__(self, team_id: str, day: str) -> None:
        self.team_id = team_id
        self.day = day
        super().__init__("Standup already started for today", team_id=team_id, date=day)


class NotFoundError(StandupError):
    """Unknown team, or no active standup for the user."""


class ValidationError(StandupError):
    """Input rejected by a length, format or range check."""


__all__ = [
    "StandupError",
    "ConfigurationError",
    "AlreadyStartedError",
    "NotFoundError",
    "ValidationError",
]
