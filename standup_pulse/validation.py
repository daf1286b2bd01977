"""Input checks shared by the configuration and answer paths."""

from __future__ import annotations

import re

from .errors import ValidationError
from .models import ANSWER_MAX_LENGTH, ANSWER_MIN_LENGTH, QUESTION_SLOTS

SCHEDULE_TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
EARLIEST_SCHEDULE = "06:00"
LATEST_SCHEDULE = "10:00"
MIN_TIMEOUT_MINUTES = 30
MAX_TIMEOUT_MINUTES = 480

# Labels only; scheduling always runs on the process clock.
SUPPORTED_TIMEZONES = frozenset(
    {
        "UTC",
        "America/New_York",
        "America/Chicago",
        "America/Denver",
        "America/Los_Angeles",
        "Europe/London",
        "Europe/Paris",
        "Europe/Berlin",
        "Asia/Tokyo",
        "Asia/Shanghai",
        "Australia/Sydney",
        "Pacific/Auckland",
    }
)


def validate_schedule_time(value: str) -> str:
    """Return ``value`` normalized to zero-padded ``HH:MM``."""

    match = SCHEDULE_TIME_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValidationError("Invalid schedule time format, expected HH:MM", schedule_time=value)
    normalized = f"{int(match.group(1)):02d}:{match.group(2)}"
    if not EARLIEST_SCHEDULE <= normalized <= LATEST_SCHEDULE:
        raise ValidationError(
            f"Schedule time must be between {EARLIEST_SCHEDULE} and {LATEST_SCHEDULE}",
            schedule_time=normalized,
        )
    return normalized


def validate_timezone(value: str) -> str:
    if value not in SUPPORTED_TIMEZONES:
        raise ValidationError("Invalid timezone", timezone=value)
    return value


def validate_timeout(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Response timeout must be an integer", response_timeout_minutes=value)
    if not MIN_TIMEOUT_MINUTES <= value <= MAX_TIMEOUT_MINUTES:
        raise ValidationError(
            f"Response timeout must be between {MIN_TIMEOUT_MINUTES} and {MAX_TIMEOUT_MINUTES} minutes",
            response_timeout_minutes=value,
        )
    return value


def validate_question(question_index: int) -> str:
    """Return the answer slot for a 1-based question number."""

    slot = QUESTION_SLOTS.get(question_index)
    if slot is None:
        raise ValidationError("Question index must be 1, 2 or 3", question_index=question_index)
    return slot


def validate_answer(text: str) -> str:
    answer = (text or "").strip()
    if len(answer) < ANSWER_MIN_LENGTH:
        raise ValidationError(
            f"Answer must be at least {ANSWER_MIN_LENGTH} characters", length=len(answer)
        )
    if len(answer) > ANSWER_MAX_LENGTH:
        raise ValidationError(
            f"Answer must be at most {ANSWER_MAX_LENGTH} characters", length=len(answer)
        )
    return answer


__all__ = [
    "SUPPORTED_TIMEZONES",
    "validate_schedule_time",
    "validate_timezone",
    "validate_timeout",
    "validate_question",
    "validate_answer",
]
