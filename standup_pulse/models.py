"""Dataclasses representing Standup Pulse domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List

ANSWER_MIN_LENGTH = 3
ANSWER_MAX_LENGTH = 500
DEFAULT_RESPONSE_TIMEOUT = 120

# question index -> answer slot
QUESTION_SLOTS = {1: "yesterday", 2: "today", 3: "blockers"}


class ResponseStatus(str, Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    LATE = "late"
    MISSED = "missed"

    @property
    def is_active(self) -> bool:
        """Active records still accept answers."""
        return self is not ResponseStatus.MISSED

    @property
    def is_responded(self) -> bool:
        return self in (ResponseStatus.SUBMITTED, ResponseStatus.LATE)


@dataclass(slots=True)
class User:
    id: str
    username: str
    real_name: str | None = None

    @property
    def display_name(self) -> str:
        return self.real_name or self.username or self.id


@dataclass(slots=True)
class TeamAutomationConfig:
    enabled: bool = False
    schedule_time: str | None = None
    timezone: str = "UTC"
    participants: List[str] = field(default_factory=list)
    channel_id: str | None = None
    response_timeout_minutes: int = DEFAULT_RESPONSE_TIMEOUT
    last_run_date: date | None = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_run_date"] = self.last_run_date.isoformat() if self.last_run_date else None
        return data


@dataclass(slots=True)
class Team:
    id: str
    name: str
    config: TeamAutomationConfig = field(default_factory=TeamAutomationConfig)


@dataclass(slots=True)
class ResponseRecord:
    team_id: str
    user_id: str
    standup_date: date
    yesterday: str = ""
    today: str = ""
    blockers: str = ""
    status: ResponseStatus = ResponseStatus.PENDING
    submitted_at: datetime | None = None
    edited_at: datetime | None = None

    def answers(self) -> List[str]:
        return [self.yesterday, self.today, self.blockers]

    def is_complete(self) -> bool:
        return all(len(answer) >= ANSWER_MIN_LENGTH for answer in self.answers())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "user_id": self.user_id,
            "date": self.standup_date.isoformat(),
            "responses": {
                "yesterday": self.yesterday,
                "today": self.today,
                "blockers": self.blockers,
            },
            "status": self.status.value,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
            "edited_at": self.edited_at.isoformat() if self.edited_at else None,
        }


@dataclass(slots=True)
class Session:
    """The set of responses sharing one (team, date), plus its escalation deadline."""

    team_id: str
    standup_date: date
    triggered_at: datetime
    escalation_deadline: datetime
    escalated_at: datetime | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "team_id": self.team_id,
            "date": self.standup_date.isoformat(),
            "triggered_at": self.triggered_at.isoformat(),
            "escalation_deadline": self.escalation_deadline.isoformat(),
            "escalated_at": self.escalated_at.isoformat() if self.escalated_at else None,
        }


@dataclass(slots=True)
class StartResult:
    session: Session
    records: List[ResponseRecord]

    @property
    def participant_count(self) -> int:
        return len(self.records)


@dataclass(slots=True)
class SummaryEntry:
    member: str
    text: str


@dataclass(slots=True)
class Participation:
    responded: int
    total: int
    percentage: int


@dataclass(slots=True)
class TeamSummary:
    team_id: str
    team: str
    standup_date: date
    participation: Participation
    accomplishments: List[SummaryEntry] = field(default_factory=list)
    today_focus: List[SummaryEntry] = field(default_factory=list)
    blockers: List[SummaryEntry] = field(default_factory=list)
    non_respondents: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("standup_date")
        data["date"] = self.standup_date.isoformat()
        return data


@dataclass(slots=True)
class StatusCounts:
    pending: int = 0
    submitted: int = 0
    late: int = 0
    missed: int = 0
    total: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


@dataclass(slots=True)
class HistoryEntry:
    standup_date: date
    responded: int
    total: int
    percentage: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.standup_date.isoformat(),
            "responded": self.responded,
            "total": self.total,
            "percentage": self.percentage,
        }


def participation_percentage(responded: int, total: int) -> int:
    """Whole percent, halves rounded up."""

    if not total:
        return 0
    exact = Decimal(responded * 100) / Decimal(total)
    return int(exact.quantize(Decimal(1), rounding=ROUND_HALF_UP))


__all__ = [
    "ANSWER_MIN_LENGTH",
    "ANSWER_MAX_LENGTH",
    "DEFAULT_RESPONSE_TIMEOUT",
    "QUESTION_SLOTS",
    "ResponseStatus",
    "User",
    "TeamAutomationConfig",
    "Team",
    "ResponseRecord",
    "Session",
    "StartResult",
    "SummaryEntry",
    "Participation",
    "TeamSummary",
    "StatusCounts",
    "HistoryEntry",
    "participation_percentage",
]
