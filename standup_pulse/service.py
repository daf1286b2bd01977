"""Core orchestration logic for Standup Pulse."""

from __future__ import annotations

import csv
import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .clock import Clock
from .config import Settings
from .db import Database
from .errors import ConfigurationError, NotFoundError, ValidationError
from .escalation import EscalationTimer
from .models import (
    HistoryEntry,
    ResponseRecord,
    ResponseStatus,
    StatusCounts,
    Team,
    TeamAutomationConfig,
    TeamSummary,
    User,
    participation_percentage,
)
from .responses import ResponseRecorder
from .scheduler import TriggerEngine
from .sessions import SessionInitializer
from .slack_client import SlackClient
from .summary import SummaryBuilder
from .validation import validate_schedule_time, validate_timeout, validate_timezone

logger = logging.getLogger(__name__)

CONFIGURABLE_FIELDS = (
    "schedule_time",
    "timezone",
    "participants",
    "channel_id",
    "response_timeout_minutes",
)


class StandupService:
    """High-level service wiring the engine together and exposing its operations."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        client: Optional[SlackClient] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings
        self.database = database
        self.client = client
        self.clock = clock or Clock()

        self.initializer = SessionInitializer(database, self.clock)
        self.recorder = ResponseRecorder(database, self.clock)
        self.summaries = SummaryBuilder(database)
        self.escalations = EscalationTimer(
            database,
            self.summaries,
            self.clock,
            slack_client=client,
            marks_missed=settings.escalation_marks_missed,
        )
        self.engine = TriggerEngine(
            database,
            self.initializer,
            self.escalations,
            self.clock,
            tick_seconds=settings.tick_seconds,
            recovery_grace_minutes=settings.recovery_grace_minutes,
        )

    # region Lifecycle
    async def start(self) -> None:
        try:
            await self.sync_roster()
        except Exception as exc:  # noqa: BLE001
            logger.error("Roster sync failed: %s", exc)
        await self.engine.start()

    async def stop(self) -> None:
        await self.engine.stop()

    async def sync_roster(self) -> int:
        """Load display names from the roster CSV and, when configured, Slack."""

        synced = 0
        roster_path = self.settings.team_roster_path
        if roster_path.exists():
            for user in load_roster_csv(roster_path):
                self._store_user(user)
                synced += 1

        if self.client is not None:
            for member in await self.client.fetch_users():
                if member.get("is_bot") or member.get("id") == "USLACKBOT":
                    continue
                profile = member.get("profile", {})
                self._store_user(
                    User(
                        id=member["id"],
                        username=member.get("name") or member["id"],
                        real_name=profile.get("real_name") or member.get("real_name"),
                    )
                )
                synced += 1
        return synced

    def _store_user(self, user: User) -> None:
        self.database.upsert_user(
            {
                "id": user.id,
                "username": user.username,
                "real_name": user.real_name,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            }
        )

    # endregion

    # region Standup operations
    async def start_now(self, team_id: str) -> Dict[str, Any]:
        result = await self.engine.trigger(team_id)
        return {
            "participant_count": result.participant_count,
            "date": result.session.standup_date.isoformat(),
            "escalation_deadline": result.session.escalation_deadline.isoformat(),
        }

    def record_answer(
        self,
        user_id: str,
        question_index: int,
        text: str,
        team_id: Optional[str] = None,
    ) -> ResponseRecord:
        return self.recorder.record(user_id, question_index, text, team_id)

    def get_summary(self, team_id: str, day: Optional[date] = None) -> TeamSummary:
        return self.summaries.build(team_id, day or self.clock.today())

    def get_status(self, team_id: str, day: Optional[date] = None) -> StatusCounts:
        self._require_team(team_id)
        counts = self.database.get_status_counts(team_id, day or self.clock.today())
        return StatusCounts(
            pending=counts.get(ResponseStatus.PENDING.value, 0),
            submitted=counts.get(ResponseStatus.SUBMITTED.value, 0),
            late=counts.get(ResponseStatus.LATE.value, 0),
            missed=counts.get(ResponseStatus.MISSED.value, 0),
            total=sum(counts.values()),
        )

    def get_history(self, team_id: str, limit: int = 7) -> List[HistoryEntry]:
        self._require_team(team_id)
        if limit <= 0:
            raise ValidationError("History limit must be positive", limit=limit)
        return [
            HistoryEntry(
                standup_date=date.fromisoformat(row["date"]),
                responded=row["responded"] or 0,
                total=row["total"],
                percentage=participation_percentage(row["responded"] or 0, row["total"]),
            )
            for row in self.database.get_participation_history(team_id, limit)
        ]

    # endregion

    # region Configuration
    def create_team(self, team_id: str, name: str) -> Team:
        if not name or not name.strip():
            raise ValidationError("Team name is required", team_id=team_id)
        return self.database.upsert_team(team_id, name.strip())

    def get_config(self, team_id: str) -> TeamAutomationConfig:
        return self._require_team(team_id).config

    def configure(self, team_id: str, **changes: Any) -> TeamAutomationConfig:
        team = self._require_team(team_id)
        unknown = sorted(set(changes) - set(CONFIGURABLE_FIELDS))
        if unknown:
            raise ValidationError("Unknown configuration fields", fields=unknown)

        partial: Dict[str, Any] = {}
        if "schedule_time" in changes:
            partial["schedule_time"] = validate_schedule_time(changes["schedule_time"])
        if "timezone" in changes:
            partial["timezone"] = validate_timezone(changes["timezone"])
        if "response_timeout_minutes" in changes:
            partial["response_timeout_minutes"] = validate_timeout(
                changes["response_timeout_minutes"]
            )
        if "participants" in changes:
            partial["participants"] = _participant_ids(changes["participants"])
        if "channel_id" in changes:
            channel_id = (changes["channel_id"] or "").strip()
            partial["channel_id"] = channel_id or None

        if team.config.enabled:
            missing = _missing_requirement(replace(team.config, **partial))
            if missing:
                raise ConfigurationError(
                    f"{missing} must be set while standup is enabled", team_id=team_id
                )

        self.database.update_team_config(team_id, partial)
        return self.get_config(team_id)

    def enable(self, team_id: str) -> TeamAutomationConfig:
        missing = _missing_requirement(self.get_config(team_id))
        if missing:
            raise ConfigurationError(
                f"{missing} must be set before enabling standup", team_id=team_id
            )
        self.database.update_team_config(team_id, {"enabled": True})
        logger.info("Enabled standup automation for team %s", team_id)
        return self.get_config(team_id)

    def disable(self, team_id: str) -> TeamAutomationConfig:
        self._require_team(team_id)
        self.database.update_team_config(team_id, {"enabled": False})
        logger.info("Disabled standup automation for team %s", team_id)
        return self.get_config(team_id)

    # endregion

    def _require_team(self, team_id: str) -> Team:
        team = self.database.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found", team_id=team_id)
        return team


def _missing_requirement(config: TeamAutomationConfig) -> Optional[str]:
    """Name the first setting an enabled team cannot run without."""

    if not config.schedule_time:
        return "Schedule time"
    if not config.channel_id:
        return "Channel"
    if not config.participants:
        return "Participants"
    return None


def _participant_ids(values: Any) -> List[str]:
    if not isinstance(values, (list, tuple, set)):
        raise ValidationError("Participants must be a list of user ids")
    ids = [str(value).strip() for value in values]
    if any(not user_id for user_id in ids):
        raise ValidationError("Participant ids must not be empty")
    return list(dict.fromkeys(ids))


def load_roster_csv(path: Path) -> Iterable[User]:
    with path.open(newline="", encoding="utf-8") as handle:
        reader = csv.DictReader(handle)
        for row in reader:
            if not row.get("user_id"):
                continue
            yield User(
                id=row["user_id"],
                username=row.get("username") or row["user_id"],
                real_name=row.get("real_name") or None,
            )


__all__ = ["StandupService", "load_roster_csv"]
