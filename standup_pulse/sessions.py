"""Creation of the per-day response records for one team."""

from __future__ import annotations

import logging
import sqlite3
from datetime import timedelta

from .clock import Clock
from .db import Database
from .errors import AlreadyStartedError, ConfigurationError, NotFoundError
from .models import ResponseRecord, ResponseStatus, Session, StartResult

logger = logging.getLogger(__name__)


class SessionInitializer:
    """Opens today's standup: one pending record per configured participant."""

    def __init__(self, database: Database, clock: Clock) -> None:
        self.database = database
        self.clock = clock

    def start(self, team_id: str) -> StartResult:
        team = self.database.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found", team_id=team_id)
        if not team.config.enabled:
            raise ConfigurationError(
                "Standup automation is not enabled for this team", team_id=team_id
            )

        now = self.clock.now()
        today = now.date()
        if self.database.has_standup(team_id, today):
            raise AlreadyStartedError(team_id, today.isoformat())

        session = Session(
            team_id=team_id,
            standup_date=today,
            triggered_at=now,
            escalation_deadline=now + timedelta(minutes=team.config.response_timeout_minutes),
        )
        records = [
            ResponseRecord(
                team_id=team_id,
                user_id=user_id,
                standup_date=today,
                status=ResponseStatus.PENDING,
            )
            for user_id in dict.fromkeys(team.config.participants)
        ]
        try:
            self.database.create_session(session, records)
        except sqlite3.IntegrityError as exc:
            raise AlreadyStartedError(team_id, today.isoformat()) from exc

        logger.info(
            "Started standup for team %s on %s with %s participants",
            team_id,
            today.isoformat(),
            len(records),
        )
        return StartResult(session=session, records=records)


__all__ = ["SessionInitializer"]
