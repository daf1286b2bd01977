"""Recording of individual standup answers."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .clock import Clock
from .db import Database
from .errors import NotFoundError, ValidationError
from .models import ResponseRecord, ResponseStatus
from .validation import validate_answer, validate_question

logger = logging.getLogger(__name__)


class ResponseRecorder:
    """Stores one answer at a time and keeps the record's status in step.

    A record completed at or after its session's escalation deadline is
    late rather than submitted. Missed records are closed.
    """

    def __init__(self, database: Database, clock: Clock) -> None:
        self.database = database
        self.clock = clock

    def record(
        self,
        user_id: str,
        question_index: int,
        text: str,
        team_id: Optional[str] = None,
    ) -> ResponseRecord:
        record = self._active_record(user_id, team_id)
        slot = validate_question(question_index)
        answer = validate_answer(text)

        now = self.clock.now()
        setattr(record, slot, answer)
        record.edited_at = now

        if record.is_complete():
            if not record.status.is_responded:
                record.submitted_at = now
                record.status = (
                    ResponseStatus.LATE if self._overdue(record, now) else ResponseStatus.SUBMITTED
                )
        else:
            record.status = ResponseStatus.PENDING

        self.database.upsert_response(record)
        logger.debug(
            "Recorded answer %s for user %s in team %s (%s)",
            question_index,
            user_id,
            record.team_id,
            record.status.value,
        )
        return record

    def _active_record(self, user_id: str, team_id: Optional[str]) -> ResponseRecord:
        today = self.clock.today()
        candidates = [
            record
            for record in self.database.find_user_responses(user_id, today)
            if record.status.is_active and (team_id is None or record.team_id == team_id)
        ]
        if not candidates:
            raise NotFoundError(
                "No active standup found for today", user_id=user_id, team_id=team_id
            )
        if len(candidates) > 1:
            raise ValidationError(
                "User has active standups in several teams; a team must be given",
                user_id=user_id,
                teams=[record.team_id for record in candidates],
            )
        return candidates[0]

    def _overdue(self, record: ResponseRecord, now: datetime) -> bool:
        session = self.database.get_session(record.team_id, record.standup_date)
        return session is not None and now >= session.escalation_deadline


__all__ = ["ResponseRecorder"]
