"""Timeout-driven close-out of a standup session.

Each session row carries its own escalation deadline, so pending escalations
survive a restart: ``resume_pending`` re-schedules every session that has not
been escalated yet and fires the overdue ones straight away. Firing is
idempotent because ``Database.claim_escalation`` stamps ``escalated_at`` at
most once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

from .clock import Clock
from .db import Database
from .models import Session, TeamSummary
from .slack_client import SlackClient
from .summary import SummaryBuilder, format_summary

logger = logging.getLogger(__name__)


class EscalationTimer:
    def __init__(
        self,
        database: Database,
        summaries: SummaryBuilder,
        clock: Clock,
        slack_client: Optional[SlackClient] = None,
        marks_missed: bool = True,
    ) -> None:
        self.database = database
        self.summaries = summaries
        self.clock = clock
        self.slack_client = slack_client
        self.marks_missed = marks_missed
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending_count(self) -> int:
        return len(self._tasks)

    def schedule(self, session: Session) -> asyncio.Task:
        """Fire ``session``'s escalation at its deadline (immediately if past)."""

        delay = max((session.escalation_deadline - self.clock.now()).total_seconds(), 0.0)
        task = asyncio.create_task(self._fire_after(session, delay))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info(
            "Escalation for team %s on %s scheduled in %.0f seconds",
            session.team_id,
            session.standup_date.isoformat(),
            delay,
        )
        return task

    async def _fire_after(self, session: Session, delay: float) -> Optional[TeamSummary]:
        if delay:
            await asyncio.sleep(delay)
        return await self.fire(session)

    async def fire(self, session: Session) -> Optional[TeamSummary]:
        """Close out stragglers, then build and deliver the summary.

        Returns the summary, or None when the session was already escalated or
        the close-out failed. Failures are logged, never raised.
        """

        team_id = session.team_id
        day = session.standup_date
        try:
            now = self.clock.now()
            if not self.database.claim_escalation(team_id, day, now):
                logger.debug("Escalation for team %s on %s already fired", team_id, day)
                return None

            late = self.database.mark_late(team_id, day, session.triggered_at)
            missed = self.database.mark_missed(team_id, day) if self.marks_missed else 0
            logger.info(
                "Escalated standup for team %s on %s: %s late, %s missed",
                team_id,
                day.isoformat(),
                late,
                missed,
            )

            summary = self.summaries.build(team_id, day)
        except Exception as exc:  # noqa: BLE001
            logger.error("Escalation failed for team %s on %s: %s", team_id, day, exc)
            return None

        await self._deliver(summary)
        return summary

    async def _deliver(self, summary: TeamSummary) -> None:
        team = self.database.get_team(summary.team_id)
        channel_id = team.config.channel_id if team else None
        if not channel_id:
            logger.warning("Team %s has no channel; summary not posted", summary.team_id)
            return
        if self.slack_client is None:
            logger.info(
                "Slack token not configured; summary for team %s not posted", summary.team_id
            )
            return
        try:
            await self.slack_client.post_message(channel_id, format_summary(summary))
        except Exception as exc:  # noqa: BLE001
            logger.error("Summary delivery failed for team %s: %s", summary.team_id, exc)
            return
        logger.info("Posted standup summary for team %s to %s", summary.team_id, channel_id)

    async def resume_pending(self) -> int:
        sessions = self.database.get_unescalated_sessions()
        for session in sessions:
            self.schedule(session)
        if sessions:
            logger.info("Resumed %s pending escalations", len(sessions))
        return len(sessions)

    async def shutdown(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


__all__ = ["EscalationTimer"]
