"""Minute-driven trigger loop and startup recovery for daily standups."""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from .clock import Clock, minute_of, scheduled_instant
from .db import Database
from .escalation import EscalationTimer
from .models import StartResult, Team
from .sessions import SessionInitializer

logger = logging.getLogger(__name__)


class TriggerEngine:
    """Starts each enabled team's standup once per day at its schedule time.

    ``last_run_date`` records that a team already ran today. The trigger path
    (create the session, stamp ``last_run_date``, schedule the escalation) runs
    under a per-team lock, so overlapping ticks and manual starts cannot both
    pass the existence check.
    """

    def __init__(
        self,
        database: Database,
        initializer: SessionInitializer,
        escalations: EscalationTimer,
        clock: Clock,
        tick_seconds: int = 60,
        recovery_grace_minutes: int = 5,
    ) -> None:
        self.database = database
        self.initializer = initializer
        self.escalations = escalations
        self.clock = clock
        self.tick_seconds = tick_seconds
        self.recovery_grace = timedelta(minutes=recovery_grace_minutes)
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._task: Optional[asyncio.Task] = None

    async def trigger(self, team_id: str) -> StartResult:
        async with self._locks[team_id]:
            result = self.initializer.start(team_id)
            self.database.update_team_config(
                team_id, {"last_run_date": result.session.standup_date}
            )
            self.escalations.schedule(result.session)
            return result

    def should_run(self, team: Team, now: datetime) -> bool:
        config = team.config
        if not config.enabled or not config.schedule_time:
            return False
        return minute_of(now) == config.schedule_time and config.last_run_date != now.date()

    async def tick(self, now: Optional[datetime] = None) -> List[str]:
        """Trigger every team due this minute; return the ids that started."""

        now = now or self.clock.now()
        started: List[str] = []
        for team in self.database.list_teams(enabled=True):
            try:
                if self.should_run(team, now):
                    logger.info("Starting standup for team: %s", team.name)
                    await self.trigger(team.id)
                    started.append(team.id)
            except Exception:  # noqa: BLE001
                logger.exception("Standup execution failed for team %s", team.id)
        return started

    async def recover_missed(self, now: Optional[datetime] = None) -> List[str]:
        """Fire teams whose schedule time passed today without a recorded run."""

        now = now or self.clock.now()
        today = now.date()
        cutoff = now - self.recovery_grace
        recovered: List[str] = []
        for team in self.database.list_teams(enabled=True):
            config = team.config
            if not config.schedule_time or config.last_run_date == today:
                continue
            try:
                if scheduled_instant(today, config.schedule_time) < cutoff:
                    logger.warning("Recovering missed standup for team: %s", team.name)
                    await self.trigger(team.id)
                    recovered.append(team.id)
            except Exception:  # noqa: BLE001
                logger.exception("Recovery failed for team %s", team.id)
        return recovered

    def _seconds_until_next_tick(self) -> float:
        now = self.clock.now()
        elapsed = (now.second + now.microsecond / 1_000_000) % self.tick_seconds
        return self.tick_seconds - elapsed

    async def run(self) -> None:
        while True:
            try:
                await self.tick()
            except Exception as exc:  # noqa: BLE001
                logger.error("Scheduler tick failed: %s", exc)
            await asyncio.sleep(self._seconds_until_next_tick())

    async def start(self) -> None:
        if self._task is not None:
            return
        logger.info("Initializing daily standup scheduler")
        await self.escalations.resume_pending()
        await self.recover_missed()
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.escalations.shutdown()
        logger.info("Daily standup scheduler stopped")

    def status(self) -> Dict[str, Any]:
        return {
            "running": self._task is not None and not self._task.done(),
            "pending_escalations": self.escalations.pending_count,
        }


__all__ = ["TriggerEngine"]
