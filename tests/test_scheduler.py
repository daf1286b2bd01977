"""
Test the minute trigger loop and startup recovery.
"""

import asyncio

import pytest

from standup_pulse.errors import AlreadyStartedError


class TestShouldRun:
    def test_matches_schedule_minute(self, service, team, monday_nine):
        assert service.engine.should_run(team, monday_nine) is True

    def test_other_minute(self, service, team, monday_nine):
        assert service.engine.should_run(team, monday_nine.replace(minute=1)) is False

    def test_seconds_are_truncated(self, service, team, monday_nine):
        assert service.engine.should_run(team, monday_nine.replace(second=59)) is True

    def test_already_ran_today(self, service, team, database, monday_nine):
        database.update_team_config("core", {"last_run_date": monday_nine.date()})
        assert service.engine.should_run(database.get_team("core"), monday_nine) is False

    def test_disabled(self, service, team, database, monday_nine):
        service.disable("core")
        assert service.engine.should_run(database.get_team("core"), monday_nine) is False


class TestTick:
    @pytest.mark.asyncio
    async def test_exactly_one_start_per_day(self, async_service, team, database, clock):
        started = []
        for second in (0, 20, 40):
            clock.set(clock.now().replace(second=second))
            started.extend(await async_service.engine.tick())

        assert started == ["core"]
        assert len(database.find_team_responses("core", clock.today())) == 2
        assert database.get_team("core").config.last_run_date == clock.today()

    @pytest.mark.asyncio
    async def test_runs_again_next_day(self, async_service, team, clock):
        assert await async_service.engine.tick() == ["core"]
        clock.advance(days=1)
        assert await async_service.engine.tick() == ["core"]

    @pytest.mark.asyncio
    async def test_failure_isolated_per_team(self, async_service, team, service, database, clock):
        service.create_team("web", "Web")
        service.configure("web", schedule_time="09:00", participants=["C"], channel_id="C9")
        service.enable("web")
        # a manual start that never stamped last_run_date makes the tick fail for "core"
        service.initializer.start("core")

        started = await async_service.engine.tick()

        assert started == ["web"]
        assert len(database.find_team_responses("web", clock.today())) == 1

    @pytest.mark.asyncio
    async def test_schedules_escalation(self, async_service, team):
        await async_service.engine.tick()
        assert async_service.escalations.pending_count == 1

    @pytest.mark.asyncio
    async def test_concurrent_triggers_start_once(self, async_service, team):
        results = await asyncio.gather(
            async_service.engine.trigger("core"),
            async_service.engine.trigger("core"),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, AlreadyStartedError)) == 1
        assert sum(1 for r in results if not isinstance(r, Exception)) == 1


class TestRecovery:
    @pytest.mark.asyncio
    async def test_recovers_missed_standup_once(self, async_service, team, clock):
        clock.advance(minutes=10)

        assert await async_service.engine.recover_missed() == ["core"]
        assert await async_service.engine.recover_missed() == []
        assert await async_service.engine.tick() == []

    @pytest.mark.asyncio
    async def test_within_grace_window_not_recovered(self, async_service, team, clock):
        clock.advance(minutes=5)
        assert await async_service.engine.recover_missed() == []

    @pytest.mark.asyncio
    async def test_before_schedule_not_recovered(self, async_service, team, clock):
        clock.advance(hours=-2)
        assert await async_service.engine.recover_missed() == []

    @pytest.mark.asyncio
    async def test_malformed_schedule_logged_not_raised(
        self, async_service, team, service, database, clock, caplog
    ):
        service.create_team("web", "Web")
        database.update_team_config(
            "web",
            {"schedule_time": "bogus", "participants": ["C"], "channel_id": "C9", "enabled": True},
        )
        clock.advance(minutes=10)

        assert await async_service.engine.recover_missed() == ["core"]
        assert "Recovery failed for team web" in caplog.text


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_start_recovers_and_stop_cancels(self, async_service, team, clock):
        clock.advance(minutes=30)

        await async_service.engine.start()
        status = async_service.engine.status()
        assert status["running"] is True
        assert status["pending_escalations"] == 1

        await async_service.engine.stop()
        assert async_service.engine.status() == {"running": False, "pending_escalations": 0}
