"""
Test the session initializer and the session ledger.
"""

from datetime import timedelta

import pytest

from standup_pulse.errors import AlreadyStartedError, ConfigurationError, NotFoundError
from standup_pulse.models import ResponseStatus


class TestSessionInitializer:
    def test_creates_one_pending_record_per_participant(self, service, team, database, clock):
        result = service.initializer.start("core")

        assert result.participant_count == 2
        records = database.find_team_responses("core", clock.today())
        assert [r.user_id for r in records] == ["A", "B"]
        assert all(r.status is ResponseStatus.PENDING for r in records)
        assert all(r.answers() == ["", "", ""] for r in records)
        assert all(r.submitted_at is None for r in records)

    def test_persists_session_with_deadline(self, service, team, database, clock, monday_nine):
        service.initializer.start("core")

        session = database.get_session("core", clock.today())
        assert session is not None
        assert session.triggered_at == monday_nine
        assert session.escalation_deadline == monday_nine + timedelta(minutes=120)
        assert session.escalated_at is None

    def test_second_start_same_day_fails(self, service, team, database, clock):
        service.initializer.start("core")
        clock.advance(minutes=30)

        with pytest.raises(AlreadyStartedError, match="already started"):
            service.initializer.start("core")
        assert len(database.find_team_responses("core", clock.today())) == 2

    def test_next_day_starts_again(self, service, team, clock):
        service.initializer.start("core")
        clock.advance(days=1)

        result = service.initializer.start("core")
        assert result.session.standup_date == clock.today()

    def test_disabled_team_rejected(self, service, team):
        service.disable("core")
        with pytest.raises(ConfigurationError, match="not enabled"):
            service.initializer.start("core")

    def test_unknown_team(self, service):
        with pytest.raises(NotFoundError, match="Team not found"):
            service.initializer.start("ghost")

    def test_duplicate_participants_collapsed(self, service, team, database):
        database.update_team_config("core", {"participants": ["A", "B", "A"]})
        assert service.initializer.start("core").participant_count == 2
