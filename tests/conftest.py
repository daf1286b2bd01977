"""
Pytest configuration and shared fixtures.

Provides a frozen clock, a throwaway SQLite database, a fake Slack client
and a wired StandupService.
"""

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

# Set test environment before importing application modules
_TMP_DIR = Path(tempfile.mkdtemp(prefix="standup-pulse-"))
os.environ["API_KEY"] = "test-key"
os.environ["DATABASE_PATH"] = str(_TMP_DIR / "module.db")
os.environ["TEAM_ROSTER_PATH"] = str(_TMP_DIR / "missing_roster.csv")
os.environ.pop("SLACK_BOT_TOKEN", None)

from standup_pulse.clock import Clock  # noqa: E402
from standup_pulse.config import Settings  # noqa: E402
from standup_pulse.db import Database  # noqa: E402
from standup_pulse.service import StandupService  # noqa: E402


class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def set(self, moment: datetime) -> None:
        self.moment = moment

    def advance(self, **kwargs) -> datetime:
        self.moment = self.moment + timedelta(**kwargs)
        return self.moment


class FakeSlackClient:
    """Records posted messages instead of calling Slack."""

    def __init__(self, users=None, fail_with: Exception | None = None) -> None:
        self.users = users or []
        self.fail_with = fail_with
        self.posted: list[tuple[str, str]] = []
        self.closed = False

    async def fetch_users(self):
        return list(self.users)

    async def post_message(self, channel_id: str, text: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.posted.append((channel_id, text))
        return "1700000000.000100"

    async def close(self) -> None:
        self.closed = True


# --- Time Fixtures ---


@pytest.fixture
def monday_nine() -> datetime:
    """Monday 2024-01-15 09:00 UTC."""
    return datetime(2024, 1, 15, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(monday_nine: datetime) -> FrozenClock:
    return FrozenClock(monday_nine)


# --- Storage Fixtures ---


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_key="test-key",
        database_path=tmp_path / "standup.db",
        team_roster_path=tmp_path / "team_roster.csv",
    )


@pytest.fixture
def database(settings: Settings) -> Database:
    return Database(settings.database_path)


@pytest.fixture
def slack() -> FakeSlackClient:
    return FakeSlackClient()


@pytest.fixture
def service(settings, database, slack, clock) -> StandupService:
    return StandupService(settings, database, slack, clock=clock)


@pytest_asyncio.fixture
async def async_service(service):
    """Service whose scheduled escalations are cancelled after the test."""
    yield service
    await service.stop()


def add_users(database: Database, *users: tuple[str, str]) -> None:
    for user_id, real_name in users:
        database.upsert_user(
            {
                "id": user_id,
                "username": user_id.lower(),
                "real_name": real_name,
                "updated_at": "2024-01-01T00:00:00+00:00",
            }
        )


@pytest.fixture
def team(service: StandupService, database: Database):
    """Enabled team 'core' at 09:00 with participants A and B, timeout 120."""
    add_users(database, ("A", "Alice Able"), ("B", "Bob Baker"))
    service.create_team("core", "Core Platform")
    service.configure(
        "core",
        schedule_time="09:00",
        participants=["A", "B"],
        channel_id="C123",
        response_timeout_minutes=120,
    )
    service.enable("core")
    return database.get_team("core")
