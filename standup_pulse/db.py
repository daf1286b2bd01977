"""SQLite persistence layer for Standup Pulse."""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from .models import (
    ResponseRecord,
    ResponseStatus,
    Session,
    Team,
    TeamAutomationConfig,
    User,
)

Connection = sqlite3.Connection
Row = sqlite3.Row

# config attribute -> teams column
CONFIG_COLUMNS = {
    "enabled": "enabled",
    "schedule_time": "schedule_time",
    "timezone": "timezone",
    "participants": "participants",
    "channel_id": "channel_id",
    "response_timeout_minutes": "response_timeout",
    "last_run_date": "last_run_date",
}


def _ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat(timespec="microseconds") if value else None


def _parse_ts(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class Database:
    """Lightweight wrapper around SQLite operations."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialize(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    username TEXT,
                    real_name TEXT,
                    updated_at TEXT
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS teams (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    enabled INTEGER NOT NULL DEFAULT 0,
                    schedule_time TEXT,
                    timezone TEXT NOT NULL DEFAULT 'UTC',
                    participants TEXT NOT NULL DEFAULT '[]',
                    channel_id TEXT,
                    response_timeout INTEGER NOT NULL DEFAULT 120,
                    last_run_date TEXT,
                    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS responses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    team_id TEXT NOT NULL,
                    user_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    yesterday TEXT NOT NULL DEFAULT '',
                    today TEXT NOT NULL DEFAULT '',
                    blockers TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    submitted_at TEXT,
                    edited_at TEXT,
                    UNIQUE(team_id, user_id, date),
                    FOREIGN KEY(team_id) REFERENCES teams(id)
                )
                """
            )
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_responses_user_date ON responses(user_id, date)"
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS sessions (
                    team_id TEXT NOT NULL,
                    date TEXT NOT NULL,
                    triggered_at TEXT NOT NULL,
                    escalation_deadline TEXT NOT NULL,
                    escalated_at TEXT,
                    PRIMARY KEY(team_id, date),
                    FOREIGN KEY(team_id) REFERENCES teams(id)
                )
                """
            )
            conn.commit()

    # region Users
    def upsert_user(self, user: Dict[str, Any]) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, username, real_name, updated_at)
                VALUES (:id, :username, :real_name, :updated_at)
                ON CONFLICT(id) DO UPDATE SET
                    username=excluded.username,
                    real_name=excluded.real_name,
                    updated_at=excluded.updated_at
                """,
                user,
            )
            conn.commit()

    def get_users(self, user_ids: Optional[Iterable[str]] = None) -> List[User]:
        with self.connect() as conn:
            if user_ids is None:
                cursor = conn.execute("SELECT * FROM users ORDER BY real_name")
            else:
                ids = list(user_ids)
                if not ids:
                    return []
                placeholders = ", ".join("?" for _ in ids)
                cursor = conn.execute(
                    f"SELECT * FROM users WHERE id IN ({placeholders})", ids
                )
            return [
                User(id=row["id"], username=row["username"], real_name=row["real_name"])
                for row in cursor.fetchall()
            ]

    # endregion

    # region Teams
    def upsert_team(self, team_id: str, name: str) -> Team:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO teams (id, name) VALUES (?, ?)
                ON CONFLICT(id) DO UPDATE SET name=excluded.name
                """,
                (team_id, name),
            )
            conn.commit()
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
            return _team_from_row(row)

    def get_team(self, team_id: str) -> Optional[Team]:
        with self.connect() as conn:
            cursor = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,))
            row = cursor.fetchone()
            return _team_from_row(row) if row else None

    def list_teams(self, enabled: Optional[bool] = None) -> List[Team]:
        with self.connect() as conn:
            if enabled is None:
                cursor = conn.execute("SELECT * FROM teams ORDER BY id")
            else:
                cursor = conn.execute(
                    "SELECT * FROM teams WHERE enabled = ? ORDER BY id", (int(enabled),)
                )
            return [_team_from_row(row) for row in cursor.fetchall()]

    def update_team_config(self, team_id: str, partial: Dict[str, Any]) -> None:
        """Write the given ``TeamAutomationConfig`` attributes for one team."""

        assignments: List[str] = []
        values: List[Any] = []
        for key, value in partial.items():
            column = CONFIG_COLUMNS.get(key)
            if column is None:
                raise KeyError(f"unknown config field: {key}")
            assignments.append(f"{column} = ?")
            values.append(_config_value(key, value))
        if not assignments:
            return
        assignments.append("updated_at = CURRENT_TIMESTAMP")
        with self.connect() as conn:
            conn.execute(
                f"UPDATE teams SET {', '.join(assignments)} WHERE id = ?",
                (*values, team_id),
            )
            conn.commit()

    # endregion

    # region Responses
    def create_session(self, session: Session, records: Iterable[ResponseRecord]) -> None:
        """Insert a session and its pending records in one transaction.

        Raises ``sqlite3.IntegrityError`` if the session or any record already
        exists; nothing is written in that case.
        """

        with self.connect() as conn:
            try:
                conn.execute(
                    """
                    INSERT INTO sessions (team_id, date, triggered_at, escalation_deadline)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        session.team_id,
                        session.standup_date.isoformat(),
                        _ts(session.triggered_at),
                        _ts(session.escalation_deadline),
                    ),
                )
                conn.executemany(
                    """
                    INSERT INTO responses (team_id, user_id, date, status)
                    VALUES (?, ?, ?, ?)
                    """,
                    [
                        (r.team_id, r.user_id, r.standup_date.isoformat(), r.status.value)
                        for r in records
                    ],
                )
                conn.commit()
            except sqlite3.IntegrityError:
                conn.rollback()
                raise

    def has_standup(self, team_id: str, day: date) -> bool:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT EXISTS(SELECT 1 FROM responses WHERE team_id = ? AND date = ?)
                    OR EXISTS(SELECT 1 FROM sessions WHERE team_id = ? AND date = ?)
                """,
                (team_id, day.isoformat(), team_id, day.isoformat()),
            )
            return bool(cursor.fetchone()[0])

    def find_team_responses(
        self,
        team_id: str,
        day: date,
        statuses: Optional[Iterable[ResponseStatus]] = None,
    ) -> List[ResponseRecord]:
        query = "SELECT * FROM responses WHERE team_id = ? AND date = ?"
        params: List[Any] = [team_id, day.isoformat()]
        if statuses is not None:
            wanted = [status.value for status in statuses]
            query += f" AND status IN ({', '.join('?' for _ in wanted)})"
            params.extend(wanted)
        with self.connect() as conn:
            cursor = conn.execute(query + " ORDER BY id", params)
            return [_record_from_row(row) for row in cursor.fetchall()]

    def find_user_responses(self, user_id: str, day: date) -> List[ResponseRecord]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM responses WHERE user_id = ? AND date = ? ORDER BY id",
                (user_id, day.isoformat()),
            )
            return [_record_from_row(row) for row in cursor.fetchall()]

    def upsert_response(self, record: ResponseRecord) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO responses (
                    team_id, user_id, date, yesterday, today, blockers,
                    status, submitted_at, edited_at
                )
                VALUES (
                    :team_id, :user_id, :date, :yesterday, :today, :blockers,
                    :status, :submitted_at, :edited_at
                )
                ON CONFLICT(team_id, user_id, date) DO UPDATE SET
                    yesterday=excluded.yesterday,
                    today=excluded.today,
                    blockers=excluded.blockers,
                    status=excluded.status,
                    submitted_at=excluded.submitted_at,
                    edited_at=excluded.edited_at
                """,
                {
                    "team_id": record.team_id,
                    "user_id": record.user_id,
                    "date": record.standup_date.isoformat(),
                    "yesterday": record.yesterday,
                    "today": record.today,
                    "blockers": record.blockers,
                    "status": record.status.value,
                    "submitted_at": _ts(record.submitted_at),
                    "edited_at": _ts(record.edited_at),
                },
            )
            conn.commit()

    def mark_late(self, team_id: str, day: date, cutoff: datetime) -> int:
        """Pending records already carrying a ``submitted_at`` before ``cutoff`` become late."""

        with self.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE responses SET status = ?
                WHERE team_id = ? AND date = ? AND status = ?
                  AND submitted_at IS NOT NULL AND submitted_at < ?
                """,
                (
                    ResponseStatus.LATE.value,
                    team_id,
                    day.isoformat(),
                    ResponseStatus.PENDING.value,
                    _ts(cutoff),
                ),
            )
            conn.commit()
            return cursor.rowcount

    def mark_missed(self, team_id: str, day: date) -> int:
        """Pending records that were never submitted become missed."""

        with self.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE responses SET status = ?
                WHERE team_id = ? AND date = ? AND status = ? AND submitted_at IS NULL
                """,
                (
                    ResponseStatus.MISSED.value,
                    team_id,
                    day.isoformat(),
                    ResponseStatus.PENDING.value,
                ),
            )
            conn.commit()
            return cursor.rowcount

    def get_status_counts(self, team_id: str, day: date) -> Dict[str, int]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT status, COUNT(*) AS total
                FROM responses
                WHERE team_id = ? AND date = ?
                GROUP BY status
                """,
                (team_id, day.isoformat()),
            )
            return {row["status"]: row["total"] for row in cursor.fetchall()}

    def get_participation_history(self, team_id: str, limit: int) -> List[Row]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT date,
                       COUNT(*) AS total,
                       SUM(CASE WHEN status IN ('submitted', 'late') THEN 1 ELSE 0 END) AS responded
                FROM responses
                WHERE team_id = ?
                GROUP BY date
                ORDER BY date DESC
                LIMIT ?
                """,
                (team_id, limit),
            )
            return cursor.fetchall()

    # endregion

    # region Sessions
    def get_session(self, team_id: str, day: date) -> Optional[Session]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM sessions WHERE team_id = ? AND date = ?",
                (team_id, day.isoformat()),
            )
            row = cursor.fetchone()
            return _session_from_row(row) if row else None

    def get_unescalated_sessions(self) -> List[Session]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT * FROM sessions
                WHERE escalated_at IS NULL
                ORDER BY escalation_deadline
                """
            )
            return [_session_from_row(row) for row in cursor.fetchall()]

    def claim_escalation(self, team_id: str, day: date, at: datetime) -> bool:
        """Stamp ``escalated_at`` once; False if another caller already did."""

        with self.connect() as conn:
            cursor = conn.execute(
                """
                UPDATE sessions SET escalated_at = ?
                WHERE team_id = ? AND date = ? AND escalated_at IS NULL
                """,
                (_ts(at), team_id, day.isoformat()),
            )
            conn.commit()
            return cursor.rowcount == 1

    # endregion


def _config_value(key: str, value: Any) -> Any:
    if key == "enabled":
        return int(bool(value))
    if key == "participants":
        return json.dumps(list(dict.fromkeys(value or [])))
    if key == "last_run_date":
        return value.isoformat() if value else None
    return value


def _team_from_row(row: Row) -> Team:
    config = TeamAutomationConfig(
        enabled=bool(row["enabled"]),
        schedule_time=row["schedule_time"],
        timezone=row["timezone"],
        participants=json.loads(row["participants"] or "[]"),
        channel_id=row["channel_id"],
        response_timeout_minutes=row["response_timeout"],
        last_run_date=date.fromisoformat(row["last_run_date"]) if row["last_run_date"] else None,
    )
    return Team(id=row["id"], name=row["name"], config=config)


def _record_from_row(row: Row) -> ResponseRecord:
    return ResponseRecord(
        team_id=row["team_id"],
        user_id=row["user_id"],
        standup_date=date.fromisoformat(row["date"]),
        yesterday=row["yesterday"],
        today=row["today"],
        blockers=row["blockers"],
        status=ResponseStatus(row["status"]),
        submitted_at=_parse_ts(row["submitted_at"]),
        edited_at=_parse_ts(row["edited_at"]),
    )


def _session_from_row(row: Row) -> Session:
    return Session(
        team_id=row["team_id"],
        standup_date=date.fromisoformat(row["date"]),
        triggered_at=datetime.fromisoformat(row["triggered_at"]),
        escalation_deadline=datetime.fromisoformat(row["escalation_deadline"]),
        escalated_at=_parse_ts(row["escalated_at"]),
    )


__all__ = ["Database"]
