"""MCP server exposing Standup Pulse tools."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .db import Database
from .errors import StandupError
from .service import StandupService

mcp = FastMCP("standup-pulse")

_settings = load_settings()
_database = Database(_settings.database_path)
_service = StandupService(_settings, _database)


def _ensure_date(day_str: Optional[str] = None) -> Optional[date]:
    if not day_str:
        return None
    try:
        return datetime.strptime(day_str, "%Y-%m-%d").date()
    except ValueError as exc:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc


@mcp.tool()
async def start_standup(team_id: str) -> dict:
    """Start today's standup for a team right away."""

    try:
        return await _service.start_now(team_id)
    except StandupError as exc:
        raise ValueError(str(exc)) from exc


@mcp.tool()
async def record_answer(
    user_id: str, question_index: int, text: str, team_id: Optional[str] = None
) -> dict:
    """Record one answer (1 = yesterday, 2 = today, 3 = blockers) for a participant."""

    try:
        return _service.record_answer(user_id, question_index, text, team_id).to_dict()
    except StandupError as exc:
        raise ValueError(str(exc)) from exc


@mcp.tool()
async def get_standup_status(team_id: str, date: Optional[str] = None) -> dict:
    """Return pending/submitted/late/missed counts for a team's standup."""

    day = _ensure_date(date) or _service.clock.today()
    try:
        counts = _service.get_status(team_id, day)
    except StandupError as exc:
        raise ValueError(str(exc)) from exc
    return {"date": day.isoformat(), **counts.to_dict()}


@mcp.tool()
async def get_standup_summary(team_id: str, date: Optional[str] = None) -> dict:
    """Return the aggregated standup summary for a team and date."""

    try:
        return _service.get_summary(team_id, _ensure_date(date)).to_dict()
    except StandupError as exc:
        raise ValueError(str(exc)) from exc


@mcp.tool()
async def get_standup_history(team_id: str, limit: int = 7) -> dict:
    """Return per-day participation for a team's most recent standups."""

    try:
        history = _service.get_history(team_id, limit)
    except StandupError as exc:
        raise ValueError(str(exc)) from exc
    return {"team_id": team_id, "history": [entry.to_dict() for entry in history]}


__all__ = [
    "mcp",
    "start_standup",
    "record_answer",
    "get_standup_status",
    "get_standup_summary",
    "get_standup_history",
]
