"""Aggregation of a team's standup answers into a daily summary."""

from __future__ import annotations

from datetime import date
from typing import Dict, Iterable, List

from .blockers import is_reportable_blocker
from .db import Database
from .errors import NotFoundError
from .models import (
    Participation,
    ResponseStatus,
    SummaryEntry,
    TeamSummary,
    participation_percentage,
)

RESPONDED_STATUSES = (ResponseStatus.SUBMITTED, ResponseStatus.LATE)


class SummaryBuilder:
    """Builds the read-only summary for one (team, date)."""

    def __init__(self, database: Database) -> None:
        self.database = database

    def build(self, team_id: str, day: date) -> TeamSummary:
        team = self.database.get_team(team_id)
        if team is None:
            raise NotFoundError("Team not found", team_id=team_id)

        records = self.database.find_team_responses(team_id, day, RESPONDED_STATUSES)
        names = self._display_names(record.user_id for record in records)

        total = len(team.config.participants)
        responded = len(records)
        summary = TeamSummary(
            team_id=team.id,
            team=team.name,
            standup_date=day,
            participation=Participation(
                responded=responded,
                total=total,
                percentage=participation_percentage(responded, total),
            ),
            non_respondents=max(total - responded, 0),
        )
        for record in records:
            member = names.get(record.user_id, record.user_id)
            summary.accomplishments.append(SummaryEntry(member=member, text=record.yesterday))
            summary.today_focus.append(SummaryEntry(member=member, text=record.today))
            if is_reportable_blocker(record.blockers):
                summary.blockers.append(SummaryEntry(member=member, text=record.blockers))
        return summary

    def _display_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        return {user.id: user.display_name for user in self.database.get_users(user_ids)}


def _bullets(entries: List[SummaryEntry], empty: str) -> str:
    if not entries:
        return f"• {empty}"
    return "\n".join(f"• {entry.member}: {entry.text}" for entry in entries)


def format_summary(summary: TeamSummary) -> str:
    """Render the summary as the message posted to the team channel."""

    day = summary.standup_date
    participation = summary.participation
    lines = [
        f"*Daily Standup Summary* - {day:%A, %B} {day.day}, {day.year}",
        f"Team: {summary.team}",
        "",
        f"Participation: {participation.responded}/{participation.total} "
        f"({participation.percentage}%)",
        "",
        "*YESTERDAY'S ACCOMPLISHMENTS:*",
        _bullets(summary.accomplishments, "No updates"),
        "",
        "*TODAY'S FOCUS:*",
        _bullets(summary.today_focus, "No updates"),
        "",
        "*BLOCKERS & HELP NEEDED:*",
        _bullets(summary.blockers, "No blockers reported"),
    ]
    if summary.non_respondents > 0:
        lines.extend(["", f"Non-respondents: {summary.non_respondents} members"])
    return "\n".join(lines)


__all__ = ["SummaryBuilder", "format_summary"]
