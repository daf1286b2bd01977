"""Heuristic that decides whether a blockers answer reports a real blocker."""

from __future__ import annotations

NO_BLOCKER_PHRASES = ("no blocker", "none", "clear")
MIN_BLOCKER_LENGTH = 3


def is_reportable_blocker(text: str) -> bool:
    """Return True when ``text`` should appear in the summary's blockers list.

    Substring matching only: "No blockers today" and "all clear" are dropped,
    and so is anything three characters or shorter. Phrases such as
    "unclear requirements" are dropped as well.
    """

    normalized = text.strip().lower()
    if len(normalized) <= MIN_BLOCKER_LENGTH:
        return False
    return not any(phrase in normalized for phrase in NO_BLOCKER_PHRASES)


__all__ = ["NO_BLOCKER_PHRASES", "is_reportable_blocker"]
