"""Roster tracking from detected name tags, plus the user's manual roster edits."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from models import CommentaryUpdate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterUpdate:
    names: list[str]
    changed: bool


def track_names(roster: Sequence[str], update: CommentaryUpdate) -> RosterUpdate:
    """
    Merge a normalized update's detectedNames / peopleCount into the roster.

    The model re-detects names on every frame with no identity continuity, so:
      - a non-empty detection replaces the roster, capped to peopleCount from
        the right, but only when it differs from what we already have
      - no names but a known peopleCount trims the tail of a longer roster
      - no signal leaves the roster alone
    Names are never invented or reordered.
    """
    current = list(roster)
    detected = update.detected_names
    count = update.people_count

    if detected:
        names = [n for n in detected if isinstance(n, str) and n.strip()]
        if count is not None and count > 0 and len(names) > count:
            names = names[:count]
        if not names:
            return RosterUpdate(current, changed=False)
        if ",".join(names) == ",".join(current):
            return RosterUpdate(current, changed=False)
        logger.info(
            "[name_tracker] Detected %s people, names: %s",
            count if count is not None else "?",
            ", ".join(names),
        )
        return RosterUpdate(names, changed=True)

    if count is not None and count >= 0 and len(current) > count:
        logger.info("[name_tracker] Trimmed roster to %d visible people", count)
        return RosterUpdate(current[:count], changed=True)

    return RosterUpdate(current, changed=False)


def add_placeholder(roster: Sequence[str]) -> list[str]:
    return [*roster, f"Person {len(roster) + 1}"]


def rename_at(roster: Sequence[str], index: int, name: str) -> list[str]:
    if not 0 <= index < len(roster):
        raise IndexError(f"no participant at position {index}")
    names = list(roster)
    names[index] = name
    return names


def remove_at(roster: Sequence[str], index: int) -> list[str]:
    if not 0 <= index < len(roster):
        raise IndexError(f"no participant at position {index}")
    return [n for i, n in enumerate(roster) if i != index]


def request_roster(roster: Sequence[str]) -> list[str]:
    """Roster as sent to the vision endpoint: blank entries dropped."""
    return [n for n in roster if n.strip() != ""]
