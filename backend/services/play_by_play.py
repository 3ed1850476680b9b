"""Derive play-by-play log entries, sound cues and text reveal pacing from updates."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from models import MAX_PLAY_EVENTS, CommentaryUpdate, PlayEvent, SoundCue

REVEAL_CHAR_INTERVAL = 0.025   # seconds per revealed character


@dataclass(frozen=True)
class CycleEffects:
    play_event: PlayEvent | None
    sound: SoundCue | None


def format_elapsed(seconds: float) -> str:
    """MM:SS, zero-padded. Minutes keep counting past 99."""
    total = max(0, int(seconds))
    minutes, secs = divmod(total, 60)
    return f"{minutes:02d}:{secs:02d}"


def derive_effects(update: CommentaryUpdate, elapsed_seconds: float) -> CycleEffects:
    play_event = None
    if update.event is not None:
        play_event = PlayEvent(
            time=format_elapsed(elapsed_seconds),
            text=update.event.text,
            type=update.event.type,
        )
    return CycleEffects(play_event=play_event, sound=update.sound)


def push_event(log: Sequence[PlayEvent], event: PlayEvent) -> list[PlayEvent]:
    """Prepend event; keep only the MAX_PLAY_EVENTS most recent."""
    return [event, *log][:MAX_PLAY_EVENTS]


def reveal_schedule(
    text: str, *, char_interval: float = REVEAL_CHAR_INTERVAL
) -> list[tuple[float, str]]:
    """Typewriter pacing: (offset in seconds, visible prefix) for each character."""
    return [(i * char_interval, text[:i]) for i in range(1, len(text) + 1)]
