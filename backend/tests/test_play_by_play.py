from __future__ import annotations

import pytest

from models import MAX_PLAY_EVENTS, CommentaryEvent, CommentaryUpdate, EventType, PlayEvent, SoundCue
from services.play_by_play import derive_effects, format_elapsed, push_event, reveal_schedule


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, "00:00"), (9.9, "00:09"), (65, "01:05"), (3599, "59:59"), (6000, "100:00"), (-3, "00:00")],
)
def test_format_elapsed(seconds: float, expected: str) -> None:
    assert format_elapsed(seconds) == expected


def test_event_becomes_play_event_with_elapsed_time() -> None:
    update = CommentaryUpdate(
        event=CommentaryEvent(EventType.NEGATIVE, "Phone glance, turnover!"),
        sound=SoundCue.BUZZER,
    )
    effects = derive_effects(update, 75.4)
    assert effects.play_event == PlayEvent(time="01:15", text="Phone glance, turnover!", type=EventType.NEGATIVE)
    assert effects.sound is SoundCue.BUZZER


def test_no_event_no_entry_and_sound_passes_through() -> None:
    effects = derive_effects(CommentaryUpdate(sound=None), 10)
    assert effects.play_event is None
    assert effects.sound is None


def test_log_keeps_six_most_recent_newest_first() -> None:
    log: list[PlayEvent] = []
    for i in range(9):
        log = push_event(log, PlayEvent(time=f"00:0{i}", text=f"event {i}", type=EventType.NEUTRAL))
    assert len(log) == MAX_PLAY_EVENTS == 6
    assert [e.text for e in log] == [f"event {i}" for i in range(8, 2, -1)]


def test_reveal_schedule_paces_each_character() -> None:
    steps = reveal_schedule("Wow!")
    assert [prefix for _, prefix in steps] == ["W", "Wo", "Wow", "Wow!"]
    assert [offset for offset, _ in steps] == pytest.approx([0.0, 0.025, 0.05, 0.075])
    assert reveal_schedule("") == []
