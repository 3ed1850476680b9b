from .commentary import (
    DEFAULT_SCORE,
    FALLBACK_COMMENTARY_CHARS,
    MAX_PLAY_EVENTS,
    CommentaryEvent,
    CommentaryUpdate,
    EventType,
    Momentum,
    PlayEvent,
    SoundCue,
)
from .personality import DEFAULT_PERSONALITY_ID, PERSONALITIES, Personality, get_personality
from .session import BroadcastPhase, BroadcastState

__all__ = [
    "BroadcastPhase",
    "BroadcastState",
    "CommentaryEvent",
    "CommentaryUpdate",
    "DEFAULT_PERSONALITY_ID",
    "DEFAULT_SCORE",
    "EventType",
    "FALLBACK_COMMENTARY_CHARS",
    "MAX_PLAY_EVENTS",
    "Momentum",
    "PERSONALITIES",
    "Personality",
    "PlayEvent",
    "SoundCue",
    "get_personality",
]
