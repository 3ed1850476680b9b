from dataclasses import dataclass
from enum import Enum
from typing import Any


class Momentum(str, Enum):
    RISING = "rising"
    FALLING = "falling"
    STEADY = "steady"


class EventType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


class SoundCue(str, Enum):
    CHEER = "cheer"
    GASP = "gasp"
    ORGAN = "organ"
    BUZZER = "buzzer"


DEFAULT_SCORE = 50
SCORE_MIN = 0
SCORE_MAX = 100
FALLBACK_COMMENTARY_CHARS = 200   # raw text kept when the reply is not JSON
MAX_PLAY_EVENTS = 6               # play-by-play log length


@dataclass(frozen=True)
class CommentaryEvent:
    type: EventType
    text: str


@dataclass(frozen=True)
class CommentaryUpdate:
    commentary: str = ""
    engagement: int = DEFAULT_SCORE          # 0-100
    skepticism: int = DEFAULT_SCORE          # 0-100
    momentum: Momentum = Momentum.STEADY
    event: CommentaryEvent | None = None
    sound: SoundCue | None = None
    detected_names: tuple[str, ...] | None = None   # left to right
    people_count: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """Wire shape shared by /api/analyze and the broadcast client."""
        return {
            "commentary": self.commentary,
            "engagement": self.engagement,
            "skepticism": self.skepticism,
            "momentum": self.momentum.value,
            "event": (
                {"type": self.event.type.value, "text": self.event.text}
                if self.event is not None
                else None
            ),
            "sound": self.sound.value if self.sound is not None else None,
            "detectedNames": list(self.detected_names) if self.detected_names is not None else None,
            "peopleCount": self.people_count,
        }


@dataclass(frozen=True)
class PlayEvent:
    time: str                  # MM:SS since the broadcast went live
    text: str
    type: EventType
