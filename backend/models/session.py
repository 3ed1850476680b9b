from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from .commentary import DEFAULT_SCORE, Momentum, PlayEvent
from .personality import DEFAULT_PERSONALITY_ID


class BroadcastPhase(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    COUNTDOWN = "countdown"
    LIVE = "live"
    ERROR = "error"


@dataclass
class BroadcastState:
    phase: BroadcastPhase = BroadcastPhase.IDLE
    personality_id: str = DEFAULT_PERSONALITY_ID
    roster: list[str] = field(default_factory=list)        # left to right
    commentary: str = ""
    engagement: int = DEFAULT_SCORE
    skepticism: int = DEFAULT_SCORE
    momentum: Momentum = Momentum.STEADY
    events: list[PlayEvent] = field(default_factory=list)   # most recent first
    started_at: float | None = None                         # monotonic seconds
    countdown: int | None = None
    error_message: str = ""
    previous_commentary: str = ""
    cycle_count: int = 0

    def snapshot(self) -> dict[str, Any]:
        """Plain, copy-safe view of the state for presentation subscribers."""
        data = asdict(self)
        data["phase"] = self.phase.value
        data["momentum"] = self.momentum.value
        data["events"] = [
            {"time": e.time, "text": e.text, "type": e.type.value} for e in self.events
        ]
        return data
