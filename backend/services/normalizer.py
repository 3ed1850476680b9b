"""Turn freeform model replies into bounded CommentaryUpdate values."""

from __future__ import annotations

import json
import logging
import math
from typing import Any

from models import (
    DEFAULT_SCORE,
    FALLBACK_COMMENTARY_CHARS,
    CommentaryEvent,
    CommentaryUpdate,
    EventType,
    Momentum,
    SoundCue,
)
from models.commentary import SCORE_MAX, SCORE_MIN

logger = logging.getLogger(__name__)

_NO_SOUND = "none"


def normalize_reply(raw: str) -> CommentaryUpdate:
    """
    Normalize a raw model reply that is supposed to be a JSON object.

    Never raises. Text that does not decode to a JSON object becomes a
    fallback update carrying the first 200 characters of the reply.
    """
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("[normalizer] Reply is not JSON; using fallback: %.80r", raw)
        return fallback_update(raw)
    if not isinstance(parsed, dict):
        logger.warning("[normalizer] Reply is JSON but not an object; using fallback: %.80r", raw)
        return fallback_update(raw)
    return normalize_payload(parsed)


def fallback_update(raw: str) -> CommentaryUpdate:
    return CommentaryUpdate(commentary=str(raw)[:FALLBACK_COMMENTARY_CHARS])


def normalize_payload(payload: Any) -> CommentaryUpdate:
    """Coerce an already-decoded JSON value into a CommentaryUpdate."""
    if not isinstance(payload, dict):
        return CommentaryUpdate()
    obj = _unwrap_nested(payload)
    return CommentaryUpdate(
        commentary=_parse_text(obj.get("commentary")),
        engagement=_parse_score(obj.get("engagement")),
        skepticism=_parse_score(obj.get("skepticism")),
        momentum=_parse_momentum(obj.get("momentum")),
        event=_parse_event(obj.get("event")),
        sound=_parse_sound(obj.get("sound")),
        detected_names=_parse_names(obj.get("detectedNames")),
        people_count=_parse_people_count(obj.get("peopleCount")),
    )


def _unwrap_nested(obj: dict[str, Any]) -> dict[str, Any]:
    # The model sometimes returns its whole JSON answer inside the commentary
    # string of an outer envelope. Unwrap one level only.
    commentary = obj.get("commentary")
    if not isinstance(commentary, str) or not commentary.strip().startswith("{"):
        return obj
    try:
        inner = json.loads(commentary)
    except (ValueError, RecursionError):
        return obj
    if isinstance(inner, dict) and "commentary" in inner:
        logger.info("[normalizer] Unwrapped JSON nested inside commentary.")
        return inner
    return obj


def _parse_text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _parse_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            number = math.inf if value > 0 else -math.inf
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number):
        return None
    return number


def _parse_score(value: Any) -> int:
    number = _parse_number(value)
    if number is None:
        return DEFAULT_SCORE
    # 0 is a legitimate score; only absent/unparseable values take the default.
    clamped = max(float(SCORE_MIN), min(float(SCORE_MAX), number))
    return int(round(clamped))


def _parse_momentum(value: Any) -> Momentum:
    if isinstance(value, str):
        try:
            return Momentum(value.strip().lower())
        except ValueError:
            pass
    return Momentum.STEADY


def _parse_sound(value: Any) -> SoundCue | None:
    if not isinstance(value, str):
        return None
    cue = value.strip().lower()
    if cue == _NO_SOUND:
        return None
    try:
        return SoundCue(cue)
    except ValueError:
        return None


def _parse_event(value: Any) -> CommentaryEvent | None:
    if not isinstance(value, dict):
        return None
    raw_type = value.get("type")
    if not isinstance(raw_type, str) or not raw_type.strip():
        return None
    try:
        event_type = EventType(raw_type.strip().lower())
    except ValueError:
        event_type = EventType.NEUTRAL
    text = value.get("text")
    if not isinstance(text, str):
        text = "" if text is None else str(text)
    return CommentaryEvent(type=event_type, text=text)


def _parse_names(value: Any) -> tuple[str, ...] | None:
    if not isinstance(value, list):
        return None
    return tuple(name for name in value if isinstance(name, str))


def _parse_people_count(value: Any) -> int | None:
    number = _parse_number(value)
    if number is None or math.isinf(number) or number < 0 or not number.is_integer():
        return None
    return int(number)
