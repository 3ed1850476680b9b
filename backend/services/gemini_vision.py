"""Gemini image understanding for the /api/analyze proxy."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from typing import Any

from models import Personality

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
TEMPERATURE = 0.9
MAX_OUTPUT_TOKENS = 2000

RESPONSE_FORMAT = """
Respond with a JSON object with these fields:
- commentary: your 1-2 sentence play-by-play (plain English)
- engagement: 0-100 based on body language
- skepticism: 0-100 based on expressions
- momentum: "rising", "falling", or "steady"
- event: null, or {"type":"positive"|"negative"|"neutral","text":"what happened"} for notable moments
- sound: null, or "cheer"/"gasp"/"organ"/"buzzer" for big moments (rare)
- detectedNames: null, or the names you can read on name tags, left to right
- peopleCount: the number of people visible in the frame
""".strip()


class VisionUpstreamError(RuntimeError):
    """Gemini failed or answered with nothing usable."""


def get_model_name() -> str:
    return os.environ.get("GEMINI_MODEL", "").strip() or DEFAULT_MODEL


def build_system_prompt(personality: Personality) -> str:
    return f"{personality.prompt}\n\n{RESPONSE_FORMAT}"


def build_user_prompt(previous_commentary: str, people: Sequence[str]) -> str:
    parts: list[str] = []
    if people:
        parts.append(
            "The people in frame, from left to right, are: "
            + ", ".join(people)
            + ". Refer to them by name."
        )
    if previous_commentary:
        parts.append(
            f'Your previous commentary was: "{previous_commentary}" - say something DIFFERENT now.'
        )
    parts.append("Describe what you see in this image.")
    return "\n\n".join(parts)


class GeminiCommentator:
    """Thin wrapper around google-genai returning the model's raw JSON text."""

    def __init__(self, api_key: str, *, model: str | None = None, client: Any | None = None) -> None:
        self._api_key = api_key
        self._model = model or get_model_name()
        self._client = client

    @property
    def model(self) -> str:
        return self._model

    def _ensure_client(self) -> Any:
        if self._client is None:
            from google import genai  # noqa: PLC0415

            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def describe(
        self,
        image: bytes,
        *,
        personality: Personality,
        previous_commentary: str = "",
        people: Sequence[str] = (),
    ) -> str:
        from google.genai import types  # noqa: PLC0415

        client = self._ensure_client()
        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=[
                    types.Content(
                        role="user",
                        parts=[
                            types.Part(text=build_user_prompt(previous_commentary, people)),
                            types.Part(
                                inline_data=types.Blob(mime_type="image/jpeg", data=image)
                            ),
                        ],
                    )
                ],
                config=types.GenerateContentConfig(
                    system_instruction=build_system_prompt(personality),
                    temperature=TEMPERATURE,
                    max_output_tokens=MAX_OUTPUT_TOKENS,
                    response_mime_type="application/json",
                ),
            )
        except Exception as exc:  # noqa: BLE001
            raise VisionUpstreamError(f"Gemini request failed: {exc}") from exc

        text = (response.text or "").strip()
        if not text:
            raise VisionUpstreamError("Gemini returned no response text")
        logger.info("[gemini_vision] Raw: %.300s", text)
        return text


_commentators: dict[str, GeminiCommentator] = {}


def get_commentator(api_key: str) -> GeminiCommentator:
    """One cached commentator (and genai client) per API key."""
    commentator = _commentators.get(api_key)
    if commentator is None:
        commentator = GeminiCommentator(api_key)
        _commentators[api_key] = commentator
    return commentator
