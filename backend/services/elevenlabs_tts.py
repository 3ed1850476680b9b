"""ElevenLabs streaming text-to-speech for the /api/tts proxy."""

from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator

import httpx

from models import Personality

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech"
MODEL_ID = "eleven_flash_v2_5"
OUTPUT_FORMAT = "mp3_44100_128"
VOICE_SETTINGS = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.5,
    "speed": 1.1,
}


class SpeechUpstreamError(RuntimeError):
    pass


def get_api_key() -> str:
    return os.environ.get("ELEVENLABS_API_KEY", "").strip()


def resolve_voice_id(personality: Personality) -> str | None:
    """Per-personality voice (ELEVENLABS_VOICE_ID_<ID>), else ELEVENLABS_VOICE_ID."""
    voice_id = os.environ.get(personality.voice_env, "").strip()
    if not voice_id:
        voice_id = os.environ.get("ELEVENLABS_VOICE_ID", "").strip()
    return voice_id or None


class SpeechStream:
    """An open upstream audio response; must be closed with aclose()."""

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response

    async def chunks(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()


async def open_speech_stream(
    text: str,
    *,
    voice_id: str,
    api_key: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SpeechStream:
    """Start an ElevenLabs streaming synthesis; raises SpeechUpstreamError on non-2xx."""
    client = httpx.AsyncClient(timeout=httpx.Timeout(30.0, connect=10.0), transport=transport)
    request = client.build_request(
        "POST",
        f"{ELEVENLABS_API_URL}/{voice_id}/stream",
        params={"output_format": OUTPUT_FORMAT, "optimize_streaming_latency": 3},
        headers={"xi-api-key": api_key, "Content-Type": "application/json"},
        json={"text": text, "model_id": MODEL_ID, "voice_settings": VOICE_SETTINGS},
    )
    try:
        response = await client.send(request, stream=True)
    except httpx.HTTPError as exc:
        await client.aclose()
        raise SpeechUpstreamError(f"ElevenLabs request failed: {exc}") from exc

    if not response.is_success:
        body = await response.aread()
        await response.aclose()
        await client.aclose()
        raise SpeechUpstreamError(
            f"ElevenLabs error {response.status_code}: {body[:200].decode(errors='replace')}"
        )
    return SpeechStream(client, response)
