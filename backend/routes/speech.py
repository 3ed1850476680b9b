"""Speech proxy: POST /api/tts streams ElevenLabs audio for a commentary line."""

import logging

from fastapi import APIRouter, Response
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from app.models import SpeechRequest
from models import get_personality
from services.elevenlabs_tts import (
    SpeechUpstreamError,
    get_api_key,
    open_speech_stream,
    resolve_voice_id,
)

router = APIRouter(tags=["speech"])
logger = logging.getLogger(__name__)


def _no_content(reason: str) -> Response:
    return Response(status_code=204, headers={"X-Speech-Status": reason})


@router.post("/tts", response_model=None)
async def synthesize_speech(body: SpeechRequest) -> Response:
    """Audio stream on success; 204 (with X-Speech-Status) whenever there is nothing to play."""
    api_key = get_api_key()
    if not api_key:
        return _no_content("unconfigured")
    if not body.text.strip():
        return _no_content("empty")

    voice_id = resolve_voice_id(get_personality(body.personality))
    if voice_id is None:
        return _no_content("no-voice")

    try:
        stream = await open_speech_stream(body.text, voice_id=voice_id, api_key=api_key)
    except SpeechUpstreamError as exc:
        logger.error("[tts] %s", exc)
        return _no_content("upstream-error")

    return StreamingResponse(
        stream.chunks(),
        media_type="audio/mpeg",
        headers={"Cache-Control": "no-cache"},
        background=BackgroundTask(stream.aclose),
    )
