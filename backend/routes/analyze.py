"""Vision proxy: POST /api/analyze turns one webcam frame into a commentary update."""

import base64
import binascii
import logging
import os

from fastapi import APIRouter, HTTPException

from app.models import AnalyzeRequest, CommentaryResponse
from models import get_personality
from services.gemini_vision import VisionUpstreamError, get_commentator
from services.normalizer import normalize_reply

router = APIRouter(tags=["analyze"])
logger = logging.getLogger(__name__)


def _get_gemini_api_key() -> str:
    api_key = os.environ.get("GEMINI_API_KEY", "").strip()
    if not api_key:
        raise HTTPException(status_code=503, detail="GEMINI_API_KEY not set")
    return api_key


@router.post("/analyze", response_model=CommentaryResponse)
async def analyze_frame(body: AnalyzeRequest) -> CommentaryResponse:
    """Describe a frame in the selected commentator's voice; output is always normalized."""
    api_key = _get_gemini_api_key()
    try:
        image = base64.b64decode(body.image, validate=True)
    except (binascii.Error, ValueError):
        raise HTTPException(status_code=400, detail="image must be base64-encoded JPEG data")
    if not image:
        raise HTTPException(status_code=400, detail="image is empty")

    personality = get_personality(body.personality)
    people = [p.strip() for p in body.people if p.strip()]
    logger.info(
        "[analyze] Frame %dKB personality=%s people=%s",
        round(len(image) / 1024),
        personality.id,
        people,
    )
    try:
        raw = await get_commentator(api_key).describe(
            image,
            personality=personality,
            previous_commentary=body.previous_commentary,
            people=people,
        )
    except VisionUpstreamError as exc:
        logger.error("[analyze] Gemini API error: %s", exc)
        raise HTTPException(status_code=502, detail="Gemini API error")

    return CommentaryResponse.from_update(normalize_reply(raw))
