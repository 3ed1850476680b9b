from __future__ import annotations

import logging
import os
from collections.abc import Sequence

import httpx

from models import CommentaryUpdate
from services.normalizer import normalize_payload

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"


class AnalyzeError(RuntimeError):
    """The analyze endpoint answered, but not with a usable commentary update."""


def get_api_url() -> str:
    return os.environ.get("COMMENTARY_API_URL", "").strip() or DEFAULT_API_URL


class AnalyzeClient:
    """Sends captured frames to POST /api/analyze on the commentary proxy."""

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def analyze(
        self,
        *,
        image: str,
        previous_commentary: str,
        personality: str,
        people: Sequence[str],
    ) -> CommentaryUpdate:
        logger.debug("[vision_client] Sending frame: %dKB", round(len(image) / 1024))
        response = await self._http.post(
            "/api/analyze",
            json={
                "image": image,
                "previousCommentary": previous_commentary,
                "personality": personality,
                "people": list(people),
            },
        )
        if not response.is_success:
            raise AnalyzeError(
                f"analyze returned {response.status_code}: {response.text[:80]}"
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise AnalyzeError(f"analyze returned unparseable body: {response.text[:80]}") from exc
        # The proxy already normalizes; clamp again so nothing unchecked reaches state.
        return normalize_payload(payload)
