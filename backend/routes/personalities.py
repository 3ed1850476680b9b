from fastapi import APIRouter

from app.models import PersonalityResponse
from models import PERSONALITIES

router = APIRouter(tags=["personalities"])


@router.get("/personalities", response_model=list[PersonalityResponse])
def list_personalities() -> list[PersonalityResponse]:
    """Commentators available for selection (prompts stay server-side)."""
    return [
        PersonalityResponse(id=p.id, name=p.name, description=p.description)
        for p in PERSONALITIES
    ]
