from pydantic import BaseModel, ConfigDict, Field

from models import DEFAULT_PERSONALITY_ID, CommentaryUpdate


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    image: str = Field(..., description="Base64-encoded JPEG frame")
    previous_commentary: str = Field("", alias="previousCommentary")
    personality: str = DEFAULT_PERSONALITY_ID
    people: list[str] = Field(default_factory=list)


class CommentaryEventModel(BaseModel):
    type: str
    text: str


class CommentaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    commentary: str
    engagement: int = Field(..., ge=0, le=100)
    skepticism: int = Field(..., ge=0, le=100)
    momentum: str
    event: CommentaryEventModel | None = None
    sound: str | None = None
    detected_names: list[str] | None = Field(None, alias="detectedNames")
    people_count: int | None = Field(None, alias="peopleCount")

    @classmethod
    def from_update(cls, update: CommentaryUpdate) -> "CommentaryResponse":
        return cls.model_validate(update.to_payload())


class SpeechRequest(BaseModel):
    text: str = ""
    personality: str = DEFAULT_PERSONALITY_ID


class PersonalityResponse(BaseModel):
    id: str
    name: str
    description: str
