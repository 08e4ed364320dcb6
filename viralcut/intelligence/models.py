import uuid
from typing import List

from pydantic import BaseModel, Field, model_validator


class ViralMoment(BaseModel):
    """A scored transcript window considered for a clip."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    start: float = Field(..., description="Start time in seconds")
    end: float = Field(..., description="End time in seconds")
    score: float = Field(..., ge=0.0, le=1.0)
    reason: str
    text: str
    emotions: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ViralMoment":
        if self.start >= self.end:
            raise ValueError(f"moment must start before it ends ({self.start} >= {self.end})")
        return self

    @property
    def duration(self) -> float:
        return self.end - self.start


class ClipRanking(BaseModel):
    """The ranking service's verdict on one submitted candidate."""

    clip_number: int = Field(..., ge=1, description="1-based position of the clip in the submitted list")
    viral_score: float = Field(..., ge=1, le=10, description="Viral potential from 1 to 10")
    reason: str = Field(default="", description="Brief explanation of the score")


class RankingResponse(BaseModel):
    clips: List[ClipRanking] = Field(default_factory=list)
