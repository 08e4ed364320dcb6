from pydantic import BaseModel


class SubtitleCue(BaseModel):
    """One subtitle entry, timed relative to the start of its clip."""

    index: int
    start: float
    end: float
    text: str
