from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from viralcut.exceptions import InputValidationError

# Caption tracks round their timestamps to the millisecond
OVERLAP_TOLERANCE = 0.001


class TranscriptSegment(BaseModel):
    """A timestamped run of transcript text."""

    model_config = ConfigDict(frozen=True)

    text: str
    start: float = Field(..., description="Start time in seconds")
    end: float = Field(..., description="End time in seconds")
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @property
    def duration(self) -> float:
        return self.end - self.start


def validate_segments(segments: Sequence[TranscriptSegment]) -> List[TranscriptSegment]:
    """
    Checks that segments are well-formed, ordered by start and non-overlapping.

    Raises:
        InputValidationError: on the first offending segment.
    """
    previous: Optional[TranscriptSegment] = None
    for index, seg in enumerate(segments):
        if seg.end < seg.start:
            raise InputValidationError(
                f"Transcript segment {index} ends before it starts ({seg.start:.3f}s > {seg.end:.3f}s)"
            )
        if previous is not None:
            if seg.start < previous.start:
                raise InputValidationError(
                    f"Transcript segment {index} is out of order ({seg.start:.3f}s < {previous.start:.3f}s)"
                )
            if seg.start < previous.end - OVERLAP_TOLERANCE:
                raise InputValidationError(
                    f"Transcript segment {index} overlaps the previous one "
                    f"({seg.start:.3f}s < {previous.end:.3f}s)"
                )
        previous = seg
    return list(segments)
