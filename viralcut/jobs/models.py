import uuid
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from viralcut.config_manager import ClipFormat
from viralcut.intelligence.models import ViralMoment
from viralcut.transcription.models import TranscriptSegment


def new_job_id() -> str:
    return str(uuid.uuid4())


class JobStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class SourceKind(str, Enum):
    YOUTUBE = "youtube"
    UPLOAD = "upload"
    AUDIO = "audio"


class IngestionResult(BaseModel):
    media_path: str
    segments: List[TranscriptSegment]
    moments: List[ViralMoment]
    duration: float = 0.0
    source_kind: SourceKind


class IngestionJob(BaseModel):
    id: str = Field(default_factory=new_job_id)
    status: JobStatus = JobStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = "queued"
    result: Optional[IngestionResult] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.PROCESSING


class ClipConfig(BaseModel):
    """Per-request rendering options. Every effect is on unless switched off."""

    format: Optional[ClipFormat] = None
    add_captions: bool = True
    add_emojis: bool = True
    add_zoom_pan: bool = True


class ProcessedClip(BaseModel):
    id: str = Field(default_factory=new_job_id)
    video_path: Optional[str] = None
    thumbnail_path: Optional[str] = None
    duration: float = 0.0
    moment: ViralMoment
    ready: bool = False
    error: Optional[str] = None


class ClipJob(BaseModel):
    id: str = Field(default_factory=new_job_id)
    ingestion_job_id: Optional[str] = None
    status: JobStatus = JobStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    current_step: str = "Preparing clips"
    total_clips: int = 0
    processed_clips: int = 0
    result: Optional[List[ProcessedClip]] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != JobStatus.PROCESSING
