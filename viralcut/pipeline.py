from pathlib import Path
from typing import Any, Callable, List, Optional

from loguru import logger

from viralcut.config_manager import ConfigManager
from viralcut.editing.ffmpeg import MediaTransformer
from viralcut.exceptions import InputValidationError, StageError
from viralcut.ingestion.downloader import VideoDownloader, extract_youtube_id
from viralcut.intelligence.detector import MomentDetector
from viralcut.jobs.models import IngestionResult, SourceKind
from viralcut.jobs.store import JobStore
from viralcut.transcription.captions import CaptionFetcher
from viralcut.transcription.engine import AudioTranscriber
from viralcut.transcription.models import TranscriptSegment

FETCH_FAST_TRANSCRIPT = "fetch-fast-transcript"
DOWNLOAD_SOURCE = "download-source"
EXTRACT_AUDIO = "extract-audio"
TRANSCRIBE = "transcribe"
DETECT_MOMENTS = "detect-moments"
MEASURE_DURATION = "measure-duration"

AUDIO_EXTENSIONS = {".mp3", ".wav", ".m4a", ".aac"}


def classify_upload(filename: str) -> SourceKind:
    return SourceKind.AUDIO if Path(filename).suffix.lower() in AUDIO_EXTENSIONS else SourceKind.UPLOAD


def run_stage(stage: str, fn: Callable[..., Any], *args: Any, moment_id: Optional[str] = None) -> Any:
    """Calls a collaborator, re-raising any failure as a StageError naming ``stage``."""
    try:
        return fn(*args)
    except StageError:
        raise
    except Exception as e:
        raise StageError(stage, str(e), moment_id=moment_id) from e


class IngestionPipeline:
    """
    Turns a source (remote URL or uploaded file) into a transcript and ranked moments.

    Progress snapshots are written to the job store before each stage starts. The
    run methods return the result or raise; the terminal job state is written by
    the JobRunner, not here.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        store: JobStore,
        downloader: Optional[VideoDownloader] = None,
        captions: Optional[CaptionFetcher] = None,
        transcriber: Optional[AudioTranscriber] = None,
        detector: Optional[MomentDetector] = None,
        media: Optional[MediaTransformer] = None,
    ):
        self.paths = config_manager.paths
        self.store = store
        self.downloader = downloader or VideoDownloader(config_manager)
        self.captions = captions or CaptionFetcher(config_manager)
        self.transcriber = transcriber or AudioTranscriber(config_manager)
        self.detector = detector or MomentDetector(config_manager)
        self.media = media or MediaTransformer(config_manager)

        self.uploads_dir = Path(self.paths.uploads_dir)
        self.temp_dir = Path(self.paths.temp_dir)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

    def _advance(self, job_id: str, step: str, progress: int) -> None:
        self.store.update_ingestion(job_id, current_step=step, progress=progress)
        logger.info(f"{step} ({progress}%)")

    def source_path(self, job_id: str, extension: str = ".mp4") -> str:
        return str(self.uploads_dir / f"{job_id}{extension}")

    def run_url(self, job_id: str, url: str) -> IngestionResult:
        video_id = extract_youtube_id(url)
        if not video_id:
            raise InputValidationError(f"Invalid YouTube URL: {url}")

        media_path = self.source_path(job_id)

        self._advance(job_id, FETCH_FAST_TRANSCRIPT, 10)
        segments: Optional[List[TranscriptSegment]]
        try:
            segments = self.captions.fetch(video_id)
        except Exception as e:
            logger.info(f"No usable captions, falling back to transcription: {e}")
            segments = None

        if segments is None:
            self._advance(job_id, DOWNLOAD_SOURCE, 20)
            run_stage(DOWNLOAD_SOURCE, self.downloader.download, url, media_path)
            segments = self._transcribe(job_id, media_path, SourceKind.YOUTUBE, extract_progress=30)
        else:
            # The source is still needed later for rendering
            self._advance(job_id, DOWNLOAD_SOURCE, 30)
            run_stage(DOWNLOAD_SOURCE, self.downloader.download, url, media_path)

        self._advance(job_id, DETECT_MOMENTS, 60)
        moments = run_stage(DETECT_MOMENTS, self.detector.detect, segments)

        self._advance(job_id, MEASURE_DURATION, 80)
        duration = run_stage(MEASURE_DURATION, self.media.probe_duration, media_path)

        return IngestionResult(
            media_path=media_path,
            segments=segments,
            moments=moments,
            duration=duration,
            source_kind=SourceKind.YOUTUBE,
        )

    def run_upload(self, job_id: str, media_path: str, source_kind: SourceKind) -> IngestionResult:
        segments = self._transcribe(job_id, media_path, source_kind, extract_progress=20)

        self._advance(job_id, DETECT_MOMENTS, 70)
        moments = run_stage(DETECT_MOMENTS, self.detector.detect, segments)

        duration = 0.0
        if source_kind != SourceKind.AUDIO:
            self._advance(job_id, MEASURE_DURATION, 85)
            duration = run_stage(MEASURE_DURATION, self.media.probe_duration, media_path)

        return IngestionResult(
            media_path=media_path,
            segments=segments,
            moments=moments,
            duration=duration,
            source_kind=source_kind,
        )

    def _transcribe(
        self, job_id: str, media_path: str, source_kind: SourceKind, extract_progress: int
    ) -> List[TranscriptSegment]:
        audio_path = self.temp_dir / f"{job_id}.wav"

        self._advance(job_id, EXTRACT_AUDIO, extract_progress)
        try:
            if source_kind == SourceKind.AUDIO:
                run_stage(EXTRACT_AUDIO, self.media.resample_audio, media_path, str(audio_path))
            else:
                run_stage(EXTRACT_AUDIO, self.media.extract_audio, media_path, str(audio_path))

            self._advance(job_id, TRANSCRIBE, 40)
            return run_stage(TRANSCRIBE, self.transcriber.transcribe, str(audio_path))
        finally:
            audio_path.unlink(missing_ok=True)
