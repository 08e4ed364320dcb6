import shutil
from functools import partial
from pathlib import Path
from typing import BinaryIO, Optional, Sequence

from loguru import logger

from viralcut.clip_pipeline import ClipPipeline
from viralcut.config_manager import ConfigManager
from viralcut.editing.ffmpeg import MediaTransformer
from viralcut.exceptions import InputValidationError
from viralcut.ingestion.downloader import extract_youtube_id
from viralcut.jobs.models import ClipConfig, ClipJob, IngestionJob, JobStatus
from viralcut.jobs.store import JobStore
from viralcut.pipeline import IngestionPipeline, classify_upload
from viralcut.worker import JobRunner


class JobService:
    """
    Validates requests and turns them into background jobs.

    Invalid input is rejected with InputValidationError before any job exists.
    """

    def __init__(self, store: JobStore, runner: JobRunner, ingestion: IngestionPipeline, clips: ClipPipeline):
        self.store = store
        self.runner = runner
        self.ingestion = ingestion
        self.clips = clips

    def submit_url(self, url: Optional[str]) -> IngestionJob:
        if not url or not url.strip():
            raise InputValidationError("URL is required")
        url = url.strip()
        if not extract_youtube_id(url):
            raise InputValidationError("Invalid YouTube URL")

        job = IngestionJob(current_step="Downloading video")
        logger.info(f"Accepted URL {url} as ingestion job {job.id}")
        return self.runner.submit_ingestion(job, partial(self.ingestion.run_url, job.id, url))

    def submit_upload(self, filename: Optional[str], content: BinaryIO) -> IngestionJob:
        if not filename:
            raise InputValidationError("File is required")

        job = IngestionJob(current_step="Processing file")
        source_kind = classify_upload(filename)
        media_path = Path(self.ingestion.source_path(job.id, Path(filename).suffix.lower()))
        with open(media_path, "wb") as f:
            shutil.copyfileobj(content, f)

        logger.info(f"Accepted upload {filename} ({source_kind.value}) as ingestion job {job.id}")
        return self.runner.submit_ingestion(
            job, partial(self.ingestion.run_upload, job.id, str(media_path), source_kind)
        )

    def submit_render(
        self,
        ingestion_job_id: Optional[str],
        moment_ids: Optional[Sequence[str]],
        clip_config: Optional[ClipConfig] = None,
    ) -> ClipJob:
        if not ingestion_job_id or moment_ids is None:
            raise InputValidationError("job_id and moment_ids are required")

        ingestion_job = self.store.get_ingestion(ingestion_job_id)
        if ingestion_job is None or ingestion_job.status != JobStatus.COMPLETED or ingestion_job.result is None:
            raise InputValidationError("Invalid or incomplete job")

        result = ingestion_job.result
        wanted = set(moment_ids)
        selected = [m for m in result.moments if m.id in wanted]
        if not selected:
            raise InputValidationError("No valid moments selected")

        job = ClipJob(ingestion_job_id=ingestion_job_id, total_clips=len(selected))
        return self.runner.submit_clip_job(
            job,
            partial(
                self.clips.run, job.id, result.media_path, result.segments, selected, clip_config or ClipConfig()
            ),
        )

    def get_ingestion(self, job_id: str) -> Optional[IngestionJob]:
        return self.store.get_ingestion(job_id)

    def get_clip_job(self, job_id: str) -> Optional[ClipJob]:
        return self.store.get_clip_job(job_id)


def build_service(config_manager: ConfigManager) -> JobService:
    """Wires one store, one runner and both pipelines around a shared MediaTransformer."""
    store = JobStore()
    runner = JobRunner(store, max_workers=config_manager.server.worker_threads)
    media = MediaTransformer(config_manager)
    ingestion = IngestionPipeline(config_manager, store, media=media)
    clips = ClipPipeline(config_manager, store, media=media)
    return JobService(store, runner, ingestion, clips)
