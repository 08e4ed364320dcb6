from concurrent.futures import Future, ThreadPoolExecutor
from functools import partial
from typing import Callable, List, TypeVar

from loguru import logger

from viralcut.jobs.models import ClipJob, IngestionJob, IngestionResult, JobStatus, ProcessedClip
from viralcut.jobs.store import JobStore
from viralcut.utils.logger import job_context

COMPLETE_STEP = "Complete"

T = TypeVar("T")


class JobRunner:
    """
    Runs pipeline work in background threads.

    Submitting stores the job's initial ``processing`` snapshot and returns at
    once. The work function only reports progress; the terminal snapshot
    (``completed`` or ``failed``) is written by a completion callback, exactly
    once per job.
    """

    def __init__(self, store: JobStore, max_workers: int = 4):
        self.store = store
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="viralcut-job")

    def submit_ingestion(self, job: IngestionJob, work: Callable[[], IngestionResult]) -> IngestionJob:
        self.store.set_ingestion(job)
        logger.info(f"Ingestion job {job.id} queued")
        future = self._executor.submit(self._run, job.id, work)
        future.add_done_callback(partial(self._finish_ingestion, job.id))
        return job

    def submit_clip_job(self, job: ClipJob, work: Callable[[], List[ProcessedClip]]) -> ClipJob:
        self.store.set_clip_job(job)
        logger.info(f"Clip job {job.id} queued with {job.total_clips} clips")
        future = self._executor.submit(self._run, job.id, work)
        future.add_done_callback(partial(self._finish_clip_job, job.id))
        return job

    @staticmethod
    def _run(job_id: str, work: Callable[[], T]) -> T:
        with job_context(job_id):
            return work()

    def _finish_ingestion(self, job_id: str, future: Future) -> None:
        current = self.store.get_ingestion(job_id)
        if current is None or current.is_terminal:
            logger.error(f"Ingestion job {job_id} already finished, dropping second terminal write")
            return

        exc = future.exception()
        if exc is not None:
            logger.error(f"Ingestion job {job_id} failed: {exc}")
            self.store.set_ingestion(
                current.model_copy(update={"status": JobStatus.FAILED, "error": str(exc), "result": None})
            )
            return

        self.store.set_ingestion(
            current.model_copy(
                update={
                    "status": JobStatus.COMPLETED,
                    "progress": 100,
                    "current_step": COMPLETE_STEP,
                    "result": future.result(),
                }
            )
        )
        logger.success(f"Ingestion job {job_id} completed")

    def _finish_clip_job(self, job_id: str, future: Future) -> None:
        current = self.store.get_clip_job(job_id)
        if current is None or current.is_terminal:
            logger.error(f"Clip job {job_id} already finished, dropping second terminal write")
            return

        exc = future.exception()
        if exc is not None:
            logger.error(f"Clip job {job_id} failed: {exc}")
            self.store.set_clip_job(current.model_copy(update={"status": JobStatus.FAILED, "error": str(exc)}))
            return

        clips = future.result()
        ready = sum(1 for c in clips if c.ready)
        self.store.set_clip_job(
            current.model_copy(
                update={
                    "status": JobStatus.COMPLETED,
                    "progress": 100,
                    "current_step": COMPLETE_STEP,
                    "processed_clips": len(clips),
                    "total_clips": len(clips),
                    "result": clips,
                }
            )
        )
        logger.success(f"Clip job {job_id} completed: {ready}/{len(clips)} clips ready")

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
