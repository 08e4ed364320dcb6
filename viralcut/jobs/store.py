import threading
from typing import Any, Dict, Optional

from viralcut.jobs.models import ClipJob, IngestionJob


class JobStore:
    """
    In-memory registry of ingestion and clip-rendering jobs.

    Writes replace a whole entry; reads hand out deep copies, so a poller always
    sees one complete snapshot and never an entry that is being mutated. Entries
    are only reachable by id. Nothing is evicted for the life of the process.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ingestion: Dict[str, IngestionJob] = {}
        self._clips: Dict[str, ClipJob] = {}

    def get_ingestion(self, job_id: str) -> Optional[IngestionJob]:
        with self._lock:
            job = self._ingestion.get(job_id)
            return job.model_copy(deep=True) if job else None

    def set_ingestion(self, job: IngestionJob) -> None:
        with self._lock:
            self._ingestion[job.id] = job.model_copy(deep=True)

    def update_ingestion(self, job_id: str, **fields: Any) -> IngestionJob:
        """Writes the current snapshot with ``fields`` replaced and returns it."""
        with self._lock:
            current = self._ingestion.get(job_id)
            if current is None:
                raise KeyError(f"Unknown ingestion job: {job_id}")
            updated = current.model_copy(update=fields).model_copy(deep=True)
            self._ingestion[job_id] = updated
            return updated.model_copy(deep=True)

    def get_clip_job(self, job_id: str) -> Optional[ClipJob]:
        with self._lock:
            job = self._clips.get(job_id)
            return job.model_copy(deep=True) if job else None

    def set_clip_job(self, job: ClipJob) -> None:
        with self._lock:
            self._clips[job.id] = job.model_copy(deep=True)

    def update_clip_job(self, job_id: str, **fields: Any) -> ClipJob:
        with self._lock:
            current = self._clips.get(job_id)
            if current is None:
                raise KeyError(f"Unknown clip job: {job_id}")
            updated = current.model_copy(update=fields).model_copy(deep=True)
            self._clips[job_id] = updated
            return updated.model_copy(deep=True)
