import threading

import pytest

from viralcut.exceptions import StageError
from viralcut.intelligence.models import ViralMoment
from viralcut.jobs.models import ClipJob, IngestionJob, IngestionResult, JobStatus, ProcessedClip, SourceKind
from viralcut.jobs.store import JobStore
from viralcut.worker import JobRunner


@pytest.fixture
def store():
    return JobStore()


@pytest.fixture
def runner(store):
    runner = JobRunner(store, max_workers=2)
    yield runner
    runner.shutdown(wait=True)


def _result():
    return IngestionResult(media_path="source.mp4", segments=[], moments=[], source_kind=SourceKind.UPLOAD)


def test_submit_returns_before_work_finishes(store, runner):
    release = threading.Event()

    def work():
        release.wait(timeout=5)
        return _result()

    job = runner.submit_ingestion(IngestionJob(current_step="Processing upload"), work)

    snapshot = store.get_ingestion(job.id)
    assert snapshot.status == JobStatus.PROCESSING
    assert snapshot.current_step == "Processing upload"
    assert snapshot.result is None

    release.set()
    runner.shutdown(wait=True)
    assert store.get_ingestion(job.id).status == JobStatus.COMPLETED


def test_ingestion_success_is_complete(store, runner):
    job = runner.submit_ingestion(IngestionJob(), _result)
    runner.shutdown(wait=True)

    done = store.get_ingestion(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.progress == 100
    assert done.current_step == "Complete"
    assert done.result.media_path == "source.mp4"
    assert done.error is None


def test_ingestion_failure_carries_error(store, runner):
    def work():
        store.update_ingestion(job.id, progress=40, current_step="Transcribing audio")
        raise StageError("transcribe", "model exploded")

    job = IngestionJob()
    runner.submit_ingestion(job, work)
    runner.shutdown(wait=True)

    failed = store.get_ingestion(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.error == "transcribe failed: model exploded"
    assert failed.result is None
    assert failed.progress == 40


def test_terminal_write_happens_once(store, runner):
    job = runner.submit_ingestion(IngestionJob(), _result)
    runner.shutdown(wait=True)
    completed = store.get_ingestion(job.id)

    # A late second completion must not overwrite the terminal snapshot
    class FailedFuture:
        def exception(self):
            return RuntimeError("late")

    runner._finish_ingestion(job.id, FailedFuture())

    assert store.get_ingestion(job.id) == completed


def test_clip_job_completion_counts_clips(store, runner):
    moment = ViralMoment(start=0, end=10, score=0.7, reason="r", text="t")
    clips = [
        ProcessedClip(moment=moment, ready=True, video_path="a.mp4"),
        ProcessedClip(moment=moment, ready=False, error="crop failed"),
    ]
    job = runner.submit_clip_job(ClipJob(ingestion_job_id="ing", total_clips=2), lambda: clips)
    runner.shutdown(wait=True)

    done = store.get_clip_job(job.id)
    assert done.status == JobStatus.COMPLETED
    assert done.progress == 100
    assert done.processed_clips == done.total_clips == 2
    assert [c.ready for c in done.result] == [True, False]


def test_clip_job_failure(store, runner):
    def work():
        raise RuntimeError("disk full")

    job = runner.submit_clip_job(ClipJob(total_clips=1), work)
    runner.shutdown(wait=True)

    failed = store.get_clip_job(job.id)
    assert failed.status == JobStatus.FAILED
    assert failed.error == "disk full"
    assert failed.result is None
