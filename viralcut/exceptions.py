from typing import Optional


class ViralCutError(Exception):
    """Base class for every error raised by viralcut."""


class InputValidationError(ViralCutError):
    """Rejected input: bad source reference, missing field, empty selection, bad transcript."""


class TranscriptionError(ViralCutError):
    pass


class DownloadError(ViralCutError):
    pass


class MediaTransformError(ViralCutError):
    pass


class StageError(ViralCutError):
    """
    A collaborator failure wrapped with the pipeline stage it happened in.

    The string form is what ends up in a job's ``error`` field, so it names the
    stage (and the moment, for clip rendering) alongside the original message.
    """

    def __init__(self, stage: str, message: str, moment_id: Optional[str] = None):
        self.stage = stage
        self.message = message
        self.moment_id = moment_id
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.moment_id:
            return f"{self.stage} failed for moment {self.moment_id}: {self.message}"
        return f"{self.stage} failed: {self.message}"
