import math
import threading
import time
from pathlib import Path
from typing import Any, List, Optional

import torch
from faster_whisper import WhisperModel
from loguru import logger

from viralcut.config_manager import ConfigManager, TranscriptionConfig
from viralcut.exceptions import TranscriptionError
from viralcut.transcription.models import TranscriptSegment


class AudioTranscriber:
    """Authoritative transcript route: runs Whisper locally over an extracted audio file."""

    def __init__(self, config_manager: ConfigManager):
        self.cfg: TranscriptionConfig = config_manager.transcription
        self.device = self._get_device()
        self.compute_type = self._get_compute_type()
        self._model: Optional[Any] = None
        # Worker threads may ask for the model at the same time
        self._model_lock = threading.Lock()

    def _get_device(self) -> str:
        if self.cfg.device != "auto":
            return self.cfg.device

        if torch.cuda.is_available():
            return "cuda"
        # CTranslate2 has no MPS backend
        return "cpu"

    def _get_compute_type(self) -> str:
        if self.cfg.compute_type != "auto":
            if self.device == "cpu" and self.cfg.compute_type == "float16":
                logger.warning("Float16 requested on CPU, falling back to int8 for compatibility.")
                return "int8"
            return self.cfg.compute_type

        if self.device == "cuda":
            return "float16"
        return "int8"

    @property
    def model(self) -> Any:
        if self._model is None:
            with self._model_lock:
                if self._model is None:
                    logger.info(
                        f"Initializing Whisper Model: {self.cfg.model_size} on {self.device} ({self.compute_type})"
                    )
                    self._model = WhisperModel(self.cfg.model_size, device=self.device, compute_type=self.compute_type)
        return self._model

    def transcribe(self, audio_path: str) -> List[TranscriptSegment]:
        """
        Transcribes an audio file into ordered segments.

        Raises:
            TranscriptionError: if the file is missing or Whisper fails.
        """
        if not Path(audio_path).exists():
            raise TranscriptionError(f"Audio file not found: {audio_path}")

        logger.info(f"Starting transcription for {audio_path}...")
        start_time = time.time()

        try:
            segments_generator, info = self.model.transcribe(
                audio_path,
                beam_size=self.cfg.beam_size,
                language=self.cfg.language if self.cfg.language != "auto" else None,
                vad_filter=self.cfg.vad_filter,
                vad_parameters=dict(min_silence_duration_ms=self.cfg.min_silence_duration_ms),
            )

            segments: List[TranscriptSegment] = []
            for seg in segments_generator:
                if seg.avg_logprob < -1.0:
                    logger.debug(f"Low confidence segment ({seg.avg_logprob:.2f}): {seg.text}")

                segments.append(
                    TranscriptSegment(
                        text=seg.text.strip(),
                        start=seg.start,
                        end=seg.end,
                        confidence=min(1.0, math.exp(seg.avg_logprob)),
                    )
                )
        except Exception as e:
            raise TranscriptionError(f"Failed to transcribe {audio_path}: {e}") from e

        processing_time = time.time() - start_time
        logger.success(
            f"Transcription complete in {processing_time:.2f}s "
            f"({len(segments)} segments, language={info.language})"
        )
        return segments
