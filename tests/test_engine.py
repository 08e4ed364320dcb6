import math
import time
from concurrent.futures import ThreadPoolExecutor
from types import SimpleNamespace

import pytest

from viralcut.exceptions import TranscriptionError
from viralcut.transcription.engine import AudioTranscriber


@pytest.fixture
def mock_whisper(mocker):
    mocker.patch("viralcut.transcription.engine.torch.cuda.is_available", return_value=False)
    return mocker.patch("viralcut.transcription.engine.WhisperModel")


def test_device_and_compute_type_on_cpu(config_manager, mock_whisper):
    transcriber = AudioTranscriber(config_manager)
    assert transcriber.device == "cpu"
    assert transcriber.compute_type == "int8"


def test_float16_on_cpu_falls_back(config_manager, mock_whisper):
    config_manager.config.transcription.compute_type = "float16"
    assert AudioTranscriber(config_manager).compute_type == "int8"


def test_cuda_uses_float16(mocker, config_manager):
    mocker.patch("viralcut.transcription.engine.torch.cuda.is_available", return_value=True)
    transcriber = AudioTranscriber(config_manager)
    assert (transcriber.device, transcriber.compute_type) == ("cuda", "float16")


def test_model_is_loaded_lazily(config_manager, mock_whisper):
    transcriber = AudioTranscriber(config_manager)
    mock_whisper.assert_not_called()

    assert transcriber.model is transcriber.model
    mock_whisper.assert_called_once_with("base", device="cpu", compute_type="int8")


def test_model_loads_once_across_threads(config_manager, mock_whisper):
    def slow_load(*args, **kwargs):
        time.sleep(0.05)
        return object()

    mock_whisper.side_effect = slow_load
    transcriber = AudioTranscriber(config_manager)

    with ThreadPoolExecutor(max_workers=4) as pool:
        models = list(pool.map(lambda _: transcriber.model, range(4)))

    mock_whisper.assert_called_once()
    assert all(m is models[0] for m in models)


def test_transcribe_maps_segments(config_manager, mock_whisper, tmp_path):
    audio = tmp_path / "audio.wav"
    audio.write_bytes(b"RIFF")
    mock_whisper.return_value.transcribe.return_value = (
        iter(
            [
                SimpleNamespace(text=" Hello there. ", start=0.0, end=2.0, avg_logprob=-0.2),
                SimpleNamespace(text="Mumble", start=2.0, end=3.5, avg_logprob=-1.5),
            ]
        ),
        SimpleNamespace(language="en"),
    )

    segments = AudioTranscriber(config_manager).transcribe(str(audio))

    assert [s.text for s in segments] == ["Hello there.", "Mumble"]
    assert segments[0].confidence == pytest.approx(math.exp(-0.2))
    assert segments[1].end == 3.5
    kwargs = mock_whisper.return_value.transcribe.call_args.kwargs
    assert kwargs["language"] is None
    assert kwargs["vad_filter"] is True


def test_transcribe_missing_file(config_manager, mock_whisper, tmp_path):
    with pytest.raises(TranscriptionError, match="not found"):
        AudioTranscriber(config_manager).transcribe(str(tmp_path / "missing.wav"))


def test_transcribe_wraps_model_errors(config_manager, mock_whisper, tmp_path):
    audio = tmp_path / "audio.wav"
    audio.write_bytes(b"RIFF")
    mock_whisper.return_value.transcribe.side_effect = RuntimeError("CUDA out of memory")

    with pytest.raises(TranscriptionError, match="CUDA out of memory"):
        AudioTranscriber(config_manager).transcribe(str(audio))
