import pytest

from viralcut.config_manager import AppConfig, ConfigManager, IntelligenceConfig, PathsConfig
from viralcut.transcription.models import TranscriptSegment


@pytest.fixture
def config_manager(tmp_path):
    """ConfigManager rooted in tmp_path, with no LLM credentials."""
    config = AppConfig(
        paths=PathsConfig(
            uploads_dir=str(tmp_path / "uploads"),
            temp_dir=str(tmp_path / "temp"),
            clips_dir=str(tmp_path / "clips"),
            log_dir=str(tmp_path / "logs"),
        ),
        intelligence=IntelligenceConfig(openai_api_key=None, anthropic_api_key=None),
    )
    return ConfigManager.from_config(config)


@pytest.fixture
def viral_segments():
    """Three segments over 0-45s, two of them keyword-laden questions."""
    return [
        TranscriptSegment(text="Why does nobody talk about this secret?", start=0.0, end=15.0),
        TranscriptSegment(text="Have you ever wondered how this crazy hack actually works?", start=15.0, end=30.0),
        TranscriptSegment(text="Let me walk you through it.", start=30.0, end=45.0),
    ]
