import os
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

ClipFormat = Literal["9:16", "1:1", "16:9"]


class PathsConfig(BaseModel):
    uploads_dir: str = Field(default="uploads")
    temp_dir: str = Field(default="temp")
    clips_dir: str = Field(default="clips")
    log_dir: str = Field(default="logs")
    cookies_file: Optional[str] = Field(default=None)


class DownloaderConfig(BaseModel):
    video_format: str = Field(default="bestvideo[ext=mp4]+bestaudio[ext=m4a]/best[ext=mp4]/best")
    merge_output_format: str = Field(default="mp4")
    retries: int = Field(default=3)
    caption_languages: List[str] = Field(default_factory=lambda: ["en", "en-US", "en-GB"])


class TranscriptionConfig(BaseModel):
    model_size: str = Field(default="base")
    compute_type: str = Field(default="auto")
    device: str = Field(default="auto")
    language: str = Field(default="auto")
    beam_size: int = Field(default=5)
    vad_filter: bool = Field(default=True)
    min_silence_duration_ms: int = Field(default=500)


class DetectionConfig(BaseModel):
    min_duration: float = Field(default=10.0, description="Shortest candidate window in seconds")
    max_duration: float = Field(default=60.0, description="Longest candidate window in seconds")
    score_threshold: float = Field(default=0.5)
    refine_top_n: int = Field(default=20)
    final_top_k: int = Field(default=10)
    context_chars: int = Field(default=2000)
    max_segments: int = Field(default=2000)


class IntelligenceConfig(BaseModel):
    llm_provider: str = Field(default="openai")
    model_name: str = Field(default="gpt-4o-mini")
    temperature: float = Field(default=0.3)
    max_tokens: int = Field(default=2048)
    openai_api_key: Optional[str] = Field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    anthropic_api_key: Optional[str] = Field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY"))


class RenderingConfig(BaseModel):
    default_format: ClipFormat = Field(default="9:16")
    preset: str = Field(default="fast")
    crf: int = Field(default=23)
    audio_bitrate: str = Field(default="128k")
    zoom_intensity: float = Field(default=0.05)
    thumbnail_offset: float = Field(default=1.0)
    thumbnail_width: int = Field(default=320)
    subtitle_style: str = Field(
        default=(
            "FontName=Arial,FontSize=24,Bold=1,PrimaryColour=&H00FFFFFF,"
            "OutlineColour=&H00000000,Outline=2,Shadow=1,MarginV=40,Alignment=2"
        )
    )


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO", description="Console level")
    rotation: str = Field(default="10 MB")
    retention: str = Field(default="10 days")
    json_sink: bool = Field(default=True, description="Also write serialized records to viralcut.json.log")
    json_level: str = Field(default="INFO")


class ServerConfig(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    worker_threads: int = Field(default=4)


class AppConfig(BaseModel):
    paths: PathsConfig = Field(default_factory=PathsConfig)
    downloader: DownloaderConfig = Field(default_factory=DownloaderConfig)
    transcription: TranscriptionConfig = Field(default_factory=TranscriptionConfig)
    detection: DetectionConfig = Field(default_factory=DetectionConfig)
    intelligence: IntelligenceConfig = Field(default_factory=IntelligenceConfig)
    rendering: RenderingConfig = Field(default_factory=RenderingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


class ConfigManager:
    """
    Manages loading and validation of application configuration.
    """

    def __init__(self, config_path: str = "config/settings.yaml"):
        self.config_path = Path(config_path)
        self.config: AppConfig = self._load_config()

    @classmethod
    def from_config(cls, config: AppConfig) -> "ConfigManager":
        """Wraps an already-built AppConfig without touching the filesystem."""
        manager = cls.__new__(cls)
        manager.config_path = None
        manager.config = config
        return manager

    def _load_config(self) -> AppConfig:
        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found at {self.config_path}")

        with open(self.config_path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        return AppConfig(**raw_config)

    @property
    def paths(self) -> PathsConfig:
        return self.config.paths

    @property
    def downloader(self) -> DownloaderConfig:
        return self.config.downloader

    @property
    def transcription(self) -> TranscriptionConfig:
        return self.config.transcription

    @property
    def detection(self) -> DetectionConfig:
        return self.config.detection

    @property
    def intelligence(self) -> IntelligenceConfig:
        return self.config.intelligence

    @property
    def rendering(self) -> RenderingConfig:
        return self.config.rendering

    @property
    def logging(self) -> LoggingConfig:
        return self.config.logging

    @property
    def server(self) -> ServerConfig:
        return self.config.server
