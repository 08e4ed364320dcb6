import subprocess
from pathlib import Path
from typing import Dict, List

from loguru import logger

from viralcut.config_manager import ClipFormat, ConfigManager
from viralcut.exceptions import MediaTransformError

# Scale + crop/pad recipe and output size per target aspect ratio
FORMAT_FILTERS: Dict[str, str] = {
    "9:16": "scale=1920:1080:force_original_aspect_ratio=increase,crop=1080:1920,scale=1080:1920",
    "1:1": "scale=1080:1080:force_original_aspect_ratio=increase,crop=1080:1080",
    "16:9": "scale=1920:1080:force_original_aspect_ratio=decrease,pad=1920:1080:(ow-iw)/2:(oh-ih)/2",
}
FORMAT_SIZES: Dict[str, str] = {
    "9:16": "1080x1920",
    "1:1": "1080x1080",
    "16:9": "1920x1080",
}

ZOOM_MAX = 1.5
ZOOM_FPS = 25


def _escape_filter_path(path: str) -> str:
    return path.replace("\\", "/").replace(":", "\\:").replace("'", "\\'")


class MediaTransformer:
    """
    ffmpeg/ffprobe front-end. Every operation writes a new file and raises
    MediaTransformError instead of leaving a half-written output behind.
    """

    def __init__(self, config_manager: ConfigManager, ffmpeg_bin: str = "ffmpeg", ffprobe_bin: str = "ffprobe"):
        self.cfg = config_manager.rendering
        self.ffmpeg_bin = ffmpeg_bin
        self.ffprobe_bin = ffprobe_bin

    def _run(self, cmd: List[str], operation: str, output_path: str = "") -> str:
        logger.debug(f"{operation}: {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, check=True, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
        except FileNotFoundError as e:
            raise MediaTransformError(f"{operation}: {cmd[0]} is not installed") from e
        except subprocess.CalledProcessError as e:
            if output_path:
                Path(output_path).unlink(missing_ok=True)
            stderr_tail = (e.stderr or "").strip().splitlines()[-3:]
            raise MediaTransformError(f"{operation} exited with {e.returncode}: {' | '.join(stderr_tail)}") from e

        if output_path and not Path(output_path).exists():
            raise MediaTransformError(f"{operation} produced no output at {output_path}")
        return proc.stdout

    def _encode_args(self) -> List[str]:
        return ["-c:v", "libx264", "-preset", self.cfg.preset, "-crf", str(self.cfg.crf)]

    def extract_audio(self, video_path: str, output_path: str) -> str:
        """Extracts a 16 kHz mono PCM track suitable for Whisper."""
        cmd = [
            self.ffmpeg_bin, "-y", "-i", video_path,
            "-vn", "-acodec", "pcm_s16le", "-ar", "16000", "-ac", "1",
            output_path,
        ]
        self._run(cmd, "extract-audio", output_path)
        return output_path

    def resample_audio(self, audio_path: str, output_path: str) -> str:
        cmd = [self.ffmpeg_bin, "-y", "-i", audio_path, "-ar", "16000", "-ac", "1", output_path]
        self._run(cmd, "resample-audio", output_path)
        return output_path

    def crop(self, src: str, dst: str, start: float, end: float, fmt: ClipFormat = "9:16") -> str:
        """Cuts [start, end] out of ``src`` and reframes it to the requested aspect ratio."""
        if fmt not in FORMAT_FILTERS:
            raise MediaTransformError(f"Unsupported clip format: {fmt}")
        cmd = [
            self.ffmpeg_bin, "-y",
            "-ss", str(start), "-i", src, "-t", str(end - start),
            "-vf", FORMAT_FILTERS[fmt],
            *self._encode_args(),
            "-c:a", "aac", "-b:a", self.cfg.audio_bitrate,
            dst,
        ]
        self._run(cmd, "crop", dst)
        return dst

    def burn_subtitles(self, src: str, dst: str, subtitle_path: str) -> str:
        style = self.cfg.subtitle_style
        cmd = [
            self.ffmpeg_bin, "-y", "-i", src,
            "-vf", f"subtitles={_escape_filter_path(subtitle_path)}:force_style='{style}'",
            *self._encode_args(),
            "-c:a", "copy",
            dst,
        ]
        self._run(cmd, "burn-subtitles", dst)
        return dst

    def zoom_pan(self, src: str, dst: str, intensity: float, fmt: ClipFormat = "9:16") -> str:
        """
        Slow centred zoom of ``intensity`` per second, capped at 1.5x.

        The input is resampled to 25 fps first, so with ``d=1`` every input frame
        yields one output frame and the video stays as long as its audio.
        """
        step = intensity / ZOOM_FPS
        zoom_filter = (
            f"fps={ZOOM_FPS},zoompan=z='min(zoom+{step:.5f},{ZOOM_MAX})':d=1"
            ":x='iw/2-(iw/zoom/2)':y='ih/2-(ih/zoom/2)'"
            f":s={FORMAT_SIZES.get(fmt, FORMAT_SIZES['9:16'])}:fps={ZOOM_FPS}"
        )
        cmd = [
            self.ffmpeg_bin, "-y", "-i", src,
            "-vf", zoom_filter,
            *self._encode_args(),
            "-c:a", "copy",
            dst,
        ]
        self._run(cmd, "zoom-pan", dst)
        return dst

    def thumbnail(self, src: str, dst: str, offset: float = 1.0) -> str:
        cmd = [
            self.ffmpeg_bin, "-y", "-ss", str(offset), "-i", src,
            "-vframes", "1", "-vf", f"scale={self.cfg.thumbnail_width}:-1",
            dst,
        ]
        self._run(cmd, "thumbnail", dst)
        return dst

    def probe_duration(self, media_path: str) -> float:
        cmd = [
            self.ffprobe_bin, "-v", "error",
            "-show_entries", "format=duration",
            "-of", "default=noprint_wrappers=1:nokey=1",
            media_path,
        ]
        output = self._run(cmd, "probe-duration")
        try:
            return float(output.strip())
        except ValueError as e:
            raise MediaTransformError(f"probe-duration returned {output.strip()!r} for {media_path}") from e
