import json
from typing import Any, Dict, List, Optional

import yt_dlp
from loguru import logger

from viralcut.config_manager import ConfigManager, DownloaderConfig
from viralcut.exceptions import TranscriptionError
from viralcut.transcription.models import TranscriptSegment

WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def parse_json3(payload: Dict[str, Any]) -> List[TranscriptSegment]:
    """
    Converts a YouTube ``json3`` caption document into transcript segments.

    Auto-generated tracks keep each line on screen until the next one has been
    shown for a while, so an event's end is clamped to the following event's start.
    """
    events = []
    for event in payload.get("events", []):
        segs = event.get("segs")
        if not segs or "tStartMs" not in event:
            continue
        text = "".join(s.get("utf8", "") for s in segs).replace("\n", " ").strip()
        if not text:
            continue
        start = event["tStartMs"] / 1000
        end = start + event.get("dDurationMs", 0) / 1000
        events.append((start, end, text))

    segments = []
    for i, (start, end, text) in enumerate(events):
        if i + 1 < len(events):
            end = min(end, events[i + 1][0])
        segments.append(TranscriptSegment(text=text, start=start, end=max(start, end)))
    return segments


class CaptionFetcher:
    """Fast transcript route: reuses the caption track a video already has."""

    def __init__(self, config_manager: ConfigManager):
        self.cfg: DownloaderConfig = config_manager.downloader
        self.cookies_file = config_manager.paths.cookies_file

    def _pick_track(self, info: Dict[str, Any]) -> Optional[str]:
        # Manual subtitles beat automatic captions for the same language
        for lang in self.cfg.caption_languages:
            for source in (info.get("subtitles") or {}, info.get("automatic_captions") or {}):
                for track in source.get(lang) or []:
                    if track.get("ext") == "json3" and track.get("url"):
                        return track["url"]
        return None

    def fetch(self, video_id: str) -> List[TranscriptSegment]:
        """
        Fetches the existing caption track of a YouTube video.

        Raises:
            TranscriptionError: when no usable track exists or retrieval fails.
        """
        url = WATCH_URL.format(video_id=video_id)
        logger.info(f"Looking for existing captions on {video_id}")

        ydl_opts: Dict[str, Any] = {"quiet": True, "skip_download": True}
        if self.cookies_file:
            ydl_opts["cookiefile"] = self.cookies_file

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                info = ydl.extract_info(url, download=False)
                track_url = self._pick_track(info or {})
                if not track_url:
                    raise TranscriptionError(f"No caption track available for {video_id}")
                raw = ydl.urlopen(track_url).read()
        except TranscriptionError:
            raise
        except Exception as e:
            raise TranscriptionError(f"Failed to fetch captions for {video_id}: {e}") from e

        try:
            segments = parse_json3(json.loads(raw))
        except (ValueError, TypeError) as e:
            raise TranscriptionError(f"Malformed caption track for {video_id}: {e}") from e

        if not segments:
            raise TranscriptionError(f"Caption track for {video_id} is empty")

        logger.success(f"Fetched {len(segments)} caption segments for {video_id}")
        return segments
