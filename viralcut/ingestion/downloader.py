import re
from pathlib import Path
from typing import Any, Dict, Optional

import yt_dlp
from loguru import logger

from viralcut.config_manager import ConfigManager, DownloaderConfig, PathsConfig
from viralcut.exceptions import DownloadError

YOUTUBE_ID_PATTERNS = [
    re.compile(r"(?:youtube\.com/watch\?(?:.*&)?v=|youtu\.be/|youtube\.com/embed/|youtube\.com/shorts/)([^&\n?#/]+)"),
]


def extract_youtube_id(url: str) -> Optional[str]:
    """Returns the video id of a YouTube watch/short/embed URL, or None."""
    for pattern in YOUTUBE_ID_PATTERNS:
        match = pattern.search(url)
        if match and match.group(1):
            return match.group(1)
    return None


class VideoDownloader:
    """
    Thin wrapper around yt-dlp that saves a remote video to a fixed path.
    """

    def __init__(self, config_manager: ConfigManager):
        self.cfg: DownloaderConfig = config_manager.downloader
        self.paths: PathsConfig = config_manager.paths

    def progress_hook(self, d: Dict[str, Any]) -> None:
        """Callback for yt-dlp progress."""
        if d["status"] == "downloading":
            p = d.get("_percent_str", "0%").replace("%", "").strip()
            logger.debug(f"Downloading: {p}% | Speed: {d.get('_speed_str', 'N/A')} | ETA: {d.get('_eta_str', 'N/A')}")
        elif d["status"] == "finished":
            logger.info("Download finished, running post-download hooks...")

    def download(self, url: str, destination: str) -> str:
        """
        Downloads a video to ``destination``.

        Args:
            url: The URL of the video to download.
            destination: Final file path, including the container extension.

        Returns:
            The destination path.

        Raises:
            DownloadError: if yt-dlp fails or the expected file is not produced.
        """
        dest = Path(destination)
        dest.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Initiating download for: {url}")

        ydl_opts: Dict[str, Any] = {
            "format": self.cfg.video_format,
            "outtmpl": str(dest.with_suffix("")) + ".%(ext)s",
            "merge_output_format": self.cfg.merge_output_format,
            "progress_hooks": [self.progress_hook],
            "retries": self.cfg.retries,
            "quiet": True,
            "noprogress": True,
        }
        if self.paths.cookies_file and Path(self.paths.cookies_file).exists():
            ydl_opts["cookiefile"] = self.paths.cookies_file

        try:
            with yt_dlp.YoutubeDL(ydl_opts) as ydl:
                ydl.download([url])
        except Exception as e:
            raise DownloadError(f"Download failed for {url}: {e}") from e

        if not dest.exists():
            raise DownloadError(f"Download for {url} did not produce {dest}")

        logger.success(f"Downloaded {url} to {dest}")
        return str(dest)
