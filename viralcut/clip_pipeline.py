import math
import os
import random
import shutil
from functools import partial
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from viralcut.config_manager import ConfigManager
from viralcut.editing.ffmpeg import MediaTransformer
from viralcut.exceptions import StageError
from viralcut.intelligence.models import ViralMoment
from viralcut.jobs.models import ClipConfig, ProcessedClip, new_job_id
from viralcut.jobs.store import JobStore
from viralcut.overlay.subtitle import build_subtitle_cues, write_srt
from viralcut.pipeline import run_stage
from viralcut.transcription.models import TranscriptSegment

CROP = "crop"
CAPTION = "caption"
ZOOM_PAN = "zoom-pan"
THUMBNAIL = "thumbnail"
FINALIZE = "finalize"


class ClipPaths:
    """Deterministic file layout of one clip inside the clips directory."""

    def __init__(self, clips_dir: Path, clip_id: str):
        self.base = clips_dir / f"{clip_id}_base.mp4"
        self.subtitles = clips_dir / f"{clip_id}_base.srt"
        self.captioned = clips_dir / f"{clip_id}_captioned.mp4"
        self.zoomed = clips_dir / f"{clip_id}_zoomed.mp4"
        self.final = clips_dir / f"{clip_id}.mp4"
        self.thumbnail = clips_dir / f"{clip_id}_thumb.jpg"

    def all(self) -> List[Path]:
        return [self.base, self.subtitles, self.captioned, self.zoomed, self.final, self.thumbnail]


class ClipPipeline:
    """
    Renders selected moments one after another through the stage chain
    crop -> caption -> zoom/pan -> thumbnail.

    A failing moment becomes a non-ready ProcessedClip and the batch moves on.
    Each stage deletes its input as soon as its own output exists.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        store: JobStore,
        media: Optional[MediaTransformer] = None,
        rng: Optional[random.Random] = None,
    ):
        self.cfg = config_manager.rendering
        self.store = store
        self.media = media or MediaTransformer(config_manager)
        self.rng = rng or random.Random()
        self.clips_dir = Path(config_manager.paths.clips_dir)
        self.clips_dir.mkdir(parents=True, exist_ok=True)

    def clip_path(self, clip_id: str) -> Path:
        return ClipPaths(self.clips_dir, clip_id).final

    def run(
        self,
        clip_job_id: str,
        media_path: str,
        segments: Sequence[TranscriptSegment],
        moments: Sequence[ViralMoment],
        clip_config: ClipConfig,
    ) -> List[ProcessedClip]:
        total = len(moments)
        clips: List[ProcessedClip] = []

        for i, moment in enumerate(moments):
            self.store.update_clip_job(
                clip_job_id,
                progress=math.floor(i / total * 100),
                current_step=f"Processing clip {i + 1}/{total}",
                processed_clips=i,
            )
            logger.info(f"Rendering clip {i + 1}/{total} ({moment.start:.1f}s - {moment.end:.1f}s)")
            clips.append(self.render_clip(media_path, segments, moment, clip_config))

        return clips

    def render_clip(
        self,
        media_path: str,
        segments: Sequence[TranscriptSegment],
        moment: ViralMoment,
        clip_config: ClipConfig,
    ) -> ProcessedClip:
        clip_id = new_job_id()
        paths = ClipPaths(self.clips_dir, clip_id)
        if clip_config.format is None:
            clip_config = clip_config.model_copy(update={"format": self.cfg.default_format})

        try:
            current = paths.base
            run_stage(
                CROP, self.media.crop, media_path, str(current), moment.start, moment.end, clip_config.format,
                moment_id=moment.id,
            )

            if clip_config.add_captions:
                current = self._caption(current, paths, segments, moment, clip_config.add_emojis)

            if clip_config.add_zoom_pan:
                current = self._zoom_pan(current, paths, moment, clip_config)

            run_stage(FINALIZE, os.replace, current, paths.final, moment_id=moment.id)

            offset = min(self.cfg.thumbnail_offset, moment.duration / 2)
            run_stage(THUMBNAIL, self.media.thumbnail, str(paths.final), str(paths.thumbnail), offset, moment_id=moment.id)
        except StageError as e:
            return self._failed(clip_id, paths, moment, e)
        except Exception as e:
            return self._failed(clip_id, paths, moment, StageError(FINALIZE, str(e), moment_id=moment.id))

        logger.success(f"Clip {clip_id} ready at {paths.final}")
        return ProcessedClip(
            id=clip_id,
            video_path=str(paths.final),
            thumbnail_path=str(paths.thumbnail),
            duration=moment.duration,
            moment=moment,
            ready=True,
        )

    def _caption(
        self,
        current: Path,
        paths: ClipPaths,
        segments: Sequence[TranscriptSegment],
        moment: ViralMoment,
        add_emojis: bool,
    ) -> Path:
        cues = build_subtitle_cues(segments, moment, add_emojis=add_emojis, rng=self.rng)
        if not cues:
            logger.info(f"No transcript segment fits inside moment {moment.id}, skipping captions")
            return current

        try:
            run_stage(CAPTION, write_srt, cues, str(paths.subtitles), moment_id=moment.id)
            run_stage(
                CAPTION, self.media.burn_subtitles, str(current), str(paths.captioned), str(paths.subtitles),
                moment_id=moment.id,
            )
        finally:
            paths.subtitles.unlink(missing_ok=True)

        run_stage(CAPTION, partial(current.unlink, missing_ok=True), moment_id=moment.id)
        return paths.captioned

    def _zoom_pan(self, current: Path, paths: ClipPaths, moment: ViralMoment, clip_config: ClipConfig) -> Path:
        try:
            self.media.zoom_pan(str(current), str(paths.zoomed), self.cfg.zoom_intensity, clip_config.format)
        except Exception as e:
            logger.warning(f"Zoom/pan effect failed, using original video: {e}")
            run_stage(ZOOM_PAN, shutil.copyfile, str(current), str(paths.zoomed), moment_id=moment.id)

        run_stage(ZOOM_PAN, partial(current.unlink, missing_ok=True), moment_id=moment.id)
        return paths.zoomed

    def _failed(self, clip_id: str, paths: ClipPaths, moment: ViralMoment, error: StageError) -> ProcessedClip:
        logger.error(f"Clip for moment {moment.id} failed: {error}")
        self._discard(paths)
        return ProcessedClip(id=clip_id, duration=moment.duration, moment=moment, ready=False, error=str(error))

    def _discard(self, paths: ClipPaths) -> None:
        for path in paths.all():
            try:
                if path.is_dir():
                    shutil.rmtree(path)
                else:
                    path.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not remove {path}: {e}")
