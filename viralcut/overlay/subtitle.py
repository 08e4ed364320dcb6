import random
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from viralcut.intelligence.lexicon import EMOJI_MAP
from viralcut.intelligence.models import ViralMoment
from viralcut.overlay.models import SubtitleCue
from viralcut.transcription.models import TranscriptSegment


def select_caption_segments(segments: Sequence[TranscriptSegment], moment: ViralMoment) -> List[TranscriptSegment]:
    """Segments lying entirely inside the moment; boundary-straddling ones are dropped."""
    return [s for s in segments if s.start >= moment.start and s.end <= moment.end]


def format_srt_time(seconds: float) -> str:
    total_ms = int(round(max(0.0, seconds) * 1000))
    hours, rest = divmod(total_ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    secs, millis = divmod(rest, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def select_emoji(text: str, emotions: Sequence[str], rng: random.Random) -> str:
    """
    Picks an emoji for a caption line.

    The first emotion with an emoji set wins; otherwise punctuation and a few
    sentiment words decide. Returns "" when nothing applies.
    """
    for emotion in emotions:
        if emotion in EMOJI_MAP:
            return rng.choice(EMOJI_MAP[emotion])

    lower_text = text.lower()
    if "!" in lower_text:
        return "‼️"
    if "?" in lower_text:
        return "🤔"
    if "love" in lower_text or "great" in lower_text:
        return "❤️"
    if "bad" in lower_text or "hate" in lower_text:
        return "😤"
    return ""


def build_subtitle_cues(
    segments: Sequence[TranscriptSegment],
    moment: ViralMoment,
    add_emojis: bool = True,
    rng: Optional[random.Random] = None,
) -> List[SubtitleCue]:
    rng = rng or random.Random()
    cues = []
    for index, seg in enumerate(select_caption_segments(segments, moment), start=1):
        text = seg.text.strip()
        if add_emojis:
            emoji = select_emoji(text, moment.emotions, rng)
            # Only decorate roughly half the lines
            if emoji and rng.random() > 0.5:
                text = f"{emoji} {text}"
        cues.append(
            SubtitleCue(
                index=index,
                start=seg.start - moment.start,
                end=seg.end - moment.start,
                text=text,
            )
        )
    return cues


def render_srt(cues: Sequence[SubtitleCue]) -> str:
    blocks = [
        f"{cue.index}\n{format_srt_time(cue.start)} --> {format_srt_time(cue.end)}\n{cue.text}\n"
        for cue in cues
    ]
    return "\n".join(blocks) + ("\n" if blocks else "")


def write_srt(cues: Sequence[SubtitleCue], output_path: str) -> str:
    Path(output_path).write_text(render_srt(cues), encoding="utf-8")
    logger.debug(f"Wrote {len(cues)} subtitle cues to {output_path}")
    return output_path
