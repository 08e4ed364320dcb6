import re
from typing import List, Optional, Sequence

from loguru import logger

from viralcut.config_manager import ConfigManager, DetectionConfig
from viralcut.intelligence.lexicon import EMOTION_KEYWORDS, VIRAL_KEYWORDS
from viralcut.intelligence.models import ViralMoment
from viralcut.transcription.models import TranscriptSegment

KEYWORD_WEIGHT = 0.1
EMOTION_WEIGHT = 0.08
QUESTION_WEIGHT = 0.15
EXCLAMATION_WEIGHT = 0.1
PUNCHY_BONUS = 0.2
PUNCHY_MAX_AVG_CHARS = 50
VARIETY_BONUS = 0.15
VARIETY_SENTENCE_RANGE = (3, 8)

SENTENCE_SPLIT = re.compile(r"[.!?]+")


def extract_keywords(text: str) -> List[str]:
    lower_text = text.lower()
    return [kw for kw in VIRAL_KEYWORDS if kw in lower_text]


def detect_emotions(text: str) -> List[str]:
    lower_text = text.lower()
    return [
        emotion
        for emotion, keywords in EMOTION_KEYWORDS.items()
        if any(kw in lower_text for kw in keywords)
    ]


def count_emotion_terms(text: str) -> int:
    lower_text = text.lower()
    return sum(1 for keywords in EMOTION_KEYWORDS.values() for kw in keywords if kw in lower_text)


def count_sentences(text: str) -> int:
    return len([s for s in SENTENCE_SPLIT.split(text) if s.strip()])


def generate_reason(text: str) -> str:
    """Builds a human readable explanation out of the heuristics that fired."""
    reasons = []
    if "?" in text:
        reasons.append("Engaging question")
    if "!" in text:
        reasons.append("High energy")
    if extract_keywords(text):
        reasons.append("Viral keywords")
    if len(detect_emotions(text)) > 2:
        reasons.append("Emotional appeal")
    return ", ".join(reasons) or "Interesting content"


def score_text(text: str, segments: Sequence[TranscriptSegment]) -> float:
    """
    Heuristic viral score of a window, clamped to [0, 1].

    Each lexicon term present counts once, punctuation counts per character.
    """
    score = 0.0
    score += len(extract_keywords(text)) * KEYWORD_WEIGHT
    score += count_emotion_terms(text) * EMOTION_WEIGHT
    score += text.count("?") * QUESTION_WEIGHT
    score += text.count("!") * EXCLAMATION_WEIGHT

    if segments:
        avg_length = sum(len(s.text) for s in segments) / len(segments)
        if avg_length < PUNCHY_MAX_AVG_CHARS:
            score += PUNCHY_BONUS

    low, high = VARIETY_SENTENCE_RANGE
    if low <= count_sentences(text) <= high:
        score += VARIETY_BONUS

    return max(0.0, min(score, 1.0))


class MomentScorer:
    """Scans every transcript window within the duration bounds and keeps the promising ones."""

    def __init__(self, config_manager: ConfigManager):
        self.cfg: DetectionConfig = config_manager.detection

    def score_windows(
        self,
        segments: Sequence[TranscriptSegment],
        min_duration: Optional[float] = None,
        max_duration: Optional[float] = None,
    ) -> List[ViralMoment]:
        """
        Returns candidate moments in discovery order (by start index, then end index).

        The scan is quadratic in the number of segments; the inner loop stops as soon
        as a window grows past ``max_duration`` and the input is capped at
        ``max_segments``.
        """
        min_duration = self.cfg.min_duration if min_duration is None else min_duration
        max_duration = self.cfg.max_duration if max_duration is None else max_duration

        if len(segments) > self.cfg.max_segments:
            logger.warning(
                f"Transcript has {len(segments)} segments, scanning only the first {self.cfg.max_segments}"
            )
            segments = segments[: self.cfg.max_segments]

        moments: List[ViralMoment] = []
        for i in range(len(segments)):
            start_time = segments[i].start
            for j in range(i + 1, len(segments)):
                end_time = segments[j].end
                duration = end_time - start_time

                if duration < min_duration:
                    continue
                if duration > max_duration:
                    break
                if end_time <= start_time:
                    continue

                window = segments[i : j + 1]
                window_text = " ".join(s.text for s in window)
                score = score_text(window_text, window)

                if score > self.cfg.score_threshold:
                    moments.append(
                        ViralMoment(
                            start=start_time,
                            end=end_time,
                            score=score,
                            text=window_text,
                            reason=generate_reason(window_text),
                            emotions=detect_emotions(window_text),
                            keywords=extract_keywords(window_text),
                        )
                    )

        logger.debug(f"Heuristic scan produced {len(moments)} candidates from {len(segments)} segments")
        return moments
