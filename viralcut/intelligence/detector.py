from typing import List, Optional, Sequence

from loguru import logger

from viralcut.config_manager import ConfigManager
from viralcut.intelligence.models import ViralMoment
from viralcut.intelligence.refiner import MomentRefiner
from viralcut.intelligence.scorer import MomentScorer
from viralcut.transcription.models import TranscriptSegment, validate_segments


def rank_by_score(moments: Sequence[ViralMoment]) -> List[ViralMoment]:
    # sorted() is stable, so equal scores keep discovery order
    return sorted(moments, key=lambda m: m.score, reverse=True)


class MomentDetector:
    """Entry point of moment detection: heuristic scan, LLM refinement, bounded ranking."""

    def __init__(
        self,
        config_manager: ConfigManager,
        scorer: Optional[MomentScorer] = None,
        refiner: Optional[MomentRefiner] = None,
    ):
        self.cfg = config_manager.detection
        self.scorer = scorer or MomentScorer(config_manager)
        self.refiner = refiner or MomentRefiner(config_manager)

    def detect(
        self,
        segments: Sequence[TranscriptSegment],
        min_duration: Optional[float] = None,
        max_duration: Optional[float] = None,
    ) -> List[ViralMoment]:
        """
        Returns at most ``final_top_k`` moments sorted by descending score.

        Raises:
            InputValidationError: if the segments overlap or are out of order.
        """
        segments = validate_segments(segments)
        candidates = self.scorer.score_windows(segments, min_duration, max_duration)
        top = rank_by_score(candidates)[: self.cfg.refine_top_n]

        full_text = " ".join(s.text for s in segments)
        refined = self.refiner.refine(top, full_text)

        moments = rank_by_score(refined)[: self.cfg.final_top_k]
        logger.info(f"Detected {len(moments)} viral moments ({len(candidates)} candidates scanned)")
        return moments
