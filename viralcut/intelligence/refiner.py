from typing import Any, Dict, List, Optional, Sequence

import instructor
from anthropic import Anthropic
from loguru import logger
from openai import OpenAI

from viralcut.config_manager import ConfigManager
from viralcut.intelligence.models import ClipRanking, RankingResponse, ViralMoment
from viralcut.intelligence.prompts import (
    CANDIDATE_LINE_TEMPLATE,
    RANKING_SYSTEM_PROMPT,
    RANKING_USER_TEMPLATE,
)


class MomentRefiner:
    """
    Re-scores heuristic candidates with an LLM ranking pass.

    Refinement is best-effort: when the client is missing or the call fails in any
    way, the candidates come back exactly as they went in.
    """

    def __init__(self, config_manager: ConfigManager, client: Optional[Any] = None):
        self.cfg = config_manager.intelligence
        self.detection = config_manager.detection
        self.client: Optional[Any] = client if client is not None else self._init_client()

    def _init_client(self) -> Optional[Any]:
        """Initialize the LLM client wrapped with Instructor."""
        if self.cfg.llm_provider == "openai":
            api_key = self.cfg.openai_api_key
            if not api_key:
                logger.warning("OpenAI API Key not found. Moment refinement will be skipped.")
                return None
            return instructor.from_openai(OpenAI(api_key=api_key))

        elif self.cfg.llm_provider == "anthropic":
            api_key = self.cfg.anthropic_api_key
            if not api_key:
                logger.warning("Anthropic API Key not found. Moment refinement will be skipped.")
                return None
            return instructor.from_anthropic(Anthropic(api_key=api_key))

        else:
            raise ValueError(f"Unsupported LLM provider: {self.cfg.llm_provider}")

    def build_prompt(self, moments: Sequence[ViralMoment], full_transcript: str) -> str:
        candidate_list = "\n".join(
            CANDIDATE_LINE_TEMPLATE.format(number=i + 1, start=m.start, end=m.end, text=m.text)
            for i, m in enumerate(moments)
        )
        return RANKING_USER_TEMPLATE.format(
            transcript_context=full_transcript[: self.detection.context_chars],
            candidate_list=candidate_list,
        )

    def refine(self, moments: Sequence[ViralMoment], full_transcript: str) -> List[ViralMoment]:
        """
        Overwrites score and reason of every candidate the ranking service addresses.

        A ranking of N maps to a score of N/10. Candidates without a ranking keep
        their heuristic values; start, end, text, emotions and keywords never change.
        """
        moments = list(moments)
        if not moments or not self.client:
            return moments

        try:
            resp = self.client.chat.completions.create(
                model=self.cfg.model_name,
                response_model=RankingResponse,
                messages=[
                    {"role": "system", "content": RANKING_SYSTEM_PROMPT},
                    {"role": "user", "content": self.build_prompt(moments, full_transcript)},
                ],
                temperature=self.cfg.temperature,
                max_tokens=self.cfg.max_tokens,
                max_retries=1,
            )
            rankings = self._index_rankings(resp.clips, len(moments))
        except Exception as e:
            logger.warning(f"Moment refinement failed, keeping heuristic scores: {e}")
            return moments

        refined = []
        for index, moment in enumerate(moments):
            ranking = rankings.get(index + 1)
            if ranking is None:
                refined.append(moment)
                continue
            refined.append(
                moment.model_copy(
                    update={
                        "score": ranking.viral_score / 10,
                        "reason": ranking.reason.strip() or moment.reason,
                    }
                )
            )

        logger.success(f"Refined {len(rankings)}/{len(moments)} candidates with {self.cfg.model_name}")
        return refined

    @staticmethod
    def _index_rankings(rankings: Sequence[ClipRanking], count: int) -> Dict[int, ClipRanking]:
        # First ranking wins when the model repeats a clip number
        indexed: Dict[int, ClipRanking] = {}
        for ranking in rankings:
            if 1 <= ranking.clip_number <= count and ranking.clip_number not in indexed:
                indexed[ranking.clip_number] = ranking
        return indexed
