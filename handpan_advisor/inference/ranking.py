"""Recommendation ranking - Pick one scale out of all scored candidates.

Two policies:
- standard: within a small margin of the best score, prefer Tier 1
  (9 or 10 note) scales, which are the most beginner-friendly
- pro: the single highest score wins, whatever the note count

Ranking never re-scores; switching modes is a pure re-selection.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..core import MatchMode
from .matching import MatchCandidate, NO_MATCH

logger = logging.getLogger(__name__)


@dataclass
class RankerConfig:
    """Configuration for recommendation ranking.

    Attributes:
        tier_margin: Score distance from the top still considered a near-tie (default: 3.0)
        tier1_note_counts: Note counts preferred in standard mode (default: 9, 10)
    """

    tier_margin: float = 3.0
    tier1_note_counts: Tuple[int, ...] = (9, 10)


class RecommendationRanker:
    """Order candidates and select the winner for a mode."""

    def __init__(self, config: Optional[RankerConfig] = None):
        self.config = config or RankerConfig()

    def rank(
        self,
        candidates: Sequence[MatchCandidate],
        mode: MatchMode = MatchMode.STANDARD,
    ) -> List[MatchCandidate]:
        """
        Order candidates best first.

        Ties after score, popularity and |transposition| keep input
        (library) order.

        Args:
            candidates: All candidates of one matching run
            mode: Selection policy

        Returns:
            New list, best candidate first
        """
        mode = MatchMode(mode)
        if not candidates:
            return []

        indexed = list(enumerate(candidates))

        if mode is MatchMode.PRO:
            indexed.sort(key=lambda ic: self._score_key(ic[0], ic[1]))
        else:
            floor = max(c.score for c in candidates) - self.config.tier_margin
            tier1 = self.config.tier1_note_counts

            def standard_key(ic):
                index, c = ic
                preferred = c.score >= floor and c.total_note_count in tier1
                return (0 if preferred else 1,) + self._score_key(index, c)

            indexed.sort(key=standard_key)

        return [c for _, c in indexed]

    @staticmethod
    def _score_key(index: int, c: MatchCandidate):
        return (-c.score, -c.popularity_score, abs(c.transposition), index)

    def select(
        self,
        candidates: Sequence[MatchCandidate],
        mode: MatchMode = MatchMode.STANDARD,
    ) -> MatchCandidate:
        """
        Select exactly one winner.

        Returns:
            The best candidate, or NO_MATCH when there are none
        """
        ranked = self.rank(candidates, mode)
        if not ranked:
            return NO_MATCH

        best = ranked[0]
        logger.debug(
            "%s mode selected %s (t=%+d, score %.1f)",
            MatchMode(mode).value, best.scale_id, best.transposition, best.score,
        )
        return best
