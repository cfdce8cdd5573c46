from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from .config import DEFAULT_TIER_SCORES
from .models import MatchCandidate, ParsedAddress, ReferenceEntity, Tier
from .reference import ReferenceIndex, exact_key, normalized_key
from .scoring import Scorer
from .utils import natural_key

logger = logging.getLogger(__name__)


class Matcher:
    """负责把解析后的地址与参考索引比对：精确键 -> 规范化键 -> 同门牌号模糊打分，逐级降级。"""

    def __init__(self, index: ReferenceIndex, scorer: Scorer, tier_scores: Optional[Dict[str, float]] = None):
        self.index = index
        self.scorer = scorer
        self.tier_scores = {**DEFAULT_TIER_SCORES, **(tier_scores or {})}

    def match(self, address: ParsedAddress, row_id: Optional[int] = None) -> List[MatchCandidate]:
        if not address.house_number:
            return []

        hits = self.index.exact_lookup(exact_key(address))
        if hits:
            return self._candidates(row_id, hits, float(self.tier_scores["exact"]), Tier.EXACT)

        hits = self.index.normalized_lookup(normalized_key(address, self.index.tables))
        if hits:
            return self._candidates(row_id, hits, float(self.tier_scores["normalized"]), Tier.NORMALIZED)

        out: List[MatchCandidate] = []
        for ent in self.index.by_house_number(address.house_number):
            score, fs = self.scorer.score_pair(address, ent.address, self.index.tables)
            logger.debug("Row %s vs %s: score=%.4f features=%s", row_id, ent.entity_id, score, fs)
            if self.scorer.passes(score):
                out.append(MatchCandidate(row_id, ent.entity_id, score, Tier.FUZZY))
        return _ordered(out)

    def _candidates(self, row_id: Optional[int], hits: Iterable[ReferenceEntity],
                    score: float, tier: Tier) -> List[MatchCandidate]:
        return _ordered([MatchCandidate(row_id, ent.entity_id, score, tier) for ent in hits])


def _ordered(cands: List[MatchCandidate]) -> List[MatchCandidate]:
    return sorted(cands, key=lambda c: (-c.score, natural_key(c.entity_id)))
