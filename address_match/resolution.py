from __future__ import annotations
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from .errors import Condition
from .models import MatchCandidate, ParsedAddress, RawRecord, ResolvedRecord, Tier
from .reference import ReferenceIndex
from .utils import natural_key

logger = logging.getLogger(__name__)


class Resolver:
    """每行至多选出一个参考实体；并列、无候选、重复都打上复核标记，但从不丢弃记录。"""

    def __init__(self, index: ReferenceIndex):
        self.index = index

    def resolve(self, row_id: int, candidates: Sequence[MatchCandidate],
                parsed: Optional[ParsedAddress] = None, record: Optional[RawRecord] = None) -> ResolvedRecord:
        reasons: List[str] = []
        if parsed is not None and not parsed.is_complete:
            reasons.append(Condition.PARSE_INCOMPLETE.value)

        if not candidates:
            reasons.append(Condition.NO_MATCH.value)
            return ResolvedRecord(row_id=row_id, entity=None, tier=Tier.NONE, score=0.0, review=True,
                                  reasons=tuple(reasons), candidate_count=0, parsed=parsed, record=record)

        top = max(c.score for c in candidates)
        best = sorted((c for c in candidates if c.score == top), key=lambda c: natural_key(c.entity_id))
        chosen = best[0]
        review = len(best) > 1
        if review:
            reasons.append(Condition.AMBIGUOUS_MATCH.value)
            logger.debug("Row %s ambiguous between %s; picked %s",
                         row_id, [c.entity_id for c in best], chosen.entity_id)

        return ResolvedRecord(
            row_id=row_id,
            entity=self.index.get(chosen.entity_id),
            tier=chosen.tier,
            score=chosen.score,
            review=review,
            reasons=tuple(reasons),
            candidate_count=len(candidates),
            parsed=parsed,
            record=record,
        )

    def failed(self, row_id: int, record: Optional[RawRecord] = None,
               parsed: Optional[ParsedAddress] = None) -> ResolvedRecord:
        return ResolvedRecord(row_id=row_id, entity=None, tier=Tier.NONE, score=0.0, review=True,
                              reasons=(Condition.PROCESSING_ERROR.value,), parsed=parsed, record=record)

    def dedup(self, records: Sequence[ResolvedRecord]) -> List[ResolvedRecord]:
        """按实体 id 分组，行号最小者保留原状态，其余标记为疑似重复；输出保持原顺序。"""
        first: Dict[str, int] = {}
        for rec in sorted(records, key=lambda r: r.row_id):
            if rec.entity_id is not None and rec.entity_id not in first:
                first[rec.entity_id] = rec.row_id

        out: List[ResolvedRecord] = []
        n_dup = 0
        for rec in records:
            eid = rec.entity_id
            if eid is None or first[eid] == rec.row_id:
                out.append(rec)
                continue
            n_dup += 1
            out.append(replace(
                rec,
                review=True,
                reasons=rec.reasons + (Condition.DUPLICATE.value,),
                duplicate_of=first[eid],
            ))
        if n_dup:
            logger.info("Flagged %d duplicate rows for review", n_dup)
        return out
