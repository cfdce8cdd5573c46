from __future__ import annotations
import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence

from .base_data import AddressTables
from .config import Config
from .errors import Condition, IndexUnavailable
from .grammar import AddressParser
from .matcher import Matcher
from .models import ParsedAddress, RawRecord, ReferenceEntity, ResolvedRecord
from .reference import ReferenceIndex
from .resolution import Resolver
from .scoring import Scorer
from .utils import chunked

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class AddressMatchPipeline:
    """地址匹配主流程：解析 -> 索引比对 -> 消歧 -> 全局去重。"""

    def __init__(self, cfg: Config, index: Optional[ReferenceIndex],
                 progress: Optional[ProgressCallback] = None):
        if index is None or len(index) == 0:
            raise IndexUnavailable("reference index is missing or empty")
        self.cfg = cfg
        self.index = index
        self.progress = progress

        self.parser = AddressParser(index.tables)
        self.scorer = Scorer(cfg.weights, cfg.thresholds)
        self.matcher = Matcher(index, self.scorer, cfg.tier_scores)
        self.resolver = Resolver(index)

    @classmethod
    def from_entities(cls, cfg: Config, entities: Iterable[ReferenceEntity],
                      tables: Optional[AddressTables] = None,
                      progress: Optional[ProgressCallback] = None) -> "AddressMatchPipeline":
        return cls(cfg, ReferenceIndex.build(entities, tables), progress)

    def run(self, records: Sequence[RawRecord]) -> List[ResolvedRecord]:
        ids = [r.row_id for r in records]
        if len(set(ids)) != len(ids):
            dupes = sorted(k for k, v in Counter(ids).items() if v > 1)
            raise ValueError(f"duplicate source row ids: {dupes[:10]}")

        total = len(records)
        chunks = list(chunked(records, self.cfg.chunk_size))
        logger.info("Matching %d records in %d chunks with %d workers", total, len(chunks), self.cfg.workers)

        results: List[ResolvedRecord] = []
        done = 0
        if self.cfg.workers <= 1 or len(chunks) <= 1:
            for chunk in chunks:
                results.extend(self.run_chunk(chunk))
                done += len(chunk)
                self._report(done, total)
        else:
            with ThreadPoolExecutor(max_workers=self.cfg.workers) as executor:
                futures = {executor.submit(self.run_chunk, chunk): len(chunk) for chunk in chunks}
                for f in as_completed(futures):
                    results.extend(f.result())
                    done += futures[f]
                    self._report(done, total)

        # 按行号重组后再做全局去重
        results.sort(key=lambda r: r.row_id)
        results = self.resolver.dedup(results)
        logger.info("Run finished: %s", summarize(results))
        return results

    def run_chunk(self, chunk: Sequence[RawRecord]) -> List[ResolvedRecord]:
        return [self.process_record(rec) for rec in chunk]

    def process_record(self, rec: RawRecord) -> ResolvedRecord:
        parsed: Optional[ParsedAddress] = None
        try:
            parsed = self.parser.parse_text(self.address_text(rec))
            cands = self.matcher.match(parsed, rec.row_id)
            return self.resolver.resolve(rec.row_id, cands, parsed=parsed, record=rec)
        except Exception:
            # 单条记录失败只降级为待复核，不中断整批
            logger.exception("Failed to process row %s", rec.row_id)
            return self.resolver.failed(rec.row_id, record=rec, parsed=parsed)

    def address_text(self, rec: RawRecord) -> str:
        parts = [rec.get(col).strip() for col in self.cfg.address_columns]
        return ", ".join(p for p in parts if p)

    def match_address(self, text: str) -> Dict[str, Any]:
        """对单条地址文本执行与 run 相同的解析 + 比对 + 消歧逻辑。"""
        parsed = self.parser.parse_text(text)
        cands = self.matcher.match(parsed, row_id=0)
        resolved = self.resolver.resolve(0, cands, parsed=parsed)
        entity = resolved.entity
        return {
            "parsed": parsed_to_dict(parsed),
            "candidates": [
                {"entity_id": c.entity_id, "score": c.score, "tier": c.tier.value} for c in cands
            ],
            "entity_id": resolved.entity_id,
            "address": entity.address.label() if entity else None,
            "lat": entity.lat if entity else None,
            "lon": entity.lon if entity else None,
            "tier": resolved.tier.value,
            "score": resolved.score,
            "review": resolved.review,
            "reasons": list(resolved.reasons),
        }

    def _report(self, done: int, total: int) -> None:
        if self.progress is not None:
            self.progress(done, total)


def parsed_to_dict(parsed: ParsedAddress) -> Dict[str, Any]:
    out = asdict(parsed)
    out["confidence"] = parsed.confidence.value
    out["unparsed_spans"] = [list(s) for s in parsed.unparsed_spans]
    out["consumed_spans"] = [list(s) for s in parsed.consumed_spans]
    return out


def summarize(results: Sequence[ResolvedRecord]) -> Dict[str, Any]:
    tiers = Counter(r.tier.value for r in results)
    return {
        "n_records": len(results),
        "tiers": dict(sorted(tiers.items())),
        "n_review": sum(1 for r in results if r.review),
        "n_duplicates": sum(1 for r in results if Condition.DUPLICATE.value in r.reasons),
        "n_errors": sum(1 for r in results if Condition.PROCESSING_ERROR.value in r.reasons),
    }
