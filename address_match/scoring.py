from __future__ import annotations
from typing import Dict, Tuple

from .base_data import AddressTables
from .models import AddressFields
from .reference import normalized_fields
from .utils import similarity


class Scorer:
    """模糊打分：街道名/后缀/单元三项编辑距离相似度加权，按权重和归一化到 [0, 1]。"""

    def __init__(self, weights: Dict[str, float], thresholds: Dict[str, float]):
        self.w = weights
        self.th = thresholds

    @property
    def threshold(self) -> float:
        return float(self.th.get("fuzzy", 0.6))

    def score_pair(self, query: AddressFields, ref: AddressFields,
                   tables: AddressTables) -> Tuple[float, Dict[str, float]]:
        q = normalized_fields(query, tables)
        r = normalized_fields(ref, tables)
        fs: Dict[str, float] = {}
        fs["street_name"] = similarity(q["street_name"], r["street_name"])
        fs["suffix"] = similarity(q["street_suffix"], r["street_suffix"])
        fs["unit"] = similarity(_unit(q), _unit(r))

        denom = sum(max(0.0, float(v)) for v in self.w.values()) or 1.0
        num = 0.0
        for k, w in self.w.items():
            num += float(w) * float(fs.get(k, 0.0))
        # 固定精度，保证同分候选严格相等
        return round(num / denom, 6), fs

    def passes(self, score: float) -> bool:
        return score >= self.threshold


def _unit(nf: Dict[str, str]) -> str:
    return " ".join(p for p in (nf["unit_type"], nf["unit_number"]) if p)
