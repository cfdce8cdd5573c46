from __future__ import annotations
import logging
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional, Sequence

from .config import Config
from .models import RawRecord, ResolvedRecord
from .pipeline import AddressMatchPipeline
from .reference import ReferenceIndex

logger = logging.getLogger(__name__)


def evaluate_results(results: Sequence[ResolvedRecord], labels: Mapping[int, Optional[str]]) -> Dict[str, Any]:
    """labels: row_id -> 期望实体 id（None 表示不应匹配）"""
    tp = fp = tn = fn = 0
    n_review = 0
    for r in results:
        if r.row_id not in labels:
            continue
        y = labels[r.row_id]
        pred = r.entity_id
        if r.review:
            n_review += 1
        if pred is not None and pred == y: tp += 1
        elif pred is not None: fp += 1
        elif y is None: tn += 1
        else: fn += 1

    n = tp + fp + tn + fn
    prec = tp / (tp + fp) if (tp + fp) else 0.0
    rec = tp / (tp + fn) if (tp + fn) else 0.0
    f1 = (2 * prec * rec / (prec + rec)) if (prec + rec) else 0.0
    return {"tp": tp, "fp": fp, "tn": tn, "fn": fn, "precision": prec, "recall": rec, "f1": f1,
            "review_rate": n_review / n if n else 0.0}


def evaluate_current(records: Sequence[RawRecord], index: ReferenceIndex,
                     labels: Mapping[int, Optional[str]], cfg: Config) -> Dict[str, Any]:
    pipe = AddressMatchPipeline(cfg, index)
    return evaluate_results(pipe.run(records), labels)


def grid_search(records: Sequence[RawRecord], index: ReferenceIndex,
                labels: Mapping[int, Optional[str]], cfg: Config) -> Dict[str, Any]:
    base_w = dict(cfg.weights)
    fuzzy_grid = [0.5, 0.6, 0.7, 0.8, 0.9]
    w_scales = [
        {"street_name": 1.0, "suffix": 1.0, "unit": 1.0},
        {"street_name": 1.2, "suffix": 1.0, "unit": 1.0},
        {"street_name": 1.0, "suffix": 0.5, "unit": 1.0},
        {"street_name": 1.0, "suffix": 1.0, "unit": 2.0},
        {"street_name": 1.2, "suffix": 0.8, "unit": 1.5},
    ]

    best: Dict[str, Any] = {"f1": -1.0}
    for th_fuzzy in fuzzy_grid:
        for scale in w_scales:
            w = dict(base_w)
            for k, s in scale.items():
                if k in w:
                    w[k] = float(w[k]) * float(s)

            cfg2 = replace(cfg, weights=w, thresholds={**cfg.thresholds, "fuzzy": th_fuzzy})
            metrics = evaluate_current(records, index, labels, cfg2)
            logger.debug("fuzzy=%.2f weights=%s -> f1=%.4f", th_fuzzy, w, metrics["f1"])
            if metrics["f1"] > best["f1"]:
                best = {**metrics, "thresholds": cfg2.thresholds, "weights": cfg2.weights}
    return best
