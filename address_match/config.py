from __future__ import annotations
import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import ConfigError

DEFAULT_WEIGHTS = {"street_name": 0.7, "suffix": 0.2, "unit": 0.1}
DEFAULT_THRESHOLDS = {"fuzzy": 0.6}
DEFAULT_TIER_SCORES = {"exact": 1.0, "normalized": 0.85}


@dataclass
class Config:
    reference_path: str = "data/reference.csv"
    input_path: str = "data/records.csv"
    output_dir: str = "output"
    tables_dir: Optional[str] = None
    address_columns: List[str] = field(default_factory=lambda: ["address"])
    id_column: Optional[str] = None
    reference_columns: Dict[str, str] = field(default_factory=dict)
    workers: int = 4
    chunk_size: int = 500
    weights: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    thresholds: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_THRESHOLDS))
    tier_scores: Dict[str, float] = field(default_factory=lambda: dict(DEFAULT_TIER_SCORES))


def load_config(path: str | Path) -> Config:
    p = Path(path)
    raw = json.loads(p.read_text(encoding="utf-8"))
    cfg = Config(
        reference_path=raw.get("reference_path", "data/reference.csv"),
        input_path=raw.get("input_path", "data/records.csv"),
        output_dir=raw.get("output_dir", "output"),
        tables_dir=raw.get("tables_dir"),
        address_columns=list(raw.get("address_columns", ["address"])),
        id_column=raw.get("id_column"),
        reference_columns=dict(raw.get("reference_columns", {})),
        workers=int(raw.get("workers", 4)),
        chunk_size=int(raw.get("chunk_size", 500)),
        weights={**DEFAULT_WEIGHTS, **raw.get("weights", {})},
        thresholds={**DEFAULT_THRESHOLDS, **raw.get("thresholds", {})},
        tier_scores={**DEFAULT_TIER_SCORES, **raw.get("tier_scores", {})},
    )
    validate_config(cfg)
    return cfg


def apply_env_overrides(cfg: Config, env: Optional[Dict[str, str]] = None) -> Config:
    """读取 ADDRESS_MATCH_* 环境变量（通常先由 dotenv 加载 .env）。"""
    env = os.environ if env is None else env
    changes: Dict[str, Any] = {}
    if env.get("ADDRESS_MATCH_WORKERS"):
        changes["workers"] = int(env["ADDRESS_MATCH_WORKERS"])
    if env.get("ADDRESS_MATCH_CHUNK_SIZE"):
        changes["chunk_size"] = int(env["ADDRESS_MATCH_CHUNK_SIZE"])
    if env.get("ADDRESS_MATCH_FUZZY_THRESHOLD"):
        changes["thresholds"] = {**cfg.thresholds, "fuzzy": float(env["ADDRESS_MATCH_FUZZY_THRESHOLD"])}
    if not changes:
        return cfg
    out = replace(cfg, **changes)
    validate_config(out)
    return out


def validate_config(cfg: Config) -> None:
    if cfg.workers < 1:
        raise ConfigError(f"workers must be >= 1, got {cfg.workers}")
    if cfg.chunk_size < 1:
        raise ConfigError(f"chunk_size must be >= 1, got {cfg.chunk_size}")
    if not cfg.address_columns:
        raise ConfigError("address_columns must name at least one column")
    for k, v in cfg.weights.items():
        if float(v) < 0:
            raise ConfigError(f"weight {k} must be non-negative, got {v}")
    if sum(float(v) for v in cfg.weights.values()) <= 0:
        raise ConfigError("weights must not all be zero")
    for name, v in list(cfg.thresholds.items()) + list(cfg.tier_scores.items()):
        if not 0.0 <= float(v) <= 1.0:
            raise ConfigError(f"{name} must be within [0, 1], got {v}")
