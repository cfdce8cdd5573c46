from __future__ import annotations
import json
from pathlib import Path

from address_match.base_data import load_tables
from address_match.config import load_config
from address_match.datasets import read_table, records_from_frame, reference_from_frame
from address_match.evaluate import evaluate_current, grid_search
from address_match.reference import ReferenceIndex


def main():
    root = Path(__file__).resolve().parent
    data_dir = root / "data"
    cfg = load_config(data_dir / "config.default.json")
    tables = load_tables(root / cfg.tables_dir if cfg.tables_dir else None)

    index = ReferenceIndex.build(
        reference_from_frame(read_table(root / cfg.reference_path), cfg.reference_columns, tables), tables)
    records = records_from_frame(read_table(root / cfg.input_path), cfg.id_column)
    raw_labels = json.loads((data_dir / "labels.json").read_text(encoding="utf-8"))
    labels = {int(k): v for k, v in raw_labels.items()}

    cur = evaluate_current(records, index, labels, cfg)
    print("Current config metrics:", json.dumps(cur, ensure_ascii=False, indent=2))

    best = grid_search(records, index, labels, cfg)
    print("Best (grid search):", json.dumps(best, ensure_ascii=False, indent=2))

    raw_cfg = json.loads((data_dir / "config.default.json").read_text(encoding="utf-8"))
    raw_cfg["weights"] = best["weights"]
    raw_cfg["thresholds"] = best["thresholds"]
    out_path = data_dir / "config.best.json"
    out_path.write_text(json.dumps(raw_cfg, ensure_ascii=False, indent=2), encoding="utf-8")
    print("Wrote:", str(out_path))


if __name__ == "__main__":
    main()
