from __future__ import annotations
import json
from pathlib import Path

import pandas as pd

from address_match.config import load_config
from address_match.simulate import generate_raw_records, seed_reference_entities

"""
仿真数据初始化脚本：生成参考地址表与带噪声的输入记录，便于快速搭建可复用的测试环境。
1) 加载 config.default.json，确定参考表/输入表路径；
2) 生成参考实体（含坐标），写入 reference_path；
3) 为每个实体生成若干文本变体并混入无法匹配的记录，写入 input_path；
4) 标签（row_id -> 期望实体 id）写入 data/labels.json，供 cli_eval 使用。
"""


def main():
    root = Path(__file__).resolve().parent
    data_dir = root / "data"
    cfg = load_config(data_dir / "config.default.json")
    col = cfg.address_columns[0]

    entities = seed_reference_entities(n_entities=40, seed=7)
    records, labels = generate_raw_records(entities, variants_per_entity=2, n_unmatched=4, seed=7,
                                           address_column=col)

    ref_rows = [{"entity_id": e.entity_id, **e.address.as_dict(), "lat": e.lat, "lon": e.lon} for e in entities]
    ref_path = root / cfg.reference_path
    ref_path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(ref_rows).to_csv(ref_path, index=False)

    in_path = root / cfg.input_path
    pd.DataFrame([dict(r.values) for r in records]).to_csv(in_path, index=False)

    labels_path = data_dir / "labels.json"
    labels_path.write_text(json.dumps({str(k): v for k, v in labels.items()}, indent=2), encoding="utf-8")

    print(f"Reference entities: {len(entities)} -> {ref_path}")
    print(f"Input records: {len(records)} -> {in_path}")
    print(f"Labels: {labels_path}")
    print("Next: python cli_run.py")


if __name__ == "__main__":
    main()
