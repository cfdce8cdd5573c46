from __future__ import annotations
import json
import logging
import os
from pathlib import Path

from tqdm import tqdm

from address_match.base_data import load_tables
from address_match.config import apply_env_overrides, load_config
from address_match.datasets import (
    read_table,
    records_from_frame,
    reference_from_frame,
    write_geojson,
    write_results,
    write_shapefile,
)
from address_match.pipeline import AddressMatchPipeline, summarize

import dotenv
dotenv.load_dotenv()


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root = Path(__file__).resolve().parent
    data_dir = root / "data"
    cfg = apply_env_overrides(load_config(data_dir / "config.default.json"))
    tables = load_tables(root / cfg.tables_dir if cfg.tables_dir else None)

    entities = reference_from_frame(read_table(root / cfg.reference_path), cfg.reference_columns, tables)
    records = records_from_frame(read_table(root / cfg.input_path), cfg.id_column)

    with tqdm(total=len(records), unit="rec") as bar:
        def progress(done: int, total: int) -> None:
            bar.update(done - bar.n)

        pipe = AddressMatchPipeline.from_entities(cfg, entities, tables, progress=progress)
        results = pipe.run(records)

    out_dir = root / cfg.output_dir
    write_results(results, out_dir / "matches.csv")
    write_results(results, out_dir / "matches.xlsx")
    write_geojson(results, out_dir / "matches.geojson")
    if os.getenv("ADDRESS_MATCH_SHAPEFILE"):
        # 需要 geo 可选依赖
        write_shapefile(results, out_dir / "shp" / "matches.shp")
    print("Pipeline finished:", json.dumps(summarize(results), ensure_ascii=False))
    print("Results written to:", str(out_dir))


if __name__ == "__main__":
    main()
