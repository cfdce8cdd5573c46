from __future__ import annotations
import logging
import os
from pathlib import Path
import dotenv
dotenv.load_dotenv()

from address_match.base_data import load_tables
from address_match.config import apply_env_overrides, load_config
from address_match.datasets import read_table, reference_from_frame
from address_match.pipeline import AddressMatchPipeline
from address_match.service import create_app

ROOT = Path(__file__).resolve().parent
DATA_DIR = ROOT / "data"

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))

cfg = apply_env_overrides(load_config(DATA_DIR / "config.default.json"))
tables = load_tables(ROOT / cfg.tables_dir if cfg.tables_dir else None)
entities = reference_from_frame(read_table(ROOT / cfg.reference_path), cfg.reference_columns, tables)
pipeline = AddressMatchPipeline.from_entities(cfg, entities, tables)

app = create_app(pipeline)


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("APP_HOST", "0.0.0.0")
    port = int(os.getenv("APP_PORT", "8008"))
    uvicorn.run(app, host=host, port=port)
