from __future__ import annotations
import json
from typing import List

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from .datasets import results_frame
from .models import RawRecord
from .pipeline import AddressMatchPipeline, parsed_to_dict, summarize


class ParseRequest(BaseModel):
    address: str


class BatchRequest(BaseModel):
    addresses: List[str]


def create_app(pipeline: AddressMatchPipeline) -> FastAPI:
    app = FastAPI(title="Address Match Service")

    @app.get("/health")
    def health():
        return {"status": "ok", "reference_entities": len(pipeline.index)}

    @app.post("/parse")
    def parse_address(payload: ParseRequest):
        return parsed_to_dict(pipeline.parser.parse_text(payload.address))

    @app.post("/match")
    def match_address(payload: ParseRequest):
        address = payload.address.strip()
        if not address:
            raise HTTPException(status_code=400, detail="address must not be empty")
        return pipeline.match_address(address)

    @app.post("/match/batch")
    def match_batch(payload: BatchRequest):
        if not payload.addresses:
            raise HTTPException(status_code=400, detail="addresses must not be empty")
        col = pipeline.cfg.address_columns[0]
        records = [RawRecord.from_mapping(i, {col: a}) for i, a in enumerate(payload.addresses, start=1)]
        results = pipeline.run(records)
        # 借 pandas 的 to_json 处理 NaN 与 numpy 标量
        rows = json.loads(results_frame(results).to_json(orient="records"))
        return {"summary": summarize(results), "results": rows}

    return app
