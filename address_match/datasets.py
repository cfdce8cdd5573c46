from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from .base_data import AddressTables, default_tables
from .lexer import Lexer
from .models import ADDRESS_FIELDS, AddressFields, RawRecord, ReferenceEntity, ResolvedRecord, TokenKind

logger = logging.getLogger(__name__)

"""
表格数据的读写（核心之外的协作者）
读取：CSV / Excel -> RawRecord、ReferenceEntity
导出：结果表（CSV / Excel）、GeoJSON、Shapefile
"""

RESULT_COLUMNS = [
    "row_id", "match_entity_id", "match_tier", "match_score", "review", "reasons",
    "duplicate_of", "candidate_count", "parse_confidence", "unparsed",
    "match_address", "lat", "lon",
]

ENTITY_COLUMNS = ["entity_id", *ADDRESS_FIELDS, "unit", "lat", "lon"]


def read_table(path: str | Path) -> pd.DataFrame:
    p = Path(path)
    if p.suffix.lower() in (".xlsx", ".xlsm", ".xls"):
        df = pd.read_excel(p, dtype=str, keep_default_na=False)
    else:
        df = pd.read_csv(p, dtype=str, keep_default_na=False)
    logger.info("Read %d rows from %s", len(df), p)
    return df


def _clean_value(val: Any) -> Optional[str]:
    if val is None:
        return None
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        pass
    s = str(val).strip()
    return s or None


def records_from_frame(df: pd.DataFrame, id_column: Optional[str] = None) -> List[RawRecord]:
    """无 id 列时按行号 1..n 编号"""
    records: List[RawRecord] = []
    for pos, (_, row) in enumerate(df.iterrows(), start=1):
        values = {str(k): _clean_value(v) or "" for k, v in row.to_dict().items()}
        row_id = int(values[id_column]) if id_column else pos
        records.append(RawRecord.from_mapping(row_id, values))
    return records


def split_unit(text: Optional[str], tables: AddressTables) -> Dict[str, Optional[str]]:
    """把 'Apt 4' / '#4' 这类合并的单元字段拆成 unit_type + unit_number"""
    if not text or not text.strip():
        return {"unit_type": None, "unit_number": None}
    toks = [t for t in Lexer(tables).tokenize(text) if t.kind != TokenKind.SEPARATOR]
    if toks and toks[0].kind == TokenKind.UNIT:
        rest = " ".join(t.text for t in toks[1:])
        return {"unit_type": toks[0].text, "unit_number": rest or None}
    return {"unit_type": None, "unit_number": " ".join(t.text for t in toks) or None}


def reference_from_frame(df: pd.DataFrame, columns: Optional[Mapping[str, str]] = None,
                         tables: Optional[AddressTables] = None) -> List[ReferenceEntity]:
    """columns: 字段名 -> 源列名；未给出的字段按同名列读取。"""
    tables = tables or default_tables()
    colmap = {name: name for name in ENTITY_COLUMNS}
    colmap.update(columns or {})

    out: List[ReferenceEntity] = []
    for _, row in df.iterrows():
        values = {name: _cell(row, colmap, name) for name in ADDRESS_FIELDS}
        if not values["unit_type"] and not values["unit_number"]:
            values.update(split_unit(_cell(row, colmap, "unit"), tables))
        entity_id = _cell(row, colmap, "entity_id") or ""
        out.append(ReferenceEntity(
            entity_id=entity_id,
            address=AddressFields(**values),
            lat=_coordinate(row, colmap, "lat", entity_id),
            lon=_coordinate(row, colmap, "lon", entity_id),
        ))
    return out


def _cell(row: pd.Series, colmap: Mapping[str, str], name: str) -> Optional[str]:
    src = colmap.get(name)
    return _clean_value(row[src]) if src in row.index else None


def _coordinate(row: pd.Series, colmap: Mapping[str, str], name: str, entity_id: str) -> Optional[float]:
    val = _cell(row, colmap, name)
    if val is None:
        return None
    try:
        return float(val)
    except ValueError:
        # 坐标无法识别时按无坐标处理，实体仍可参与匹配
        logger.warning("Reference entity %s: bad %s value %r, treated as missing", entity_id, name, val)
        return None


def results_frame(results: Sequence[ResolvedRecord]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for r in results:
        row: Dict[str, Any] = dict(r.record.values) if r.record is not None else {}
        ent = r.entity
        parsed = r.parsed
        row.update({
            "row_id": r.row_id,
            "match_entity_id": r.entity_id,
            "match_tier": r.tier.value,
            "match_score": r.score,
            "review": r.review,
            "reasons": ";".join(r.reasons),
            "duplicate_of": r.duplicate_of,
            "candidate_count": r.candidate_count,
            "parse_confidence": parsed.confidence.value if parsed else None,
            "unparsed": parsed.unparsed if parsed else None,
            "match_address": ent.address.label() if ent else None,
            "lat": ent.lat if ent else None,
            "lon": ent.lon if ent else None,
        })
        if parsed is not None:
            for name in ADDRESS_FIELDS:
                row[f"parsed_{name}"] = getattr(parsed, name)
        rows.append(row)
    df = pd.DataFrame(rows)
    lead = [c for c in RESULT_COLUMNS if c in df.columns]
    return df[lead + [c for c in df.columns if c not in lead]]


def write_results(results: Sequence[ResolvedRecord], path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df = results_frame(results)
    if p.suffix.lower() in (".xlsx", ".xlsm"):
        with pd.ExcelWriter(p, engine="openpyxl") as writer:
            df.to_excel(writer, sheet_name="results", index=False)
    else:
        df.to_csv(p, index=False)
    logger.info("Wrote %d results to %s", len(df), p)
    return p


def geojson_features(results: Sequence[ResolvedRecord]) -> Dict[str, Any]:
    """只导出已匹配且参考实体带坐标的记录；坐标来自参考数据。"""
    df = results_frame(results)
    features = []
    for r, (_, row) in zip(results, df.iterrows()):
        if r.entity is None or not r.entity.has_coordinate:
            continue
        props = {k: _json_value(v) for k, v in row.to_dict().items() if k not in ("lat", "lon")}
        features.append({
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [r.entity.lon, r.entity.lat]},
            "properties": props,
        })
    return {"type": "FeatureCollection", "features": features}


def write_geojson(results: Sequence[ResolvedRecord], path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fc = geojson_features(results)
    p.write_text(json.dumps(fc, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("Wrote %d features to %s", len(fc["features"]), p)
    return p


def write_shapefile(results: Sequence[ResolvedRecord], path: str | Path) -> Path:
    """需要安装 geo 可选依赖（geopandas）。"""
    import geopandas as gpd

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    fc = geojson_features(results)
    gdf = gpd.GeoDataFrame.from_features(fc["features"], crs="EPSG:4326")
    gdf = gdf[[c for c in gdf.columns if not c.startswith("parsed_")]]
    gdf.columns = _dbf_names(gdf.columns)
    gdf.to_file(p)
    logger.info("Wrote %d features to %s", len(gdf), p)
    return p


def _dbf_names(columns: Sequence[str]) -> List[str]:
    # dBase 字段名最长 10 个字符，截断后重名的加序号
    out: List[str] = []
    for c in columns:
        if c == "geometry":
            out.append(c)
            continue
        name = c[:10]
        n = 1
        while name in out:
            suffix = str(n)
            name = c[:10 - len(suffix)] + suffix
            n += 1
        out.append(name)
    return out


def _json_value(v: Any) -> Any:
    if v is None:
        return None
    try:
        if pd.isna(v):
            return None
    except (TypeError, ValueError):
        pass
    if hasattr(v, "item"):
        return v.item()
    return v
