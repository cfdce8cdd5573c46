from __future__ import annotations
import logging
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .base_data import AddressTables, default_tables
from .errors import IndexUnavailable
from .models import AddressFields, ReferenceEntity
from .utils import collapse_ws, natural_key, normalize_text

logger = logging.getLogger(__name__)

KEY_FIELDS = (
    "house_number", "fraction", "pre_directional", "street_name",
    "street_suffix", "post_directional", "unit_type", "unit_number",
)


def exact_key(a: AddressFields) -> str:
    """门牌号+方位+街道名+后缀+单元，区分大小写，仅压缩空白"""
    return "|".join(collapse_ws(getattr(a, f)) for f in KEY_FIELDS)


def normalize_house_number(number: Optional[str]) -> str:
    n = normalize_text(number)
    # 去掉前导零，"0123" 与 "123" 视为同一门牌
    stripped = n.lstrip("0")
    return stripped if stripped or not n else "0"


def normalized_fields(a: AddressFields, tables: AddressTables) -> Dict[str, str]:
    unit_number = normalize_text(a.unit_number).lstrip("#").strip()
    return {
        "house_number": normalize_house_number(a.house_number),
        "fraction": normalize_text(a.fraction),
        "pre_directional": normalize_text(tables.canonical_directional(a.pre_directional)),
        "street_name": normalize_text(a.street_name),
        "street_suffix": normalize_text(tables.canonical_suffix(a.street_suffix)),
        "post_directional": normalize_text(tables.canonical_directional(a.post_directional)),
        "unit_type": normalize_text(tables.canonical_unit(a.unit_type)),
        "unit_number": unit_number,
    }


def normalized_key(a: AddressFields, tables: AddressTables) -> str:
    nf = normalized_fields(a, tables)
    return "|".join(nf[f] for f in KEY_FIELDS)


class ReferenceIndex:
    """参考地址索引：构建一次，之后只读，多个工作线程可并发查询无需加锁。"""

    def __init__(self, entities: Mapping[str, ReferenceEntity],
                 exact: Mapping[str, FrozenSet[ReferenceEntity]],
                 normalized: Mapping[str, FrozenSet[ReferenceEntity]],
                 by_number: Mapping[str, Tuple[ReferenceEntity, ...]],
                 tables: AddressTables):
        self._entities = entities
        self._exact = exact
        self._normalized = normalized
        self._by_number = by_number
        self.tables = tables

    @classmethod
    def build(cls, entities: Iterable[ReferenceEntity], tables: Optional[AddressTables] = None) -> "ReferenceIndex":
        tables = tables or default_tables()
        by_id: Dict[str, ReferenceEntity] = {}
        exact: Dict[str, Set[ReferenceEntity]] = defaultdict(set)
        normalized: Dict[str, Set[ReferenceEntity]] = defaultdict(set)
        by_number: Dict[str, List[ReferenceEntity]] = defaultdict(list)
        try:
            for ent in entities:
                if not ent.entity_id:
                    raise IndexUnavailable(f"reference entity without id: {ent.address.label()!r}")
                if ent.entity_id in by_id:
                    raise IndexUnavailable(f"duplicate reference entity id: {ent.entity_id}")
                by_id[ent.entity_id] = ent
                number = normalize_house_number(ent.address.house_number)
                if not number:
                    logger.warning("Reference entity %s has no house number; it can never match", ent.entity_id)
                    continue
                exact[exact_key(ent.address)].add(ent)
                normalized[normalized_key(ent.address, tables)].add(ent)
                by_number[number].append(ent)
        except IndexUnavailable:
            raise
        except Exception as exc:
            raise IndexUnavailable(f"failed to build reference index: {exc}") from exc

        if not by_id:
            raise IndexUnavailable("reference dataset is empty")

        logger.info("Reference index built: %d entities, %d house numbers", len(by_id), len(by_number))
        return cls(
            entities=MappingProxyType(by_id),
            exact=MappingProxyType({k: frozenset(v) for k, v in exact.items()}),
            normalized=MappingProxyType({k: frozenset(v) for k, v in normalized.items()}),
            by_number=MappingProxyType({
                k: tuple(sorted(v, key=lambda e: natural_key(e.entity_id))) for k, v in by_number.items()
            }),
            tables=tables,
        )

    def exact_lookup(self, key: str) -> FrozenSet[ReferenceEntity]:
        return self._exact.get(key, frozenset())

    def normalized_lookup(self, key: str) -> FrozenSet[ReferenceEntity]:
        return self._normalized.get(key, frozenset())

    def by_house_number(self, number: Optional[str]) -> Tuple[ReferenceEntity, ...]:
        return self._by_number.get(normalize_house_number(number), ())

    def get(self, entity_id: str) -> Optional[ReferenceEntity]:
        return self._entities.get(entity_id)

    def __len__(self) -> int:
        return len(self._entities)

    def __iter__(self) -> Iterator[ReferenceEntity]:
        return iter(self._entities.values())

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._entities
