from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple


ADDRESS_FIELDS = (
    "house_number",
    "fraction",
    "pre_directional",
    "street_name",
    "street_suffix",
    "post_directional",
    "unit_type",
    "unit_number",
    "city",
    "state",
    "postal_code",
)


class TokenKind(str, Enum):
    NUMBER = "number"
    FRACTION = "fraction"
    DIRECTIONAL = "directional"
    WORD = "word"
    UNIT = "unit"
    SEPARATOR = "separator"
    UNKNOWN = "unknown"


class Tier(str, Enum):
    EXACT = "exact"
    NORMALIZED = "normalized"
    FUZZY = "fuzzy"
    NONE = "none"


class ParseConfidence(str, Enum):
    COMPLETE = "complete"
    PARTIAL = "partial"


@dataclass(frozen=True)
class RawRecord:
    row_id: int
    values: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, row_id: int, mapping: Mapping[str, Any]) -> "RawRecord":
        # 冻结一份副本，保持列顺序
        values = {str(k): "" if v is None else str(v) for k, v in mapping.items()}
        return cls(row_id=int(row_id), values=MappingProxyType(values))

    def get(self, column: str, default: str = "") -> str:
        return self.values.get(column, default)


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    start: int
    end: int


@dataclass(frozen=True)
class AddressFields:
    house_number: Optional[str] = None
    fraction: Optional[str] = None
    pre_directional: Optional[str] = None
    street_name: Optional[str] = None
    street_suffix: Optional[str] = None
    post_directional: Optional[str] = None
    unit_type: Optional[str] = None
    unit_number: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None

    @property
    def unit(self) -> Optional[str]:
        parts = [p for p in (self.unit_type, self.unit_number) if p]
        return " ".join(parts) if parts else None

    def street_line(self) -> str:
        parts = [
            self.house_number, self.fraction, self.pre_directional, self.street_name,
            self.street_suffix, self.post_directional, self.unit,
        ]
        return " ".join(p for p in parts if p)

    def label(self) -> str:
        """单行地址：'123 N Main Street Apt 4, Springfield, IL 62701'"""
        out = self.street_line()
        if self.city:
            out = f"{out}, {self.city}" if out else self.city
        region = " ".join(p for p in (self.state, self.postal_code) if p)
        if region:
            out = f"{out}, {region}" if out else region
        return out

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in ADDRESS_FIELDS}


@dataclass(frozen=True)
class ParsedAddress(AddressFields):
    raw: str = ""
    unparsed: str = ""
    unparsed_spans: Tuple[Tuple[int, int], ...] = ()
    consumed_spans: Tuple[Tuple[int, int], ...] = ()
    confidence: ParseConfidence = ParseConfidence.PARTIAL
    production: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in ADDRESS_FIELDS)

    @property
    def is_complete(self) -> bool:
        return self.confidence == ParseConfidence.COMPLETE

    def reconstruct(self) -> str:
        spans = sorted(self.consumed_spans + self.unparsed_spans)
        return "".join(self.raw[s:e] for s, e in spans)


@dataclass(frozen=True)
class ReferenceEntity:
    entity_id: str
    address: AddressFields
    lat: Optional[float] = None
    lon: Optional[float] = None

    @property
    def has_coordinate(self) -> bool:
        return self.lat is not None and self.lon is not None


@dataclass(frozen=True)
class MatchCandidate:
    row_id: Optional[int]
    entity_id: str
    score: float
    tier: Tier


@dataclass(frozen=True)
class ResolvedRecord:
    row_id: int
    entity: Optional[ReferenceEntity]
    tier: Tier
    score: float
    review: bool
    reasons: Tuple[str, ...] = ()
    candidate_count: int = 0
    duplicate_of: Optional[int] = None
    parsed: Optional[ParsedAddress] = field(default=None, compare=False)
    record: Optional[RawRecord] = field(default=None, compare=False, repr=False)

    @property
    def entity_id(self) -> Optional[str]:
        return self.entity.entity_id if self.entity else None
