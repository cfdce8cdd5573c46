from __future__ import annotations
import json
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

# 主名 -> 别名列表，与 alias_*.json 文件格式一致
SUFFIX_ALIASES: Dict[str, List[str]] = {
    "Alley": ["Aly"],
    "Avenue": ["Ave", "Av", "Aven", "Avn"],
    "Boulevard": ["Blvd", "Boul"],
    "Circle": ["Cir", "Circ"],
    "Court": ["Ct"],
    "Crossing": ["Xing"],
    "Drive": ["Dr", "Drv"],
    "Expressway": ["Expy"],
    "Freeway": ["Fwy"],
    "Highway": ["Hwy"],
    "Lane": ["Ln"],
    "Loop": ["Lp"],
    "Parkway": ["Pkwy", "Pky"],
    "Place": ["Pl"],
    "Plaza": ["Plz"],
    "Road": ["Rd"],
    "Square": ["Sq"],
    "Street": ["St", "Str", "Strt"],
    "Terrace": ["Ter", "Terr"],
    "Trail": ["Trl"],
    "Way": ["Wy"],
}

DIRECTIONAL_ALIASES: Dict[str, List[str]] = {
    "North": ["N"],
    "South": ["S"],
    "East": ["E"],
    "West": ["W"],
    "Northeast": ["NE"],
    "Northwest": ["NW"],
    "Southeast": ["SE"],
    "Southwest": ["SW"],
}

UNIT_ALIASES: Dict[str, List[str]] = {
    "Apartment": ["Apt"],
    "Building": ["Bldg"],
    "Department": ["Dept"],
    "Floor": ["Fl", "Flr"],
    "Lot": [],
    "Office": ["Ofc"],
    "Penthouse": ["Ph"],
    "Room": ["Rm"],
    "Space": ["Spc"],
    "Suite": ["Ste"],
    "Trailer": ["Trlr"],
    "Unit": [],
    "#": [],
}

STATE_ALIASES: Dict[str, List[str]] = {
    "AL": ["Alabama"], "AK": ["Alaska"], "AZ": ["Arizona"], "AR": ["Arkansas"],
    "CA": ["California"], "CO": ["Colorado"], "CT": ["Connecticut"], "DE": ["Delaware"],
    "DC": [], "FL": ["Florida"], "GA": ["Georgia"], "HI": ["Hawaii"], "ID": ["Idaho"],
    "IL": ["Illinois"], "IN": ["Indiana"], "IA": ["Iowa"], "KS": ["Kansas"],
    "KY": ["Kentucky"], "LA": ["Louisiana"], "ME": ["Maine"], "MD": ["Maryland"],
    "MA": ["Massachusetts"], "MI": ["Michigan"], "MN": ["Minnesota"], "MS": ["Mississippi"],
    "MO": ["Missouri"], "MT": ["Montana"], "NE": ["Nebraska"], "NV": ["Nevada"],
    "NH": [], "NJ": [], "NM": [], "NY": [], "NC": [], "ND": [],
    "OH": ["Ohio"], "OK": ["Oklahoma"], "OR": ["Oregon"], "PA": ["Pennsylvania"],
    "RI": [], "SC": [], "SD": [], "TN": ["Tennessee"], "TX": ["Texas"], "UT": ["Utah"],
    "VT": ["Vermont"], "VA": ["Virginia"], "WA": ["Washington"], "WV": [],
    "WI": ["Wisconsin"], "WY": ["Wyoming"],
}

TABLE_NAMES = ("suffix", "directional", "unit", "state")


def load_alias_map(path: str | Path) -> Dict[str, List[str]]:
    p = Path(path)
    return json.loads(p.read_text(encoding="utf-8"))


def build_reverse_alias_map(canonical_to_aliases: Mapping[str, List[str]]) -> Dict[str, str]:
    """
    Return: alias -> canonical（键为去掉句点与空白的大写形式）
    """
    rev: Dict[str, str] = {}
    for canon, aliases in canonical_to_aliases.items():
        rev[table_key(canon)] = canon
        for a in aliases:
            rev[table_key(a)] = canon
    return rev


def table_key(s: Optional[str]) -> str:
    return "".join((s or "").replace(".", "").upper().split())


@dataclass(frozen=True)
class AddressTables:
    """缩写/规范化词表。构建一次后只读，按引用传给词法、语法与索引。"""
    suffixes: Mapping[str, str]
    directionals: Mapping[str, str]
    units: Mapping[str, str]
    states: Mapping[str, str]

    @classmethod
    def from_alias_maps(cls, suffix: Mapping[str, List[str]], directional: Mapping[str, List[str]],
                        unit: Mapping[str, List[str]], state: Mapping[str, List[str]]) -> "AddressTables":
        return cls(
            suffixes=MappingProxyType(build_reverse_alias_map(suffix)),
            directionals=MappingProxyType(build_reverse_alias_map(directional)),
            units=MappingProxyType(build_reverse_alias_map(unit)),
            states=MappingProxyType(build_reverse_alias_map(state)),
        )

    def is_suffix(self, text: Optional[str]) -> bool:
        return table_key(text) in self.suffixes

    def is_directional(self, text: Optional[str]) -> bool:
        return table_key(text) in self.directionals

    def is_unit(self, text: Optional[str]) -> bool:
        # "#" 去掉句点后仍是 "#"
        return table_key(text) in self.units

    def is_state(self, text: Optional[str]) -> bool:
        return table_key(text) in self.states

    def canonical_suffix(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        return self.suffixes.get(table_key(text), text)

    def canonical_directional(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        return self.directionals.get(table_key(text), text)

    def canonical_unit(self, text: Optional[str]) -> Optional[str]:
        if not text:
            return None
        return self.units.get(table_key(text), text)


def default_tables() -> AddressTables:
    return AddressTables.from_alias_maps(SUFFIX_ALIASES, DIRECTIONAL_ALIASES, UNIT_ALIASES, STATE_ALIASES)


def load_tables(data_dir: str | Path | None = None) -> AddressTables:
    """在内置词表上叠加 data_dir 下的 alias_<name>.json（主名 -> 别名列表）。"""
    maps = {
        "suffix": dict(SUFFIX_ALIASES),
        "directional": dict(DIRECTIONAL_ALIASES),
        "unit": dict(UNIT_ALIASES),
        "state": dict(STATE_ALIASES),
    }
    if data_dir is not None:
        for name in TABLE_NAMES:
            p = Path(data_dir) / f"alias_{name}.json"
            if p.exists():
                for canon, aliases in load_alias_map(p).items():
                    maps[name][canon] = list(maps[name].get(canon, [])) + list(aliases)
    return AddressTables.from_alias_maps(maps["suffix"], maps["directional"], maps["unit"], maps["state"])
