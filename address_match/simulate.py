from __future__ import annotations
import random
from typing import Dict, List, Optional, Tuple

from .base_data import DIRECTIONAL_ALIASES, SUFFIX_ALIASES
from .models import AddressFields, RawRecord, ReferenceEntity


"""
地址数据合成器
核心功能
1. 生成参考地址实体（seed_reference_entities()）
    门牌号、方位、街道名、后缀（全称）、单元、城市、州、邮编、坐标
    同一门牌号下会出现多个单元，模拟公寓楼

2. 生成带噪声的输入记录（generate_raw_records()）
    为每个实体生成 variants_per_entity 种文本变体：
        后缀缩写/全称："Street" / "St" / "St."
        方位词缩写/全称/丢失："N" / "North" / ""
        单元写法："Apt 4" / "#4" / "Apartment 4"
        大小写变化、单字符错别字、附带城市州邮编
    另外注入少量无法匹配的地址（门牌号不存在）与乱码行

3. 生成标签：row_id -> 期望的实体 id（无法匹配的为 None）
"""

STREETS = ["Main", "Oak", "Maple", "Cedar", "Washington", "Lincoln", "Park", "Hillcrest", "Riverside", "Elm"]
SUFFIXES = ["Street", "Avenue", "Drive", "Lane", "Court", "Boulevard", "Road", "Way"]
DIRECTIONALS = ["North", "South", "East", "West", None, None]
CITIES = [("Grants Pass", "OR", "97526"), ("Medford", "OR", "97501"), ("Ashland", "OR", "97520")]


def seed_reference_entities(n_entities: int = 40, seed: int = 7) -> List[ReferenceEntity]:
    rng = random.Random(seed)
    base_lat, base_lon = 42.4390, -123.3284

    out: List[ReferenceEntity] = []
    used = set()
    eid = 0
    while len(out) < n_entities:
        number = str(rng.randint(100, 2999))
        street = rng.choice(STREETS)
        suffix = rng.choice(SUFFIXES)
        directional = rng.choice(DIRECTIONALS)
        if (number, street, suffix, directional) in used:
            continue
        used.add((number, street, suffix, directional))
        city, state, zipcode = rng.choice(CITIES)
        units: List[Optional[str]] = [None]
        if rng.random() < 0.25:
            units = [str(u) for u in range(1, rng.randint(2, 4) + 1)]
        for u in units:
            eid += 1
            out.append(ReferenceEntity(
                entity_id=str(eid),
                address=AddressFields(
                    house_number=number,
                    pre_directional=directional,
                    street_name=street,
                    street_suffix=suffix,
                    unit_type="Apt" if u else None,
                    unit_number=u,
                    city=city,
                    state=state,
                    postal_code=zipcode,
                ),
                lat=round(base_lat + rng.uniform(-0.02, 0.02), 6),
                lon=round(base_lon + rng.uniform(-0.02, 0.02), 6),
            ))
    return out[:n_entities]


def _typo(rng: random.Random, word: str) -> str:
    if len(word) < 5:
        return word
    i = rng.randint(1, len(word) - 2)
    return word[:i] + word[i + 1] + word[i] + word[i + 2:]


def variant_text(rng: random.Random, a: AddressFields) -> str:
    suffix = a.street_suffix or ""
    suffix_style = rng.choice([suffix, SUFFIX_ALIASES.get(suffix, [suffix])[0], SUFFIX_ALIASES.get(suffix, [suffix])[0] + "."])
    directional = a.pre_directional or ""
    dir_style = rng.choice([directional, DIRECTIONAL_ALIASES.get(directional, [directional])[0], ""]) if directional else ""
    street = a.street_name or ""
    if rng.random() < 0.15:
        street = _typo(rng, street)
    unit = ""
    if a.unit_number:
        unit = rng.choice([f"Apt {a.unit_number}", f"#{a.unit_number}", f"Apartment {a.unit_number}"])
    parts = [a.house_number, dir_style, street, suffix_style, unit]
    text = " ".join(p for p in parts if p)
    if rng.random() < 0.5:
        text = f"{text}, {a.city}, {a.state} {a.postal_code}"
    case = rng.random()
    if case < 0.2:
        text = text.upper()
    elif case < 0.3:
        text = text.lower()
    return text


def generate_raw_records(entities: List[ReferenceEntity], variants_per_entity: int = 2, n_unmatched: int = 3,
                         seed: int = 7, address_column: str = "address") -> Tuple[List[RawRecord], Dict[int, Optional[str]]]:
    rng = random.Random(seed)
    records: List[RawRecord] = []
    labels: Dict[int, Optional[str]] = {}
    row_id = 0

    for ent in entities:
        for _ in range(variants_per_entity):
            row_id += 1
            raw = variant_text(rng, ent.address)
            records.append(RawRecord.from_mapping(row_id, {address_column: raw, "source": rng.choice(["crm", "survey", "manual"])}))
            labels[row_id] = ent.entity_id

    numbers = {e.address.house_number for e in entities}
    for i in range(n_unmatched):
        row_id += 1
        number = str(rng.randint(5000, 9999))
        while number in numbers:
            number = str(rng.randint(5000, 9999))
        raw = f"{number} {rng.choice(STREETS)} {rng.choice(['Ln', 'Pl', 'Cir'])}" if i % 2 == 0 else "###@@@"
        records.append(RawRecord.from_mapping(row_id, {address_column: raw, "source": "noise"}))
        labels[row_id] = None

    rng.shuffle(records)
    # 打乱后重新编号，使行号与输入顺序一致
    renumbered: List[RawRecord] = []
    relabeled: Dict[int, Optional[str]] = {}
    for new_id, rec in enumerate(records, start=1):
        relabeled[new_id] = labels[rec.row_id]
        renumbered.append(RawRecord.from_mapping(new_id, rec.values))
    return renumbered, relabeled
