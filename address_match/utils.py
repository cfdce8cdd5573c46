from __future__ import annotations
import json
import re
from dataclasses import asdict, is_dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, List, Optional, Sequence, Tuple, TypeVar

from rapidfuzz.distance import Levenshtein

T = TypeVar("T")


def normalize_text(text: Optional[str]) -> str:
    """清洗和标准化文本：去句点、压缩空白、转小写"""
    if text is None:
        return ""
    t = text.strip()

    # 全角数字转半角数字
    t = t.translate(str.maketrans("０１２３４５６７８９", "0123456789"))

    t = t.replace(".", "")
    t = re.sub(r"\s+", " ", t)
    return t.lower().strip()


def collapse_ws(text: Optional[str]) -> str:
    return " ".join((text or "").split())


def similarity(a: Optional[str], b: Optional[str]) -> float:
    """基于编辑距离的归一化相似度，两边都为空视为完全一致。"""
    a = normalize_text(a)
    b = normalize_text(b)
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return float(Levenshtein.normalized_similarity(a, b))


def natural_key(value: str) -> Tuple[int, Any]:
    # 纯数字 id 按数值排序并排在字符串 id 之前
    s = str(value)
    if s.isdecimal():
        return (0, int(s))
    return (1, s)


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    for i in range(0, len(items), size):
        yield list(items[i:i + size])


class EnhancedJSONEncoder(json.JSONEncoder):
    def default(self, obj: Any) -> Any:
        if is_dataclass(obj):
            return asdict(obj)
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, MappingProxyType):
            return dict(obj)
        if isinstance(obj, tuple):
            return list(obj)  # 将 tuple 转为 list
        return super().default(obj)
