from __future__ import annotations
import re
from typing import Iterator, Optional

from .base_data import AddressTables, default_tables
from .models import Token, TokenKind

# 每个字符都落在某个 token 内：空白/逗号分号为分隔符，"#4" 中的 # 单独切出
_TOKEN_RE = re.compile(r"(?P<sep>\s+|[,;])|(?P<hash>#(?=[0-9A-Za-z]))|(?P<frag>[^\s,;]+)")

_NUMBER_RE = re.compile(r"^\d+(?:-\d+)?$")
_FRACTION_RE = re.compile(r"^\d+/\d+$")
_WORD_RE = re.compile(r"^[A-Za-z0-9.'&-]*[A-Za-z0-9][A-Za-z0-9.'&-]*$")


class Lexer:
    def __init__(self, tables: Optional[AddressTables] = None):
        self.tables = tables or default_tables()

    def tokenize(self, raw: Optional[str]) -> Iterator[Token]:
        """惰性切分；每次调用都从头开始，不保留状态。"""
        text = raw or ""
        for m in _TOKEN_RE.finditer(text):
            kind = self.classify(m.group(0), m.lastgroup)
            yield Token(kind, m.group(0), m.start(), m.end())

    def classify(self, frag: str, group: Optional[str] = "frag") -> TokenKind:
        if group == "sep":
            return TokenKind.SEPARATOR
        if group == "hash":
            return TokenKind.UNIT
        if _NUMBER_RE.match(frag):
            return TokenKind.NUMBER
        if _FRACTION_RE.match(frag):
            return TokenKind.FRACTION
        if self.tables.is_directional(frag):
            return TokenKind.DIRECTIONAL
        if self.tables.is_unit(frag):
            return TokenKind.UNIT
        if _WORD_RE.match(frag):
            return TokenKind.WORD
        return TokenKind.UNKNOWN


def tokenize(raw: Optional[str], tables: Optional[AddressTables] = None) -> Iterator[Token]:
    return Lexer(tables).tokenize(raw)
