from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .base_data import AddressTables, default_tables
from .lexer import Lexer
from .models import ParseConfidence, ParsedAddress, Token, TokenKind
from .utils import collapse_ws

"""
地址文法解析
按优先级排列的产生式列表，每个产生式由若干类型化的槽位组成；
每个槽位是一个纯函数：(tokens, tables) -> (匹配结果或 None, 剩余 tokens)。
所有产生式都会尝试：认领非分隔符 token 最多者胜出；
数量相同时未命中的可选槽位更少者胜出；仍相同则取靠前的产生式。
"""

_HOUSE_NUMBER_RE = re.compile(r"^\d+[A-Za-z]$")
_UNIT_ID_RE = re.compile(r"^(?:[A-Za-z]?\d+[A-Za-z]?|[A-Za-z])$")
_ZIP_RE = re.compile(r"^\d{5}(?:-\d{4})?$")

Tokens = Sequence[Token]


@dataclass(frozen=True)
class SlotMatch:
    values: Dict[str, str]
    claimed: Tuple[Token, ...]
    noise: Tuple[Token, ...] = ()


SlotFn = Callable[[Tokens, AddressTables], Tuple[Optional[SlotMatch], Tokens]]


@dataclass(frozen=True)
class Slot:
    name: str
    match: SlotFn
    optional: bool = False


@dataclass
class ProductionMatch:
    production: str
    priority: int
    values: Dict[str, str] = field(default_factory=dict)
    claimed: List[Token] = field(default_factory=list)
    noise: List[Token] = field(default_factory=list)
    remaining: Tokens = ()
    unmatched_optional: int = 0

    @property
    def consumed(self) -> int:
        return sum(1 for t in self.claimed if t.kind != TokenKind.SEPARATOR)

    def rank(self) -> Tuple[int, int, int]:
        return (self.consumed, -self.unmatched_optional, -self.priority)


@dataclass(frozen=True)
class Production:
    name: str
    slots: Tuple[Slot, ...]

    def apply(self, tokens: Tokens, tables: AddressTables, priority: int = 0) -> Optional[ProductionMatch]:
        out = ProductionMatch(self.name, priority)
        rest = tokens
        for slot in self.slots:
            m, after = slot.match(rest, tables)
            if m is None:
                if not slot.optional:
                    return None
                out.unmatched_optional += 1
                continue
            out.values.update(m.values)
            out.claimed.extend(m.claimed)
            out.noise.extend(m.noise)
            rest = after
        out.remaining = rest
        return out


# ---------- helpers ----------

def _is_space(t: Token) -> bool:
    return t.kind == TokenKind.SEPARATOR and not t.text.strip()


def _skip(tokens: Tokens, commas: bool = True) -> Tuple[Tuple[Token, ...], Tokens]:
    i = 0
    while i < len(tokens) and tokens[i].kind == TokenKind.SEPARATOR and (commas or _is_space(tokens[i])):
        i += 1
    return tuple(tokens[:i]), tokens[i:]


def _peek(tokens: Tokens, commas: bool = True) -> Optional[Token]:
    _, rest = _skip(tokens, commas)
    return rest[0] if rest else None


def _is_zip(t: Optional[Token]) -> bool:
    return t is not None and t.kind == TokenKind.NUMBER and bool(_ZIP_RE.match(t.text))


def _ends_locality(tokens: Tokens) -> bool:
    # 其后只剩邮编或已到结尾
    nxt = _peek(tokens)
    return nxt is None or _is_zip(nxt)


def _word_run(tokens: Tokens, lead_directional: bool = False) -> List[int]:
    """从 tokens 开头收集连续的 WORD（中间只允许空白），遇到逗号或其他 token 停止。
    lead_directional 时开头的方位词也算作街道名的一部分（"South Temple"、"North St"），
    但其后必须跟着 WORD。
    """
    words: List[int] = []
    for i, t in enumerate(tokens):
        if t.kind == TokenKind.WORD:
            words.append(i)
        elif lead_directional and i == 0 and t.kind == TokenKind.DIRECTIONAL:
            words.append(i)
        elif _is_space(t):
            continue
        else:
            break
    if words and tokens[words[0]].kind == TokenKind.DIRECTIONAL and len(words) < 2:
        return []
    return words


def _text(tokens: Tokens, first: int, last: int) -> str:
    return collapse_ws("".join(t.text for t in tokens[first:last + 1]))


# ---------- slot matchers ----------

def house_number(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    if rest and (rest[0].kind == TokenKind.NUMBER
                 or (rest[0].kind == TokenKind.WORD and _HOUSE_NUMBER_RE.match(rest[0].text))):
        return SlotMatch({"house_number": rest[0].text}, lead + (rest[0],)), rest[1:]
    return None, tokens


def fraction(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    if rest and rest[0].kind == TokenKind.FRACTION:
        return SlotMatch({"fraction": rest[0].text}, lead + (rest[0],)), rest[1:]
    return None, tokens


def _directional(field_name: str, commas: bool = True) -> SlotFn:
    def match(tokens: Tokens, tables: AddressTables):
        lead, rest = _skip(tokens, commas)
        if not rest or rest[0].kind != TokenKind.DIRECTIONAL:
            return None, tokens
        first = rest[0]
        claimed = list(lead) + [first]
        noise: List[Token] = []
        rest = rest[1:]
        # 连续重复的同一方位词只取第一个，其余记为噪声；不同的方位词留给街道名
        canon = tables.canonical_directional(first.text)
        while True:
            gap, after = _skip(rest, commas=False)
            if not after or after[0].kind != TokenKind.DIRECTIONAL:
                break
            if tables.canonical_directional(after[0].text) != canon:
                break
            if tables.is_state(after[0].text) and _ends_locality(after[1:]):
                break
            claimed.extend(gap)
            noise.append(after[0])
            rest = after[1:]
        return SlotMatch({field_name: first.text}, tuple(claimed), tuple(noise)), rest
    return match


def street_name(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    words = _word_run(rest, lead_directional=True)
    if not words:
        return None, tokens
    texts = [rest[i].text for i in words]
    suffixes = [j for j in range(1, len(words)) if tables.is_suffix(texts[j])]
    if suffixes and suffixes[-1] == len(words) - 1:
        cut = len(words) - 1
    elif suffixes:
        cut = suffixes[0]
    else:
        cut = len(words)
        if cut >= 2 and tables.is_state(texts[-1]) and _ends_locality(rest[words[-1] + 1:]):
            cut -= 1
    last = words[cut - 1]
    value = _text(rest, words[0], last)
    return SlotMatch({"street_name": value}, lead + tuple(rest[:last + 1])), rest[last + 1:]


def directional_street(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    if rest and rest[0].kind == TokenKind.DIRECTIONAL:
        return SlotMatch({"street_name": rest[0].text}, lead + (rest[0],)), rest[1:]
    return None, tokens


def street_suffix(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens, commas=False)
    if rest and rest[0].kind == TokenKind.WORD and tables.is_suffix(rest[0].text):
        return SlotMatch({"street_suffix": rest[0].text}, lead + (rest[0],)), rest[1:]
    return None, tokens


def unit(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    if not rest or rest[0].kind != TokenKind.UNIT:
        return None, tokens
    designator = rest[0]
    if tables.is_state(designator.text) and _ends_locality(rest[1:]):
        # "Miami FL 33101" 中的 FL 是州
        return None, tokens
    values = {"unit_type": designator.text}
    claimed = lead + (designator,)
    gap, after = _skip(rest[1:], commas=False)
    if after:
        t = after[0]
        if t.kind == TokenKind.NUMBER \
                or (t.kind == TokenKind.WORD and _UNIT_ID_RE.match(t.text)) \
                or (t.kind == TokenKind.DIRECTIONAL and len(t.text) == 1):
            values["unit_number"] = t.text
            return SlotMatch(values, claimed + gap + (t,)), after[1:]
    return SlotMatch(values, claimed), rest[1:]


def city(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    words = _word_run(rest)
    if words and tables.is_state(rest[words[-1]].text) and _ends_locality(rest[words[-1] + 1:]):
        words = words[:-1]
    if not words:
        return None, tokens
    last = words[-1]
    return SlotMatch({"city": _text(rest, words[0], last)}, lead + tuple(rest[:last + 1])), rest[last + 1:]


def state(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    if not rest or not tables.is_state(rest[0].text):
        return None, tokens
    t = rest[0]
    if t.kind == TokenKind.WORD or (t.kind in (TokenKind.UNIT, TokenKind.DIRECTIONAL) and _ends_locality(rest[1:])):
        return SlotMatch({"state": t.text}, lead + (t,)), rest[1:]
    return None, tokens


def postal_code(tokens: Tokens, tables: AddressTables):
    lead, rest = _skip(tokens)
    if rest and _is_zip(rest[0]):
        return SlotMatch({"postal_code": rest[0].text}, lead + (rest[0],)), rest[1:]
    return None, tokens


_LOCALITY = (
    Slot("post_directional", _directional("post_directional", commas=False), optional=True),
    Slot("unit", unit, optional=True),
    Slot("city", city, optional=True),
    Slot("state", state, optional=True),
    Slot("postal_code", postal_code, optional=True),
)

PRODUCTIONS: Tuple[Production, ...] = (
    Production("street_address", (
        Slot("house_number", house_number),
        Slot("fraction", fraction, optional=True),
        Slot("pre_directional", _directional("pre_directional"), optional=True),
        Slot("street_name", street_name),
        Slot("street_suffix", street_suffix, optional=True),
    ) + _LOCALITY),
    Production("directional_street", (
        Slot("house_number", house_number),
        Slot("fraction", fraction, optional=True),
        Slot("street_name", directional_street),
        Slot("street_suffix", street_suffix),
    ) + _LOCALITY),
    Production("street_only", (
        Slot("pre_directional", _directional("pre_directional"), optional=True),
        Slot("street_name", street_name),
        Slot("street_suffix", street_suffix, optional=True),
    ) + _LOCALITY),
    Production("number_only", (
        Slot("house_number", house_number),
        Slot("fraction", fraction, optional=True),
        Slot("unit", unit, optional=True),
    )),
)


def _merge_spans(tokens: Iterable[Token]) -> Tuple[Tuple[int, int], ...]:
    spans: List[List[int]] = []
    for t in sorted(tokens, key=lambda x: x.start):
        if spans and spans[-1][1] == t.start:
            spans[-1][1] = t.end
        else:
            spans.append([t.start, t.end])
    return tuple((s, e) for s, e in spans)


class AddressParser:
    def __init__(self, tables: Optional[AddressTables] = None,
                 productions: Sequence[Production] = PRODUCTIONS):
        self.tables = tables or default_tables()
        self.productions = tuple(productions)
        self.lexer = Lexer(self.tables)

    def parse_text(self, raw: Optional[str]) -> ParsedAddress:
        return self.parse(self.lexer.tokenize(raw))

    def parse(self, tokens: Iterable[Token]) -> ParsedAddress:
        toks = tuple(tokens)
        raw = "".join(t.text for t in toks)

        best: Optional[ProductionMatch] = None
        for priority, production in enumerate(self.productions):
            m = production.apply(toks, self.tables, priority)
            if m is None or m.consumed == 0:
                continue
            if best is None or m.rank() > best.rank():
                best = m

        if best is None:
            # 无任何产生式命中：结构化字段全空，整串作为未解析部分
            return ParsedAddress(
                raw=raw,
                unparsed=collapse_ws(raw),
                unparsed_spans=((0, len(raw)),) if raw else (),
                confidence=ParseConfidence.PARTIAL,
            )

        # 剩余部分两端的分隔符视为已消费（忽略）
        remaining = list(best.remaining)
        edges: List[Token] = []
        while remaining and remaining[0].kind == TokenKind.SEPARATOR:
            edges.append(remaining.pop(0))
        while remaining and remaining[-1].kind == TokenKind.SEPARATOR:
            edges.append(remaining.pop())

        unparsed_tokens = best.noise + remaining
        unparsed_spans = _merge_spans(unparsed_tokens)
        unparsed = " ".join(collapse_ws(raw[s:e]) for s, e in unparsed_spans)
        complete = (
            "house_number" in best.values
            and "street_name" in best.values
            and not any(t.kind != TokenKind.SEPARATOR for t in unparsed_tokens)
        )
        return ParsedAddress(
            raw=raw,
            unparsed=unparsed,
            unparsed_spans=unparsed_spans,
            consumed_spans=_merge_spans(best.claimed + edges),
            confidence=ParseConfidence.COMPLETE if complete else ParseConfidence.PARTIAL,
            production=best.production,
            **best.values,
        )


def parse_address(raw: Optional[str], tables: Optional[AddressTables] = None) -> ParsedAddress:
    return AddressParser(tables).parse_text(raw)
