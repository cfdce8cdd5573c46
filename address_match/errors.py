from __future__ import annotations
from enum import Enum


class AddressMatchError(Exception):
    pass


class IndexUnavailable(AddressMatchError):
    """参考地址索引无法构建；在处理任何记录之前终止整次运行。"""


class ConfigError(AddressMatchError, ValueError):
    pass


class Condition(str, Enum):
    """单条记录的提示性状态，写入 ResolvedRecord.reasons，不会中断批处理。"""
    PARSE_INCOMPLETE = "parse_incomplete"
    NO_MATCH = "no_match"
    AMBIGUOUS_MATCH = "ambiguous_match"
    DUPLICATE = "duplicate"
    PROCESSING_ERROR = "processing_error"
