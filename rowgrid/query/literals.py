"""
Coercion: текстовые значения из UI -> типизированные литералы.

Значение фильтра всегда приходит строкой; здесь решается один раз,
чем оно является (число, ключевое слово, список, текст), а дальше
билдер только рендерит готовый SqlLiteral.
"""
from __future__ import annotations
import json
import math
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Sequence, Union

from rowgrid.query.quoting import quote_literal, quote_text
from rowgrid.query.types import Operator


class LiteralKind(Enum):
    NUMBER = "number"
    BOOL = "bool"
    NULL = "null"
    TEXT = "text"
    LIST = "list"
    KEYWORD = "keyword"  # выводится как есть: null / true / false / not null


@dataclass(frozen=True)
class SqlLiteral:
    kind: LiteralKind
    value: Any = None

    def render(self) -> str:
        if self.kind is LiteralKind.KEYWORD:
            return self.value
        if self.kind is LiteralKind.LIST:
            return "(" + ",".join(item.render() for item in self.value) + ")"
        if self.kind is LiteralKind.TEXT:
            return quote_text(self.value)
        return quote_literal(self.value)


IS_KEYWORDS = ("null", "true", "false", "not null")

NULL = SqlLiteral(LiteralKind.NULL)


def parse_number(text: str) -> Optional[Union[int, float]]:
    """
    '5' -> 5, ' 2.50 ' -> 2.5, '1e3' -> 1000.0
    Пустая строка, NaN/Infinity и '1_000' числами не считаются.
    """
    s = (text or "").strip()
    if not s or "_" in s:
        return None
    try:
        return int(s)
    except ValueError:
        pass
    try:
        num = float(s)
    except ValueError:
        return None
    return num if math.isfinite(num) else None


def number_or_text(text: str) -> SqlLiteral:
    num = parse_number(text)
    if num is None:
        return SqlLiteral(LiteralKind.TEXT, text)
    return SqlLiteral(LiteralKind.NUMBER, num)


def coerce_filter_value(operator: Operator, raw: Union[str, SqlLiteral]) -> SqlLiteral:
    if isinstance(raw, SqlLiteral):
        return raw
    if operator is Operator.IS:
        keyword = " ".join((raw or "").strip().lower().split())
        if keyword in IS_KEYWORDS:
            return SqlLiteral(LiteralKind.KEYWORD, keyword)
        return number_or_text(raw)
    if operator is Operator.IN:
        parts: List[SqlLiteral] = [number_or_text(p.strip()) for p in (raw or "").split(",")]
        return SqlLiteral(LiteralKind.LIST, parts)
    return number_or_text(raw)


def key_literal(value: Any) -> SqlLiteral:
    """
    Значение ключа строки берётся по его python-типу, текст не разбирается:
    '007' остаётся строкой. Строковый литерал postgres примет и для
    integer-ключа.
    """
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return SqlLiteral(LiteralKind.NUMBER, value)
    return SqlLiteral(LiteralKind.TEXT, str(value))


def key_list_literal(values: Sequence[Any]) -> SqlLiteral:
    return SqlLiteral(LiteralKind.LIST, [key_literal(v) for v in values])


# ---- значения для INSERT / UPDATE

def _array_element(value: Any) -> str:
    if value is None:
        return "NULL"
    if isinstance(value, (list, tuple)):
        return "{" + ",".join(_array_element(v) for v in value) + "}"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, dict):
        value = json.dumps(value)
    s = str(value)
    # кавычим всё, что иначе будет разобрано как синтаксис массива
    if s == "" or s.upper() == "NULL" or any(c in s for c in '{},"\\ \t\n'):
        return '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'
    return s


def array_literal(values: Union[list, tuple]) -> str:
    """
    Массив postgres в текстовом виде, с поддержкой вложенности:
      [1, 2]            -> {1,2}
      [['a'], ['b c']]  -> {{a},{"b c"}}
    """
    return _array_element(list(values))


def coerce_field_value(value: Any) -> SqlLiteral:
    if value is None:
        return NULL
    if isinstance(value, bool):
        return SqlLiteral(LiteralKind.BOOL, value)
    if isinstance(value, (int, float, Decimal)):
        return SqlLiteral(LiteralKind.NUMBER, value)
    if isinstance(value, (list, tuple)):
        return SqlLiteral(LiteralKind.TEXT, array_literal(value))
    if isinstance(value, dict):
        return SqlLiteral(LiteralKind.TEXT, json.dumps(value))
    return number_or_text(str(value))
