from __future__ import annotations
import math
from decimal import Decimal
from typing import Any

from rowgrid.query.types import TableRef


def quote_ident(ident: Any) -> str:
    # экранируем двойные кавычки внутри идентификатора
    return '"' + str(ident).replace('"', '""') + '"'


def quote_table(table: TableRef) -> str:
    """{'schema': 'public', 'name': 'branches'} -> '"public"."branches"'"""
    return f'{quote_ident(table["schema"])}.{quote_ident(table["name"])}'


def quote_text(value: str) -> str:
    """
    Строковый литерал: одинарные кавычки удваиваются.
    Если есть обратный слэш: удваиваем его и ставим префикс E,
    чтобы результат не зависел от standard_conforming_strings.
    """
    quoted = value.replace("'", "''")
    if "\\" in quoted:
        return "E'" + quoted.replace("\\", "\\\\") + "'"
    return "'" + quoted + "'"


def quote_literal(value: Any) -> str:
    """
    Безопасный литерал для вставки в текст запроса.
      None          -> null
      True / False  -> true / false
      5, 1.5        -> 5, 1.5
      'it''s'       -> 'it''s'
      ['a', 1]      -> ('a',1)
    Всё остальное приводится через str() и кавычится как текст.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value):
            return repr(value)
        # NaN / Infinity postgres понимает только как строки
        return quote_text("NaN" if math.isnan(value) else ("Infinity" if value > 0 else "-Infinity"))
    if isinstance(value, Decimal):
        if value.is_finite():
            return str(value)
        return quote_text(str(value))
    if isinstance(value, (list, tuple)):
        return "(" + ",".join(quote_literal(v) for v in value) + ")"
    return quote_text(str(value))
