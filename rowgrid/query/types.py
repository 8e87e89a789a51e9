from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, TypedDict, Union

if TYPE_CHECKING:
    from rowgrid.query.literals import SqlLiteral


# ---- метаданные таблицы (приходят снаружи, ядро их не меняет)

class TableRef(TypedDict):
    schema: str       # схема
    name: str         # имя таблицы


class ColumnInfo(TypedDict, total=False):
    id: Union[str, int]           # стабильный ключ для UI (может не совпадать с именем)
    name: str                     # имя колонки в SQL
    is_identity: bool             # входит ли колонка в первичный ключ
    data_type: str                # тип данных, например "integer" или "text[]"
    is_nullable: bool
    ordinal_position: int


def parse_table_name(fqn: str, default_schema: str = "public") -> TableRef:
    """
    'public.branches' -> {"schema": "public", "name": "branches"}
    'branches'        -> схема по умолчанию
    """
    if "." in fqn:
        s, t = fqn.split(".", 1)
        return TableRef(schema=s, name=t)
    return TableRef(schema=default_schema, name=fqn)


class UnknownOperatorError(ValueError):
    pass


class Operator(str, Enum):
    """Закрытый словарь операторов фильтра."""

    EQ = "="
    NEQ = "<>"
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="
    IS = "is"
    IN = "in"
    LIKE = "like"
    ILIKE = "ilike"
    NOT_LIKE = "not like"
    NOT_ILIKE = "not ilike"
    MATCH = "~"
    IMATCH = "~*"
    NOT_MATCH = "!~"
    NOT_IMATCH = "!~*"

    @classmethod
    def parse(cls, name: str) -> "Operator":
        """
        Принимает как SQL-написание ('=', 'ILIKE'), так и короткие имена
        из грида ('eq', 'gte', 'imatch'). Регистр не важен.
        """
        key = " ".join((name or "").strip().lower().split())
        if key in _ALIASES:
            return _ALIASES[key]
        try:
            return cls(key)
        except ValueError:
            raise UnknownOperatorError(f"unknown filter operator: {name!r}") from None


_ALIASES = {
    "eq": Operator.EQ,
    "==": Operator.EQ,
    "neq": Operator.NEQ,
    "!=": Operator.NEQ,
    "lt": Operator.LT,
    "gt": Operator.GT,
    "lte": Operator.LTE,
    "gte": Operator.GTE,
    "match": Operator.MATCH,
    "imatch": Operator.IMATCH,
}


@dataclass(frozen=True)
class Filter:
    column: str
    operator: Operator
    # текст из UI (тип выводится при coercion) или готовый литерал ключа
    value: Union[str, "SqlLiteral"]


@dataclass(frozen=True)
class Sort:
    column: str
    ascending: bool = True
    nulls_first: bool = False


@dataclass(frozen=True)
class Pagination:
    limit: int
    offset: int = 0

    @classmethod
    def from_range(cls, start: int, end: int) -> "Pagination":
        """Полуоткрытое окно из включительного диапазона строк [start, end]."""
        return cls(limit=max(end - start + 1, 0), offset=max(start, 0))
