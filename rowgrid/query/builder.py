from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from rowgrid.query.literals import coerce_field_value, coerce_filter_value
from rowgrid.query.quoting import quote_ident, quote_table
from rowgrid.query.types import Filter, Pagination, Sort, TableRef


class QueryBuildError(ValueError):
    pass


class UnconditionalMutationError(QueryBuildError):
    """UPDATE/DELETE без условий не строим никогда."""


def _where(filters: Optional[Sequence[Filter]]) -> str:
    if not filters:
        return ""
    conds = []
    for f in filters:
        literal = coerce_filter_value(f.operator, f.value)
        conds.append(f"{quote_ident(f.column)} {f.operator.value} {literal.render()}")
    return " where " + " and ".join(conds)


def _order_by(sorts: Optional[Sequence[Sort]]) -> str:
    if not sorts:
        return ""
    keys = []
    for s in sorts:
        order = "asc" if s.ascending else "desc"
        nulls = "nulls first" if s.nulls_first else "nulls last"
        keys.append(f"{quote_ident(s.column)} {order} {nulls}")
    return " order by " + ", ".join(keys)


def _require_filters(filters: Optional[Sequence[Filter]], action: str) -> None:
    if not filters:
        raise UnconditionalMutationError(f"unconditional mutation: no filters for this {action} query")


def select_query(
    table: TableRef,
    columns: Optional[Sequence[str]] = None,
    *,
    filters: Optional[Sequence[Filter]] = None,
    sorts: Optional[Sequence[Sort]] = None,
    pagination: Optional[Pagination] = None,
) -> str:
    projection = ", ".join(quote_ident(c) for c in columns) if columns else "*"
    sql = f"select {projection} from {quote_table(table)}"
    sql += _where(filters)
    sql += _order_by(sorts)
    if pagination is not None:
        sql += f" limit {int(pagination.limit)} offset {int(pagination.offset)}"
    return sql + ";"


def count_query(table: TableRef, *, filters: Optional[Sequence[Filter]] = None) -> str:
    return f"select count(*) from {quote_table(table)}{_where(filters)};"


def delete_query(
    table: TableRef,
    filters: Optional[Sequence[Filter]],
    *,
    returning: bool = False,
) -> str:
    _require_filters(filters, "delete")
    sql = f"delete from {quote_table(table)}{_where(filters)}"
    if returning:
        sql += " returning *"
    return sql + ";"


def update_query(
    table: TableRef,
    values: Mapping[str, Any],
    *,
    filters: Optional[Sequence[Filter]] = None,
    returning: bool = False,
) -> str:
    _require_filters(filters, "update")
    if not values:
        raise QueryBuildError("no values for this update query")
    assignments = ", ".join(
        f"{quote_ident(col)} = {coerce_field_value(val).render()}" for col, val in values.items()
    )
    sql = f"update {quote_table(table)} set {assignments}{_where(filters)}"
    if returning:
        sql += " returning *"
    return sql + ";"


def insert_query(
    table: TableRef,
    values: Union[Mapping[str, Any], Sequence[Mapping[str, Any]]],
    *,
    returning: bool = False,
) -> str:
    """
    Одна строка (dict) или несколько (list[dict]).
    Для нескольких строк колонки: объединение ключей в порядке появления,
    отсутствующие значения заполняются default.
    """
    rows: List[Mapping[str, Any]] = [values] if isinstance(values, Mapping) else list(values)
    if not rows:
        raise QueryBuildError("no rows for this insert query")

    columns: Dict[str, None] = {}
    for row in rows:
        for col in row:
            columns.setdefault(col, None)

    if not columns:
        if len(rows) > 1:
            raise QueryBuildError("several rows without values can't be inserted in one query")
        sql = f"insert into {quote_table(table)} default values"
    else:
        tuples = []
        for row in rows:
            parts = [
                coerce_field_value(row[col]).render() if col in row else "default"
                for col in columns
            ]
            tuples.append("(" + ", ".join(parts) + ")")
        col_list = ", ".join(quote_ident(c) for c in columns)
        sql = f"insert into {quote_table(table)} ({col_list}) values " + ", ".join(tuples)
    if returning:
        sql += " returning *"
    return sql + ";"
