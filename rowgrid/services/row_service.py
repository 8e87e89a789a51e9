"""
Доступ к строкам одной таблицы для грида.

Переводит дескрипторы фильтров/сортировок из UI (ключ: id колонки,
значение: всегда текст) в Filter/Sort для билдера, читает страницы
и ставит изменения в MutationQueue.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypedDict, Union

from rowgrid.query import builder
from rowgrid.query.literals import key_list_literal, key_literal
from rowgrid.query.types import (
    ColumnInfo,
    Filter,
    Operator,
    Pagination,
    Sort,
    TableRef,
    UnknownOperatorError,
)
from rowgrid.services.mutation_queue import MutationQueue, MutationTicket
from rowgrid.services.query_service import QueryService

logger = logging.getLogger(__name__)

# для условия "is" из UI принимаются только эти значения
_IS_VALUES = ("null", "true", "false")


class PageResult(TypedDict):
    data: List[Dict[str, Any]]
    count: Optional[int]
    error: Optional[str]


class MutationResult(TypedDict, total=False):
    error: str
    ticket: MutationTicket


def _pick(descriptor: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """Дескрипторы приходят и в snake_case, и в camelCase."""
    for k in keys:
        if k in descriptor:
            return descriptor[k]
    return default


class RowService:
    def __init__(
        self,
        table: TableRef,
        columns: Sequence[ColumnInfo],
        query_service: QueryService,
        queue: MutationQueue,
    ):
        if not table:
            raise ValueError("Table definition is required.")
        if query_service is None:
            raise ValueError("Query service is required.")
        if queue is None:
            raise ValueError("Mutation queue is required.")
        self.table = table
        self.columns = list(columns or [])
        self.query_service = query_service
        self.queue = queue

    # ---------- чтение ----------

    async def fetch_all(self) -> PageResult:
        res = await self.query_service.execute(builder.select_query(self.table))
        if not res["ok"]:
            return {"data": [], "count": None, "error": res["error"]}
        return {"data": res["rows"], "count": len(res["rows"]), "error": None}

    async def fetch_page(
        self,
        page: int,
        rows_per_page: int,
        filters: Iterable[Mapping[str, Any]] = (),
        sorts: Iterable[Mapping[str, Any]] = (),
    ) -> PageResult:
        """
        page: с единицы. Страница 1 при 10 строках: строки [0, 9],
        страница 2: [10, 19]. Возвращает строки и точное число строк
        с учётом фильтров.
        """
        start, end = self.page_range(page, rows_per_page)
        typed_filters = self.translate_filters(filters)
        typed_sorts = self.translate_sorts(sorts)

        rows_res = await self.query_service.execute(
            builder.select_query(
                self.table,
                filters=typed_filters,
                sorts=typed_sorts,
                pagination=Pagination.from_range(start, end),
            )
        )
        if not rows_res["ok"]:
            return {"data": [], "count": None, "error": rows_res["error"]}

        count_res = await self.query_service.execute(
            builder.count_query(self.table, filters=typed_filters)
        )
        if not count_res["ok"]:
            return {"data": rows_res["rows"], "count": None, "error": count_res["error"]}

        count_rows = count_res["rows"]
        count = int(next(iter(count_rows[0].values()))) if count_rows else 0
        return {"data": rows_res["rows"], "count": count, "error": None}

    @staticmethod
    def page_range(page: int, rows_per_page: int) -> Tuple[int, int]:
        page_from_zero = page - 1 if page > 0 else 0
        start = page_from_zero * rows_per_page
        end = (page_from_zero + 1) * rows_per_page - 1
        return start, end

    # ---------- перевод дескрипторов ----------

    def _column_name(self, column_id: Any) -> Optional[str]:
        for c in self.columns:
            if c.get("id") == column_id:
                return c.get("name")
        return None

    def translate_filters(self, descriptors: Iterable[Mapping[str, Any]]) -> List[Filter]:
        """
        Неизвестная колонка, пустой текст или неизвестное условие:
        фильтр пропускается, а не роняет весь запрос.
        """
        out: List[Filter] = []
        for d in descriptors or ():
            column_id = _pick(d, "column_id", "columnId")
            condition = str(_pick(d, "condition", default="") or "")
            text = _pick(d, "filter_text", "filterText", default="")
            text = "" if text is None else str(text)
            if text == "":
                continue
            column = self._column_name(column_id)
            if not column:
                logger.debug("filter skipped: unknown column %r", column_id)
                continue

            cond = condition.strip().lower()
            if cond == "is":
                value = text.strip().lower()
                if value not in _IS_VALUES:
                    logger.debug("filter skipped: %r is not null/true/false", text)
                    continue
                out.append(Filter(column, Operator.IS, value))
            elif cond == "in":
                parts = [p.strip() for p in text.split(",")]
                out.append(Filter(column, Operator.IN, ",".join(parts)))
            else:
                try:
                    op = Operator.parse(cond)
                except UnknownOperatorError:
                    logger.debug("filter skipped: unknown condition %r", condition)
                    continue
                out.append(Filter(column, op, text))
        return out

    def translate_sorts(self, descriptors: Iterable[Mapping[str, Any]]) -> List[Sort]:
        out: List[Sort] = []
        for d in descriptors or ():
            column_id = _pick(d, "column_id", "columnId")
            column = self._column_name(column_id)
            if not column:
                logger.debug("sort skipped: unknown column %r", column_id)
                continue
            order = str(_pick(d, "order", default="asc") or "asc")
            nulls_first = bool(_pick(d, "nulls_first", "nullsFirst", default=False))
            out.append(Sort(column, ascending=order.strip().lower() == "asc", nulls_first=nulls_first))
        return out

    # ---------- изменения ----------

    def primary_key(self) -> Tuple[Optional[str], Optional[str]]:
        """(имя колонки, ошибка): ключ должен быть ровно один."""
        keys = [c for c in self.columns if c.get("is_identity")]
        if not keys:
            return None, "Can't find primary key"
        if len(keys) > 1:
            return None, "Not support multi primary keys"
        return keys[0]["name"], None

    def create(self, values: Mapping[str, Any]) -> MutationResult:
        if not values:
            return {"error": "No values to insert"}
        sql = builder.insert_query(self.table, dict(values), returning=True)
        return {"ticket": self._enqueue(sql, "insert")}

    def update(self, values: Mapping[str, Any]) -> MutationResult:
        pk, error = self.primary_key()
        if error:
            return {"error": error}
        if values.get(pk) is None:
            return {"error": f"Row value for primary key '{pk}' is required"}
        sql = builder.update_query(
            self.table,
            dict(values),
            filters=[Filter(pk, Operator.EQ, key_literal(values[pk]))],
            returning=True,
        )
        return {"ticket": self._enqueue(sql, "update")}

    def delete(self, row_ids: Sequence[Union[int, str]]) -> MutationResult:
        pk, error = self.primary_key()
        if error:
            return {"error": error}
        if not row_ids:
            return {"error": "No rows to delete"}
        if any(rid is None for rid in row_ids):
            return {"error": "Row ids must not be null"}
        sql = builder.delete_query(
            self.table,
            [Filter(pk, Operator.IN, key_list_literal(row_ids))],
            returning=True,
        )
        return {"ticket": self._enqueue(sql, "delete")}

    def _enqueue(self, sql: str, label: str) -> MutationTicket:
        async def task():
            rows = await self.query_service.execute_or_raise(sql)
            logger.info("%s row(s) on %s.%s: %d", label, self.table["schema"], self.table["name"], len(rows))
            return rows

        return self.queue.add(task, label=label)
