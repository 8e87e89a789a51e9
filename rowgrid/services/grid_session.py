import asyncio
import logging
from typing import Optional, Sequence

from rowgrid.db.connections import test_connection
from rowgrid.extractors.base import load_columns
from rowgrid.extractors.postgres import PostgresExtractor
from rowgrid.query.types import ColumnInfo, TableRef, parse_table_name
from rowgrid.services.mutation_queue import MutationQueue
from rowgrid.services.query_service import QueryService
from rowgrid.services.row_service import RowService

logger = logging.getLogger(__name__)


class GridSession:
    """
    Сессия грида над одной таблицей: владеет очередью изменений
    и сервисом строк. Закрывается через close() или async with.
    """

    def __init__(
        self,
        table: TableRef,
        columns: Sequence[ColumnInfo],
        query_service: QueryService,
        *,
        propagate_errors: bool = True,
    ):
        self.table = table
        self.columns = list(columns)
        self.query_service = query_service
        self.queue = MutationQueue(
            name=f"{table['schema']}.{table['name']}",
            propagate_errors=propagate_errors,
        )
        self.rows = RowService(table, self.columns, query_service, self.queue)

    async def close(self, drain: bool = True) -> None:
        await self.queue.close(drain=drain)
        logger.debug("grid session for %s.%s closed", self.table["schema"], self.table["name"])

    async def __aenter__(self) -> "GridSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        # при ошибке внутри блока ожидающие изменения отменяются
        await self.close(drain=exc_type is None)


def _load(dbname: str, table: TableRef) -> list:
    if not test_connection(dbname):
        raise ValueError(f"Can't connect to database '{dbname}'")
    with PostgresExtractor({"dbname": dbname}) as ext:
        return load_columns(ext, table)


async def open_grid(
    dbname: str,
    table_name: str,
    *,
    columns: Optional[Sequence[ColumnInfo]] = None,
    propagate_errors: bool = True,
) -> GridSession:
    """
    Открыть грид над таблицей 'schema.table' (или 'table' в public).
    Если columns не переданы: читаются из каталога postgres.
    """
    table = parse_table_name(table_name)
    if columns is None:
        columns = await asyncio.to_thread(_load, dbname, table)
    return GridSession(table, columns, QueryService(dbname), propagate_errors=propagate_errors)
