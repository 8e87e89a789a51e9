from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from psycopg2.extras import RealDictCursor
from sqlalchemy.engine import Engine

from rowgrid.db.connections import get_engine
from rowgrid.extractors.base import BaseExtractor, ExtractedColumn, TableInfo

logger = logging.getLogger(__name__)

_SYSTEM_SCHEMAS = ["pg_catalog", "information_schema", "pg_toast"]

# r: таблица, p: секционированная, v: представление, m: материализованное
_TABLES_SQL = """
    select n.nspname as schema,
           c.relname as table_name,
           case c.relkind
               when 'v' then 'VIEW'
               when 'm' then 'MATERIALIZED VIEW'
               else 'BASE TABLE'
           end as table_type
    from pg_catalog.pg_class c
    join pg_catalog.pg_namespace n on n.oid = c.relnamespace
    where c.relkind in ('r', 'p', 'v', 'm')
      and n.nspname <> all(%(system)s)
      and (%(schemas)s::text[] is null or n.nspname = any(%(schemas)s))
    order by 1, 2
"""

# колонки и признак первичного ключа одним запросом
_COLUMNS_SQL = """
    select a.attnum as ordinal_position,
           a.attname as name,
           pg_catalog.format_type(a.atttypid, a.atttypmod) as data_type,
           not a.attnotnull as is_nullable,
           pk.indrelid is not null as is_primary_key
    from pg_catalog.pg_attribute a
    join pg_catalog.pg_class c on c.oid = a.attrelid
    join pg_catalog.pg_namespace n on n.oid = c.relnamespace
    left join pg_catalog.pg_index pk
      on pk.indrelid = c.oid and pk.indisprimary and a.attnum = any(pk.indkey)
    where n.nspname = %(schema)s
      and c.relname = %(table)s
      and a.attnum > 0
      and not a.attisdropped
    order by a.attnum
"""


class PostgresExtractor(BaseExtractor):
    """
    Метаданные из pg_catalog. Соединение psycopg2 берётся из пула
    SQLAlchemy той же базы и возвращается туда при close().
    """

    def __init__(
        self,
        conn_params: Dict[str, Any],
        engine_factory: Callable[[str], Engine] = get_engine,
    ):
        super().__init__(conn_params)
        self.engine_factory = engine_factory
        self.conn = None

    def connect(self) -> None:
        if self.conn is None:
            self.conn = self.engine_factory(self.conn_params["dbname"]).raw_connection()

    def close(self) -> None:
        conn, self.conn = self.conn, None
        if conn is not None:
            conn.close()

    def _query(self, sql: str, params: Mapping[str, Any]) -> List[Mapping[str, Any]]:
        self.connect()
        with self.conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(sql, params)
            rows = cur.fetchall()
        logger.debug("catalog query returned %d row(s)", len(rows))
        return rows

    def list_tables(self, *, schemas: Optional[List[str]] = None) -> List[TableInfo]:
        rows = self._query(_TABLES_SQL, {"system": _SYSTEM_SCHEMAS, "schemas": schemas or None})
        return [
            TableInfo(schema=r["schema"], table_name=r["table_name"], table_type=r["table_type"])
            for r in rows
        ]

    def list_columns(self, table_schema: str, table_name: str) -> List[ExtractedColumn]:
        rows = self._query(_COLUMNS_SQL, {"schema": table_schema, "table": table_name})
        return [
            ExtractedColumn(
                name=r["name"],
                data_type=r["data_type"],
                is_nullable=bool(r["is_nullable"]),
                ordinal_position=int(r["ordinal_position"]),
                is_primary_key=bool(r["is_primary_key"]),
            )
            for r in rows
        ]
