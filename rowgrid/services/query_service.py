import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, TypedDict

from sqlalchemy.engine import Engine

from rowgrid.db.connections import get_engine

logger = logging.getLogger(__name__)


class QueryResult(TypedDict):
    ok: bool
    rows: List[Dict[str, Any]]
    columns: List[str]
    duration_ms: int
    error: Optional[str]


class QueryExecutionError(RuntimeError):
    def __init__(self, sql: str, error: Optional[str]):
        super().__init__(error or "query failed")
        self.sql = sql
        self.error = error


class QueryService:
    """
    Транспорт: выполняет готовый текст запроса на SQLAlchemy Engine.
    Ошибки БД не пробрасываются, а возвращаются в поле "error".
    """

    def __init__(self, dbname: str, engine_factory: Callable[[str], Engine] = get_engine):
        self.dbname = dbname
        self.engine_factory = engine_factory
        # колбэк на каждую выполненную команду (например, журнал в UI)
        self.on_logged: Optional[Callable[[dict], None]] = None

    def run(self, sql: str) -> QueryResult:
        t0 = time.perf_counter()
        ok, rows, cols, err = True, [], [], None
        try:
            engine = self.engine_factory(self.dbname)
            # begin(): изменения фиксируются, если запрос что-то пишет.
            # exec_driver_sql: текст уже заэкранирован, bind-параметры не разбираем
            with engine.begin() as conn:
                res = conn.exec_driver_sql(sql)
                if res.returns_rows:
                    cols = list(res.keys())
                    rows = [dict(r) for r in res.mappings()]
        except Exception as e:
            ok, err = False, str(e)
        dt = round((time.perf_counter() - t0) * 1000)

        if ok:
            logger.debug("%s (%d ms, %d rows)", sql, dt, len(rows))
        else:
            logger.warning("query failed after %d ms: %s -- %s", dt, sql, err)

        cb = self.on_logged
        if callable(cb):
            try:
                cb({"sql_text": sql, "ok": ok, "duration_ms": dt, "error_text": err})
            except Exception:
                logger.exception("on_logged callback failed")

        return {"ok": ok, "rows": rows, "columns": cols, "duration_ms": dt, "error": err}

    async def execute(self, sql: str) -> QueryResult:
        # синхронный драйвер: уводим вызов с event loop в поток
        return await asyncio.to_thread(self.run, sql)

    async def execute_or_raise(self, sql: str) -> List[Dict[str, Any]]:
        res = await self.execute(sql)
        if not res["ok"]:
            raise QueryExecutionError(sql, res["error"])
        return res["rows"]
