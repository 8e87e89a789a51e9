import time

import pytest

from rowgrid.services.query_service import QueryService


class FakeQueryService(QueryService):
    """Записывает выполненные запросы и отвечает заготовленными строками."""

    def __init__(self, rows=None, count=0, fail_on=None, delay=0.0):
        super().__init__("fake", engine_factory=lambda _name: None)
        self.rows = rows or []
        self.count = count
        self.fail_on = fail_on
        self.delay = delay
        self.statements = []
        self.committed = []

    def run(self, sql):
        self.statements.append(sql)
        if self.delay:
            time.sleep(self.delay)
        if self.fail_on and self.fail_on in sql:
            return {"ok": False, "rows": [], "columns": [], "duration_ms": 0, "error": "boom"}
        self.committed.append(sql)
        if sql.startswith("select count(*)"):
            rows = [{"count": self.count}]
        else:
            rows = list(self.rows)
        return {"ok": True, "rows": rows, "columns": [], "duration_ms": 0, "error": None}


@pytest.fixture
def table():
    return {"schema": "public", "name": "users"}


@pytest.fixture
def columns():
    return [
        {"id": 1, "name": "id", "is_identity": True},
        {"id": 2, "name": "name", "is_identity": False},
        {"id": 3, "name": "age", "is_identity": False},
        {"id": "flag", "name": "active", "is_identity": False},
    ]


@pytest.fixture
def fake_service():
    return FakeQueryService(rows=[{"id": 1, "name": "a"}], count=42)
