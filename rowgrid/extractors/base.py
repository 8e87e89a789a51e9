from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, TypedDict

from rowgrid.query.types import ColumnInfo, TableRef


# ---- типизированные структуры данных

class TableInfo(TypedDict):
    schema: str           # схема, к которой принадлежит таблица
    table_name: str       # имя таблицы
    table_type: str       # тип таблицы: 'BASE TABLE', 'VIEW' или др.


class ExtractedColumn(TypedDict):
    name: str                     # имя колонки
    data_type: str                # тип данных (например: "numeric(10,2)" или "text[]")
    is_nullable: bool             # может ли колонка быть NULL
    ordinal_position: int         # порядковый номер колонки в таблице
    is_primary_key: bool          # входит ли колонка в первичный ключ


class BaseExtractor(ABC):
    """
    Абстрактный источник метаданных таблицы для грида.

    Реализации возвращают нормализованные, независимые от СУБД
    структуры (см. TypedDict выше).
    """

    def __init__(self, conn_params: Dict[str, Any]):
        """
        Параметры подключения, специфичные для СУБД.
        Для PostgreSQL достаточно {'dbname': 'app'}.
        """
        self.conn_params = conn_params

    def connect(self) -> None:
        """подключение к базе данных"""

    def close(self) -> None:
        """закрытие соединения и освобождение ресурсов"""

    def __enter__(self) -> "BaseExtractor":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- основное API ----

    @abstractmethod
    def list_tables(self, *, schemas: Optional[List[str]] = None) -> List[TableInfo]:
        """таблицы и представления (без системных схем)"""

    @abstractmethod
    def list_columns(self, table_schema: str, table_name: str) -> List[ExtractedColumn]:
        """колонки таблицы по порядку, с типом, nullability и признаком PK"""


def load_columns(extractor: BaseExtractor, table: TableRef) -> List[ColumnInfo]:
    """
    Колонки таблицы в формате грида: id = порядковый номер,
    is_identity: входит ли колонка в первичный ключ.
    """
    tables = extractor.list_tables(schemas=[table["schema"]])
    if not any(t["table_name"] == table["name"] for t in tables):
        raise ValueError(f"Table '{table['schema']}.{table['name']}' not found")
    return [
        ColumnInfo(
            id=c["ordinal_position"],
            name=c["name"],
            is_identity=c["is_primary_key"],
            data_type=c["data_type"],
            is_nullable=c["is_nullable"],
            ordinal_position=c["ordinal_position"],
        )
        for c in extractor.list_columns(table["schema"], table["name"])
    ]
