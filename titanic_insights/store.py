from __future__ import annotations

import logging
import math
from decimal import Decimal
from pathlib import Path
from typing import Any

import duckdb
import pandas as pd


logger = logging.getLogger(__name__)

TABLE_NAME = "titanic"

# Column name -> (DuckDB type, Python type used when binding values).
TITANIC_COLUMNS: dict[str, tuple[str, type]] = {
    "PassengerId": ("INTEGER PRIMARY KEY", int),
    "Survived": ("INTEGER", int),
    "Pclass": ("INTEGER", int),
    "Name": ("VARCHAR", str),
    "Sex": ("VARCHAR", str),
    "Age": ("DOUBLE", float),
    "SibSp": ("INTEGER", int),
    "Parch": ("INTEGER", int),
    "Ticket": ("VARCHAR", str),
    "Fare": ("DOUBLE", float),
    "Cabin": ("VARCHAR", str),
    "Embarked": ("VARCHAR", str),
}

Row = dict[str, Any]


class StoreQueryError(Exception):
    """Raised when the store rejects or fails a query; carries DuckDB's message."""


class TitanicStore:
    """In-memory passenger table.

    Built once through :meth:`from_csv` or :meth:`from_frame` and read-only
    afterwards. Every query runs on its own cursor, so the store can be shared
    by concurrent request handlers.
    """

    def __init__(self) -> None:
        self._con = duckdb.connect(
            database=":memory:",
            config={"enable_external_access": False},
        )
        column_sql = ",\n".join(
            f"    {name} {sql_type}" for name, (sql_type, _) in TITANIC_COLUMNS.items()
        )
        self._con.execute(f"CREATE TABLE {TABLE_NAME} (\n{column_sql}\n)")
        self._loaded = False

    @classmethod
    def from_csv(cls, csv_path: Path) -> "TitanicStore":
        logger.info("Loading passenger records from %s", csv_path)
        frame = pd.read_csv(csv_path, low_memory=False)
        return cls.from_frame(frame)

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> "TitanicStore":
        store = cls()
        store._bulk_load(frame)
        return store

    def _bulk_load(self, frame: pd.DataFrame) -> int:
        if self._loaded:
            raise RuntimeError("Passenger records are already loaded.")

        records = prepare_records(frame)
        if records:
            placeholders = ", ".join("?" for _ in TITANIC_COLUMNS)
            self._con.executemany(
                f"INSERT INTO {TABLE_NAME} ({', '.join(TITANIC_COLUMNS)}) "
                f"VALUES ({placeholders})",
                records,
            )
        self._loaded = True
        logger.info("Loaded %s passenger records into '%s'", len(records), TABLE_NAME)
        return len(records)

    def query(self, sql: str) -> list[Row]:
        """Run one SELECT statement and return its rows as column mappings.

        DuckDB executes every statement in a string, so the text is split
        with DuckDB's own parser first and anything other than a single
        SELECT is refused before execution.
        """
        cursor = self._con.cursor()
        try:
            statements = cursor.extract_statements(sql)
            if len(statements) != 1:
                raise StoreQueryError(
                    f"Expected a single statement, got {len(statements)}"
                )
            if statements[0].type != duckdb.StatementType.SELECT:
                raise StoreQueryError("Only SELECT statements can be executed")
            cursor.execute(sql)
            if cursor.description is None:
                return []
            columns = [str(column[0]) for column in cursor.description]
            return [
                {column: _to_scalar(value) for column, value in zip(columns, row)}
                for row in cursor.fetchall()
            ]
        except duckdb.Error as exc:
            raise StoreQueryError(str(exc)) from exc
        finally:
            cursor.close()

    def count(self) -> int:
        rows = self.query(f"SELECT COUNT(*) AS record_count FROM {TABLE_NAME}")
        return int(rows[0]["record_count"])


def prepare_records(frame: pd.DataFrame) -> list[tuple[Any, ...]]:
    """Convert a raw passenger frame into insert-ready tuples.

    Rows without a PassengerId are dropped; for repeated ids the first row
    wins. Missing columns become NULL.
    """
    normalized = frame.copy()
    normalized.columns = [str(column).strip() for column in normalized.columns]
    if "PassengerId" not in normalized.columns:
        raise ValueError("Source data has no 'PassengerId' column.")

    normalized["PassengerId"] = pd.to_numeric(normalized["PassengerId"], errors="coerce")
    normalized = normalized.dropna(subset=["PassengerId"])

    duplicated = normalized["PassengerId"].duplicated(keep="first")
    if duplicated.any():
        logger.warning(
            "Dropping %s rows with duplicate PassengerId values",
            int(duplicated.sum()),
        )
        normalized = normalized[~duplicated]

    records: list[tuple[Any, ...]] = []
    for _, row in normalized.iterrows():
        records.append(
            tuple(
                _coerce(row.get(column), python_type)
                for column, (_, python_type) in TITANIC_COLUMNS.items()
            )
        )
    return records


def _coerce(value: Any, python_type: type) -> Any:
    if value is None or pd.isna(value):
        return None
    if python_type is str:
        text = str(value).strip()
        return text or None
    if python_type is int:
        return int(float(value))
    return float(value)


def _to_scalar(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    # NaN/inf cannot be encoded as JSON
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value
