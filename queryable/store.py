"""duckdb-backed stores, one database file per routed identifier.

``QueryableHandler`` is the capability that runs statements against a
connection. Host objects such as ``DataStore`` hold one and forward
``raw``/``exec``/``get_schema`` to it.
"""

import logging
import os
import re
from typing import Any, Dict, Optional, Protocol

import duckdb
import pandas as pd

logger = logging.getLogger(__name__)

STORE_ID_RE = re.compile(r"^[A-Za-z0-9_\-]+$")
# `GET /schema` is routed like any other first path segment
SCHEMA_STORE_ID = "schema"
TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Statements whose result set is duckdb's single "Count" row, optionally
# behind leading comments or a WITH clause.
_LEADING_COMMENTS_RE = re.compile(r"^(?:\s+|--[^\n]*(?:\n|$)|/\*.*?\*/)*", re.S)
_WRITE_RE = re.compile(r"^(?:WITH\b.*?\)\s*)?(INSERT|UPDATE|DELETE)\b", re.I | re.S)
_RETURNING_RE = re.compile(r"\bRETURNING\b", re.I)

SAMPLE_ITEMS = pd.DataFrame(
    [
        ("Wireless Headphones", "High-quality Bluetooth headphones with noise cancellation", 199.99, "Electronics"),
        ("Coffee Mug", "Ceramic mug perfect for your morning coffee", 12.99, "Home & Kitchen"),
        ("Running Shoes", "Lightweight running shoes with excellent cushioning", 89.99, "Sports & Outdoors"),
        ("Notebook", "Spiral-bound notebook with 200 pages", 5.99, "Office Supplies"),
        ("Smartphone Case", "Protective case with wireless charging support", 29.99, "Electronics"),
        ("Desk Lamp", "LED desk lamp with adjustable brightness", 45.99, "Home & Kitchen"),
        ("Water Bottle", "Insulated stainless steel water bottle", 24.99, "Sports & Outdoors"),
        ("Pen Set", "Set of 5 premium ballpoint pens", 15.99, "Office Supplies"),
    ],
    columns=["name", "description", "price", "category"],
)


def is_write_statement(query: str) -> bool:
    return bool(_WRITE_RE.match(_LEADING_COMMENTS_RE.sub("", query, count=1)))


class StoreUnavailable(RuntimeError):
    pass


class Queryable(Protocol):
    def raw(self, query: str, *bindings: Any) -> Dict[str, Any]: ...

    def exec(self, query: str, *bindings: Any) -> Dict[str, Any]: ...

    def get_schema(self) -> str: ...


class QueryableHandler:
    def __init__(self, conn: Optional[duckdb.DuckDBPyConnection]):
        self.conn = conn

    def _run(self, query: str, bindings):
        if self.conn is None:
            raise StoreUnavailable("SQL storage not available")

        cursor = self.conn.execute(query, list(bindings)) if bindings else self.conn.execute(query)
        columns = [desc[0] for desc in cursor.description] if cursor.description else []
        rows = [tuple(row) for row in cursor.fetchall()] if columns else []

        is_write = is_write_statement(query)
        if is_write and not _RETURNING_RE.search(query) and columns == ["Count"]:
            written = int(rows[0][0]) if rows else 0
            return [], [], 0, written

        if is_write:
            return columns, rows, 0, len(rows)
        return columns, rows, len(rows), 0

    def raw(self, query: str, *bindings: Any) -> Dict[str, Any]:
        columns, rows, rows_read, rows_written = self._run(query, bindings)
        return {
            "columnNames": columns,
            "rowsRead": rows_read,
            "rowsWritten": rows_written,
            "raw": rows,
        }

    def exec(self, query: str, *bindings: Any) -> Dict[str, Any]:
        columns, rows, rows_read, rows_written = self._run(query, bindings)
        array = [dict(zip(columns, row)) for row in rows]
        return {
            "columnNames": columns,
            "rowsRead": rows_read,
            "rowsWritten": rows_written,
            "array": array,
            "one": array[0] if array else None,
        }

    def get_schema(self) -> str:
        """Render the catalog as CREATE statements, tables then indexes."""
        if self.conn is None:
            raise StoreUnavailable("SQL storage not available")

        tables = self.conn.execute(
            "SELECT table_name, sql FROM duckdb_tables() "
            "WHERE NOT internal ORDER BY table_name"
        ).fetchall()
        indexes = self.conn.execute(
            "SELECT index_name, sql FROM duckdb_indexes() "
            "WHERE sql IS NOT NULL ORDER BY index_name"
        ).fetchall()

        schema = "".join(f"{sql.strip().rstrip(';')};\n\n" for _, sql in tables if sql)
        if indexes:
            schema += "-- Indexes\n"
            schema += "".join(f"{sql.strip().rstrip(';')};\n" for _, sql in indexes)
        return schema.rstrip()


class DataStore:
    """A named database holding the demo ``items`` table."""

    def __init__(self, store_id: str, conn: duckdb.DuckDBPyConnection):
        self.store_id = store_id
        self.conn = conn
        self.queryable = QueryableHandler(conn)
        self._bootstrap()

    def _bootstrap(self):
        self.conn.execute("CREATE SEQUENCE IF NOT EXISTS items_id_seq")
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS items (
                id INTEGER PRIMARY KEY DEFAULT nextval('items_id_seq'),
                name VARCHAR NOT NULL,
                description VARCHAR,
                price DOUBLE NOT NULL,
                category VARCHAR NOT NULL,
                in_stock BOOLEAN DEFAULT TRUE,
                created_at TIMESTAMP DEFAULT current_timestamp
            )
            """
        )
        (count,) = self.conn.execute("SELECT COUNT(*) FROM items").fetchone()
        if count == 0:
            self.load_frame("items", SAMPLE_ITEMS, append=True)
            logger.info("Seeded %d sample items into store '%s'", len(SAMPLE_ITEMS), self.store_id)

    def load_frame(self, table: str, df: pd.DataFrame, append: bool = False):
        """Write a DataFrame into ``table``, replacing it unless ``append``."""
        if not TABLE_NAME_RE.match(table):
            raise ValueError(f"invalid table name: {table}")

        self.conn.register("_incoming_frame", df)
        try:
            if append:
                columns = ", ".join(f'"{c}"' for c in df.columns)
                self.conn.execute(
                    f"INSERT INTO {table} ({columns}) SELECT {columns} FROM _incoming_frame"
                )
            else:
                self.conn.execute(f"CREATE OR REPLACE TABLE {table} AS SELECT * FROM _incoming_frame")
        finally:
            self.conn.unregister("_incoming_frame")

    def raw(self, query: str, *bindings: Any) -> Dict[str, Any]:
        return self.queryable.raw(query, *bindings)

    def exec(self, query: str, *bindings: Any) -> Dict[str, Any]:
        return self.queryable.exec(query, *bindings)

    def get_schema(self) -> str:
        return self.queryable.get_schema()

    def close(self):
        self.conn.close()


def open_store(data_dir: str, store_id: str) -> DataStore:
    if not STORE_ID_RE.match(store_id):
        raise ValueError(f"invalid store id: {store_id}")

    os.makedirs(data_dir, exist_ok=True)
    conn = duckdb.connect(os.path.join(data_dir, f"{store_id}.duckdb"))
    try:
        return DataStore(store_id, conn)
    except Exception:
        conn.close()
        raise

