"""
Schema Introspection.

Discovers the tables and columns of a note database at runtime. Backups are
taken across app versions, so the merge code never assumes a column exists:
it asks the SchemaDescriptor, and reads rows through RowView, which keeps all
column-absent defaulting in one place.
"""

import json
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SchemaDescriptor:
    """Table name -> ordered column names, as found in the database."""

    tables: dict[str, list[str]] = field(default_factory=dict)

    def has_table(self, table: str) -> bool:
        return table in self.tables

    def columns(self, table: str) -> list[str]:
        return list(self.tables.get(table, []))

    def has_column(self, table: str, column: str) -> bool:
        return column in self.tables.get(table, [])


def describe_schema(conn: sqlite3.Connection) -> SchemaDescriptor:
    """
    Reads the catalog of an open connection.

    Internal tables (sqlite_*) are excluded. Columns keep declaration order.
    Only SELECTs and PRAGMA table_info are issued, so read-only handles work.
    """
    table_rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()

    tables = {}
    for row in table_rows:
        table_name = row[0]
        if table_name.startswith("sqlite_"):
            continue
        escaped = table_name.replace('"', '""')
        column_rows = conn.execute(f'PRAGMA table_info("{escaped}")').fetchall()
        tables[table_name] = [col[1] for col in column_rows]

    return SchemaDescriptor(tables=tables)


def parse_properties(raw: Any) -> dict[str, str]:
    """
    Decodes a custom-properties document.

    Anything that is not a JSON object (None, malformed text, a list) decodes
    to an empty map. Values are coerced to strings.
    """
    if raw is None:
        return {}
    if isinstance(raw, dict):
        data = raw
    else:
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return {}
    if not isinstance(data, dict):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def dump_properties(properties: dict[str, str] | None) -> str:
    """Compact, key-sorted JSON for a property map."""
    return json.dumps(
        properties or {}, ensure_ascii=False, separators=(",", ":"), sort_keys=True
    )


class RowView:
    """
    Typed, schema-aware access to one row.

    Every accessor takes the column to read, a default, and optional fallback
    columns tried in order when the primary column is absent from the schema
    (or holds NULL). Absent columns are never an error.
    """

    def __init__(self, row: sqlite3.Row | tuple, columns: Iterable[str]):
        self._columns = list(columns)
        self._values = dict(zip(self._columns, tuple(row), strict=False))

    @classmethod
    def iter_table(cls, conn: sqlite3.Connection, table: str, schema: SchemaDescriptor):
        """Yields a RowView for every row of `table` using the given schema."""
        columns = schema.columns(table)
        if not columns:
            return
        select_list = ", ".join('"' + c.replace('"', '""') + '"' for c in columns)
        cur = conn.execute(f'SELECT {select_list} FROM "{table}"')
        for row in cur:
            yield cls(row, columns)

    def has(self, column: str) -> bool:
        return column in self._values

    def get(self, column: str, default: Any = None, fallbacks: Iterable[str] = ()) -> Any:
        for name in (column, *fallbacks):
            if name in self._values and self._values[name] is not None:
                return self._values[name]
        return default

    def get_int(self, column: str, default: int = 0, fallbacks: Iterable[str] = ()) -> int:
        value = self.get(column, None, fallbacks)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def get_str(self, column: str, default: str = "", fallbacks: Iterable[str] = ()) -> str:
        value = self.get(column, None, fallbacks)
        if value is None:
            return default
        return str(value)

    def get_bool(self, column: str, default: bool = False) -> bool:
        value = self.get(column, None)
        if value is None:
            return default
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)

    def get_properties(self, column: str) -> dict[str, str]:
        return parse_properties(self.get(column, None))

    def as_dict(self) -> dict[str, Any]:
        return dict(self._values)
