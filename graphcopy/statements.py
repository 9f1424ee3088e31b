"""SQL statement construction.

All identifiers are composed with psycopg.sql so schema, table and column
names are quoted correctly. The placeholder format and the bind-parameter
limit are held by a StatementBuilder instance that each component receives
at construction.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from psycopg import sql
from psycopg.adapt import PyFormat

# PostgreSQL wire protocol limit on bind parameters per statement
MAX_BIND_PARAMETERS = 65535

PLACEHOLDER_FORMATS = {
    "auto": PyFormat.AUTO,
    "text": PyFormat.TEXT,
    "binary": PyFormat.BINARY,
}


@dataclass(frozen=True)
class StatementBuilder:
    """Builds the statements used to read, clear and write tables."""

    placeholder_format: PyFormat = PyFormat.AUTO
    max_parameters: int = MAX_BIND_PARAMETERS

    @classmethod
    def from_name(
        cls, placeholder_format: str = "auto", max_parameters: int = MAX_BIND_PARAMETERS
    ) -> StatementBuilder:
        """Create a builder from a placeholder format name (auto, text, binary)."""
        try:
            fmt = PLACEHOLDER_FORMATS[placeholder_format]
        except KeyError:
            raise ValueError(
                f"Unknown placeholder format '{placeholder_format}', "
                f"expected one of: {', '.join(PLACEHOLDER_FORMATS)}"
            ) from None
        return cls(placeholder_format=fmt, max_parameters=max_parameters)

    def max_rows_per_statement(self, column_count: int) -> int:
        """Largest number of rows one multi-row statement can bind."""
        return max(1, self.max_parameters // max(1, column_count))

    def _table(self, schema: str, table: str) -> sql.Identifier:
        return sql.Identifier(schema, table)

    def _columns(self, columns: Sequence[str]) -> sql.Composed:
        return sql.SQL(", ").join(sql.Identifier(col) for col in columns)

    def _values(self, column_count: int, row_count: int) -> sql.Composed:
        row = sql.SQL("({})").format(
            sql.SQL(", ").join(
                sql.Placeholder(format=self.placeholder_format) for _ in range(column_count)
            )
        )
        return sql.SQL(", ").join(row for _ in range(row_count))

    def select(self, schema: str, table: str, columns: Sequence[str]) -> sql.Composed:
        """SELECT the given columns, in order, from schema.table."""
        return sql.SQL("SELECT {} FROM {}").format(
            self._columns(columns), self._table(schema, table)
        )

    def delete_all(self, schema: str, table: str) -> sql.Composed:
        """DELETE every row of schema.table."""
        return sql.SQL("DELETE FROM {}").format(self._table(schema, table))

    def insert(
        self, schema: str, table: str, columns: Sequence[str], row_count: int
    ) -> sql.Composed:
        """Multi-row INSERT with one placeholder per column per row."""
        self.check_parameters(len(columns), row_count)
        return sql.SQL("INSERT INTO {} ({}) VALUES {}").format(
            self._table(schema, table),
            self._columns(columns),
            self._values(len(columns), row_count),
        )

    def upsert(
        self,
        schema: str,
        table: str,
        columns: Sequence[str],
        row_count: int,
        conflict_key: Sequence[str],
    ) -> sql.Composed:
        """Multi-row INSERT that updates non-key columns on key conflict."""
        insert = self.insert(schema, table, columns, row_count)
        updates = [col for col in columns if col not in set(conflict_key)]
        if updates:
            action = sql.SQL("DO UPDATE SET {}").format(
                sql.SQL(", ").join(
                    sql.SQL("{} = EXCLUDED.{}").format(sql.Identifier(col), sql.Identifier(col))
                    for col in updates
                )
            )
        else:
            action = sql.SQL("DO NOTHING")
        return sql.SQL("{} ON CONFLICT ({}) {}").format(
            insert, self._columns(conflict_key), action
        )

    def lock_exclusive(self, schema: str, tables: Sequence[str]) -> sql.Composed:
        """LOCK the tables IN EXCLUSIVE MODE (concurrent reads only)."""
        return sql.SQL("LOCK TABLE {} IN EXCLUSIVE MODE").format(
            sql.SQL(", ").join(self._table(schema, table) for table in tables)
        )

    def check_parameters(self, column_count: int, row_count: int) -> None:
        if column_count * row_count > self.max_parameters:
            raise ValueError(
                f"{row_count} rows x {column_count} columns exceeds "
                f"{self.max_parameters} bind parameters per statement"
            )
