"""Staging backend - in-memory database for testing without PostgreSQL."""

from collections.abc import Iterator, Sequence
from typing import Any

import psycopg
from psycopg import IsolationLevel

from graphcopy.core.models import Column, ForeignKey
from graphcopy.exceptions import DiscoveryError
from graphcopy.statements import StatementBuilder

TableKey = tuple[str, str]


class StagingConnection:
    """
    In-memory stand-in for a psycopg connection.

    Simulates the parts of a database a copy session relies on:
    - Tables with ordered columns and rows, grouped by schema
    - Foreign key metadata
    - Transactions: writes go to a pending copy that commit() publishes and
      rollback() discards; rollback() with nothing pending does nothing

    Use case: Fast unit tests of copy sessions, offline development.
    """

    def __init__(self):
        """Initialize an empty database."""
        self.isolation_level: IsolationLevel | None = None
        self.read_only: bool | None = None
        self.closed = False
        self.commits = 0
        self.rollbacks = 0
        self.locked: list[str] = []
        self.batches: list[tuple[str, str, int]] = []
        self.fail_on_insert: set[str] = set()
        self.fail_on_rollback = False
        self._columns: dict[TableKey, list[Column]] = {}
        self._foreign_keys: dict[str, list[ForeignKey]] = {}
        self._committed: dict[TableKey, list[tuple[Any, ...]]] = {}
        self._pending: dict[TableKey, list[tuple[Any, ...]]] | None = None

    def create_table(
        self,
        schema: str,
        table: str,
        columns: Sequence[Column],
        rows: Sequence[Sequence[Any]] = (),
    ) -> None:
        """Create a committed table with optional initial rows."""
        key = (schema, table)
        self._columns[key] = list(columns)
        self._committed[key] = [tuple(row) for row in rows]

    def add_foreign_key(self, schema: str, foreign_key: ForeignKey) -> None:
        """Declare a foreign key in a schema."""
        self._foreign_keys.setdefault(schema, []).append(foreign_key)

    def tables(self, schema: str) -> list[str]:
        return sorted(table for (s, table) in self._columns if s == schema)

    def foreign_keys(self, schema: str) -> list[ForeignKey]:
        return list(self._foreign_keys.get(schema, []))

    def columns(self, schema: str, table: str) -> list[Column]:
        return list(self._columns[(schema, table)])

    def rows(self, schema: str, table: str) -> list[tuple[Any, ...]]:
        """Committed rows, as another session would see them."""
        return list(self._committed[(schema, table)])

    def visible_rows(self, schema: str, table: str) -> list[tuple[Any, ...]]:
        """Rows as seen inside the current transaction."""
        if self._pending is not None:
            return self._pending[(schema, table)]
        return self._committed[(schema, table)]

    def writable_rows(self, schema: str, table: str) -> list[tuple[Any, ...]]:
        """Rows of a table within the transaction, starting one if needed."""
        self._check_open()
        if self._pending is None:
            self._pending = {key: list(rows) for key, rows in self._committed.items()}
        key = (schema, table)
        if key not in self._pending:
            raise psycopg.errors.UndefinedTable(f'relation "{schema}.{table}" does not exist')
        return self._pending[key]

    def commit(self) -> None:
        self._check_open()
        if self._pending is not None:
            self._committed = self._pending
            self._pending = None
        self.commits += 1

    def rollback(self) -> None:
        if self.fail_on_rollback:
            raise psycopg.OperationalError("the connection is lost")
        self._pending = None
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True

    def _check_open(self) -> None:
        if self.closed:
            raise psycopg.OperationalError("the connection is closed")


class StagingIntrospector:
    """Metadata discovery against a StagingConnection."""

    def __init__(self, conn: StagingConnection, schema: str):
        self.conn = conn
        self.schema = schema

    def list_tables(self) -> list[str]:
        return self.conn.tables(self.schema)

    def list_foreign_keys(self, tables: Sequence[str]) -> list[ForeignKey]:
        wanted = set(tables)
        return [fk for fk in self.conn.foreign_keys(self.schema) if fk.from_table in wanted]

    def list_columns(self, table: str) -> list[Column]:
        try:
            return self.conn.columns(self.schema, table)
        except KeyError:
            raise DiscoveryError(
                "list_columns", self.schema, f"table '{table}' has no columns"
            ) from None


class StagingSource:
    """Row source reading from a StagingConnection."""

    def __init__(
        self,
        conn: StagingConnection,
        schema: str,
        builder: StatementBuilder | None = None,
    ):
        self.conn = conn
        self.schema = schema
        self.builder = builder or StatementBuilder()

    def stream_rows(self, table: str, columns: Sequence[Column]) -> Iterator[tuple[Any, ...]]:
        """Yield rows projected onto the requested column order."""
        defined = [col.name for col in self.conn.columns(self.schema, table)]
        positions = [defined.index(col.name) for col in columns]
        for row in self.conn.visible_rows(self.schema, table):
            yield tuple(row[pos] for pos in positions)

    def lock_tables(self, tables: Sequence[str]) -> None:
        self.conn.locked.extend(tables)


class StagingWriter:
    """
    Writer into a StagingConnection.

    Records the size of every written batch in conn.batches and raises
    psycopg.IntegrityError for tables listed in conn.fail_on_insert. Deleting
    from a table still referenced by rows of another table in the schema
    raises ForeignKeyViolation, as PostgreSQL does for non-deferred keys.
    """

    def __init__(
        self,
        conn: StagingConnection,
        schema: str,
        builder: StatementBuilder | None = None,
    ):
        self.conn = conn
        self.schema = schema
        self.builder = builder or StatementBuilder()

    def delete_all(self, table: str) -> int:
        rows = self.conn.writable_rows(self.schema, table)
        if rows:
            self._check_not_referenced(table)
        deleted = len(rows)
        rows.clear()
        return deleted

    def insert_rows(
        self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> int:
        if not rows:
            return 0
        target = self._prepare(table, columns, len(rows))
        target.extend(self._reorder(table, columns, rows))
        return len(rows)

    def upsert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        conflict_key: Sequence[str],
    ) -> int:
        if not rows:
            return 0
        target = self._prepare(table, columns, len(rows))
        defined = [col.name for col in self.conn.columns(self.schema, table)]
        key_positions = [defined.index(name) for name in conflict_key]
        index = {tuple(row[pos] for pos in key_positions): i for i, row in enumerate(target)}
        reordered = self._reorder(table, columns, rows)
        updated = [defined.index(name) for name in columns]
        for row in reordered:
            key = tuple(row[pos] for pos in key_positions)
            if key in index:
                # Only the statement's columns are SET on conflict
                merged = list(target[index[key]])
                for pos in updated:
                    merged[pos] = row[pos]
                target[index[key]] = tuple(merged)
            else:
                index[key] = len(target)
                target.append(row)
        return len(rows)

    def _check_not_referenced(self, table: str) -> None:
        for fk in self.conn.foreign_keys(self.schema):
            if fk.to_table != table or fk.is_self_reference:
                continue
            defined = [col.name for col in self.conn.columns(self.schema, fk.from_table)]
            pos = defined.index(fk.from_column)
            referencing = self.conn.writable_rows(self.schema, fk.from_table)
            if any(row[pos] is not None for row in referencing):
                raise psycopg.errors.ForeignKeyViolation(
                    f'update or delete on table "{table}" violates foreign key constraint '
                    f'on table "{fk.from_table}"'
                )

    def _prepare(self, table: str, columns: Sequence[str], row_count: int) -> list:
        self.builder.check_parameters(len(columns), row_count)
        if table in self.conn.fail_on_insert:
            raise psycopg.IntegrityError(
                f'insert or update on table "{table}" violates foreign key constraint'
            )
        target = self.conn.writable_rows(self.schema, table)
        self.conn.batches.append((self.schema, table, row_count))
        return target

    def _reorder(
        self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> list[tuple[Any, ...]]:
        defined = [col.name for col in self.conn.columns(self.schema, table)]
        for name in columns:
            if name not in defined:
                raise psycopg.errors.UndefinedColumn(
                    f'column "{name}" of relation "{table}" does not exist'
                )
        # Columns left out of the statement get NULL, as they would without a DEFAULT
        positions = [list(columns).index(name) if name in columns else None for name in defined]
        return [
            tuple(None if pos is None else row[pos] for pos in positions) for row in rows
        ]
