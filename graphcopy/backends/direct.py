"""Direct backend - reads and writes through a live psycopg connection."""

from collections.abc import Iterator, Sequence
from typing import Any

from psycopg import Connection

from graphcopy.core.models import Column
from graphcopy.statements import StatementBuilder

DEFAULT_ITERSIZE = 2000


class DirectSource:
    """
    Stream rows out of a source schema.

    Rows are fetched through a server-side cursor, so only `itersize` rows are
    held client-side at a time. The cursor must run inside the caller's open
    transaction.
    """

    def __init__(
        self,
        conn: Connection,
        schema: str,
        builder: StatementBuilder | None = None,
        itersize: int = DEFAULT_ITERSIZE,
    ):
        """
        Initialize source.

        Args:
            conn: PostgreSQL connection (not autocommit)
            schema: Schema to read from
            builder: Statement builder
            itersize: Rows fetched per round-trip
        """
        self.conn = conn
        self.schema = schema
        self.builder = builder or StatementBuilder()
        self.itersize = itersize

    def stream_rows(self, table: str, columns: Sequence[Column]) -> Iterator[tuple[Any, ...]]:
        """Yield every row of a table with values in column order."""
        query = self.builder.select(self.schema, table, [col.name for col in columns])
        with self.conn.cursor(name="graphcopy_source") as cur:
            cur.itersize = self.itersize
            cur.execute(query)
            yield from cur

    def lock_tables(self, tables: Sequence[str]) -> None:
        """Lock tables in EXCLUSIVE mode until the transaction ends."""
        if not tables:
            return
        with self.conn.cursor() as cur:
            cur.execute(self.builder.lock_exclusive(self.schema, tables))


class DirectWriter:
    """
    Write rows into a destination schema.

    Never commits: the caller owns the destination transaction.
    """

    def __init__(self, conn: Connection, schema: str, builder: StatementBuilder | None = None):
        self.conn = conn
        self.schema = schema
        self.builder = builder or StatementBuilder()

    def delete_all(self, table: str) -> int:
        """Delete every row of a table. Returns the number of rows deleted."""
        with self.conn.cursor() as cur:
            cur.execute(self.builder.delete_all(self.schema, table))
            return cur.rowcount

    def insert_rows(
        self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]
    ) -> int:
        """
        Insert rows with a single multi-row INSERT.

        Args:
            table: Table name
            columns: Column names, matching the value order of each row
            rows: Row values

        Returns:
            Number of rows inserted
        """
        if not rows:
            return 0
        query = self.builder.insert(self.schema, table, columns, len(rows))
        return self._execute(query, rows)

    def upsert_rows(
        self,
        table: str,
        columns: Sequence[str],
        rows: Sequence[Sequence[Any]],
        conflict_key: Sequence[str],
    ) -> int:
        """Insert rows, updating non-key columns where the key already exists."""
        if not rows:
            return 0
        query = self.builder.upsert(self.schema, table, columns, len(rows), conflict_key)
        return self._execute(query, rows)

    def _execute(self, query, rows: Sequence[Sequence[Any]]) -> int:
        # Flatten values: [row1_col1, row1_col2, row2_col1, row2_col2, ...]
        values = [value for row in rows for value in row]
        with self.conn.cursor() as cur:
            cur.execute(query, values)
            return cur.rowcount
