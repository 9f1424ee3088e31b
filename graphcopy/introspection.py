"""Schema introspection over information_schema."""

from __future__ import annotations

from collections.abc import Sequence

import psycopg
from psycopg import Connection

from graphcopy.core.models import Column, ForeignKey
from graphcopy.exceptions import DiscoveryError


class SchemaIntrospector:
    """Discover tables, foreign keys and columns of a PostgreSQL schema."""

    def __init__(self, conn: Connection, schema: str):
        self.conn = conn
        self.schema = schema

    def _fetchall(self, operation: str, query: str, params: tuple) -> list[tuple]:
        try:
            with self.conn.cursor() as cur:
                cur.execute(query, params)
                return cur.fetchall()
        except psycopg.Error as e:
            raise DiscoveryError(operation, self.schema, str(e)) from e

    def list_tables(self) -> list[str]:
        """Get all base tables in the schema, ordered by name."""
        rows = self._fetchall(
            "list_tables",
            """
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = %s
              AND table_type = 'BASE TABLE'
            ORDER BY table_name
            """,
            (self.schema,),
        )
        return [row[0] for row in rows]

    def list_foreign_keys(self, tables: Sequence[str]) -> list[ForeignKey]:
        """Get foreign keys declared on any of the given tables."""
        if not tables:
            return []

        rows = self._fetchall(
            "list_foreign_keys",
            """
            SELECT
                tc.table_name,
                kcu.column_name,
                ccu.table_name AS foreign_table_name,
                ccu.column_name AS foreign_column_name
            FROM information_schema.table_constraints AS tc
            JOIN information_schema.key_column_usage AS kcu
              ON tc.constraint_name = kcu.constraint_name
              AND tc.table_schema = kcu.table_schema
            JOIN information_schema.constraint_column_usage AS ccu
              ON ccu.constraint_name = tc.constraint_name
              AND ccu.table_schema = tc.table_schema
            WHERE tc.constraint_type = 'FOREIGN KEY'
              AND tc.table_schema = %s
              AND tc.table_name = ANY(%s)
            ORDER BY tc.table_name, kcu.column_name
            """,
            (self.schema, list(tables)),
        )
        return [
            ForeignKey(from_table=row[0], from_column=row[1], to_table=row[2], to_column=row[3])
            for row in rows
        ]

    def list_columns(self, table: str) -> list[Column]:
        """Get the columns of a table in ordinal order."""
        rows = self._fetchall(
            "list_columns",
            """
            SELECT column_name, data_type
            FROM information_schema.columns
            WHERE table_schema = %s
              AND table_name = %s
            ORDER BY ordinal_position
            """,
            (self.schema, table),
        )
        if not rows:
            raise DiscoveryError("list_columns", self.schema, f"table '{table}' has no columns")
        return [Column(name=row[0], data_type=row[1]) for row in rows]
