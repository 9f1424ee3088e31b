"""Pytest configuration and shared fixtures."""

import pytest

from graphcopy.backends.staging import (
    StagingConnection,
    StagingIntrospector,
    StagingSource,
    StagingWriter,
)
from graphcopy.config import CopyConfig
from graphcopy.core.models import Column, ForeignKey
from graphcopy.orchestrator import CopyOrchestrator

SOURCE_SCHEMA = "public"
DEST_SCHEMA = "mirror"

A_COLUMNS = [Column("id", "integer"), Column("name", "text")]
B_COLUMNS = [Column("id", "integer"), Column("a_id", "integer"), Column("note", "text")]
C_COLUMNS = [Column("id", "integer"), Column("b_id", "integer")]
VERSION_COLUMNS = [Column("version", "text"), Column("applied", "boolean")]


def a_rows(count: int) -> list[tuple]:
    return [(i, f"a-{i}") for i in range(1, count + 1)]


def b_rows(count: int) -> list[tuple]:
    return [(i, (i % 3) + 1, f"b-{i}") for i in range(1, count + 1)]


def c_rows(count: int) -> list[tuple]:
    return [(i, i) for i in range(1, count + 1)]


@pytest.fixture
def source_db() -> StagingConnection:
    """
    Source database with tables A, B, C and version.

    Foreign keys: B -> A, C -> B. Row counts: A=3, B=25000, C=0.
    """
    conn = StagingConnection()
    conn.create_table(SOURCE_SCHEMA, "A", A_COLUMNS, a_rows(3))
    conn.create_table(SOURCE_SCHEMA, "B", B_COLUMNS, b_rows(25000))
    conn.create_table(SOURCE_SCHEMA, "C", C_COLUMNS)
    conn.create_table(SOURCE_SCHEMA, "version", VERSION_COLUMNS, [("42", True)])
    conn.add_foreign_key(SOURCE_SCHEMA, ForeignKey("B", "a_id", "A", "id"))
    conn.add_foreign_key(SOURCE_SCHEMA, ForeignKey("C", "b_id", "B", "id"))
    return conn


@pytest.fixture
def dest_db() -> StagingConnection:
    """Destination database with the same tables, holding stale rows in A and version."""
    conn = StagingConnection()
    conn.create_table(DEST_SCHEMA, "A", A_COLUMNS, [(100, "stale"), (101, "stale")])
    conn.create_table(DEST_SCHEMA, "B", B_COLUMNS)
    conn.create_table(DEST_SCHEMA, "C", C_COLUMNS)
    conn.create_table(DEST_SCHEMA, "version", VERSION_COLUMNS, [("7", True)])
    return conn


@pytest.fixture
def make_orchestrator():
    """Build a CopyOrchestrator wired to the staging backend."""

    def factory(config: CopyConfig | None = None) -> CopyOrchestrator:
        return CopyOrchestrator(
            config or CopyConfig(batch_size=10000),
            introspector_factory=StagingIntrospector,
            source_factory=StagingSource,
            writer_factory=StagingWriter,
        )

    return factory
