"""
Core data models for graphcopy.

Defines the data structures shared across the package: table metadata
returned by introspection, and the plan and report produced by a copy session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class Column:
    """A table column as returned by metadata discovery."""

    name: str
    data_type: str

    def __str__(self) -> str:
        return f"{self.name} ({self.data_type})"


@dataclass(frozen=True)
class ForeignKey:
    """
    A foreign key constraint column.

    Directed: from_table depends on to_table, so to_table must be copied first.
    """

    from_table: str
    from_column: str
    to_table: str
    to_column: str

    @property
    def is_self_reference(self) -> bool:
        """Check if this FK references the table it is declared on."""
        return self.from_table == self.to_table

    def __str__(self) -> str:
        return f"{self.from_table}.{self.from_column} -> {self.to_table}.{self.to_column}"


@dataclass
class TableCopyResult:
    """Outcome of copying a single table."""

    table: str
    rows_copied: int = 0
    rows_deleted: Optional[int] = None
    statements: int = 0
    batch_size: Optional[int] = None
    skipped: bool = False


@dataclass
class CopyReport:
    """Per-table results of a copy session, in copy order."""

    source_schema: str
    destination_schema: str
    tables: list[TableCopyResult] = field(default_factory=list)

    def add(self, result: TableCopyResult) -> None:
        """Append a table result."""
        self.tables.append(result)

    @property
    def total_rows(self) -> int:
        """Total rows copied across all tables."""
        return sum(result.rows_copied for result in self.tables)

    @property
    def copied_tables(self) -> list[str]:
        """Tables that were copied, in order."""
        return [result.table for result in self.tables if not result.skipped]

    @property
    def skipped_tables(self) -> list[str]:
        """Tables that were ordered but excluded from copying."""
        return [result.table for result in self.tables if result.skipped]

    def as_dict(self) -> dict[str, int]:
        """Map each copied table to its row count."""
        return {
            result.table: result.rows_copied
            for result in self.tables
            if not result.skipped
        }


@dataclass(frozen=True)
class PlannedTable:
    """A table in copy order, with the tables it depends on."""

    table: str
    depends_on: tuple[str, ...] = ()
    excluded: bool = False
    columns: tuple[Column, ...] = ()


@dataclass
class CopyPlan:
    """Ordered copy plan for a schema."""

    schema: str
    tables: list[PlannedTable] = field(default_factory=list)

    @property
    def order(self) -> list[str]:
        """Table names in copy order."""
        return [planned.table for planned in self.tables]
