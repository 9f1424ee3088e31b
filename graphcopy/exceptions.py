"""Custom exceptions with helpful error messages."""

from __future__ import annotations

from typing import Optional

from graphcopy.core.models import ForeignKey


class GraphCopyError(Exception):
    """Base exception for graphcopy errors."""

    phase = "unknown"


class DiscoveryError(GraphCopyError):
    """Metadata query failed."""

    phase = "discovery"

    def __init__(self, operation: str, schema: str, detail: str = ""):
        self.operation = operation
        self.schema = schema
        message = f"{operation}: metadata query failed for schema '{schema}'"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class GraphConsistencyError(GraphCopyError):
    """A foreign key references a table outside the known table set."""

    phase = "graph"

    def __init__(self, foreign_key: ForeignKey, missing: str):
        self.foreign_key = foreign_key
        self.missing = missing
        super().__init__(
            f"Foreign key {foreign_key} references table '{missing}', "
            f"which is not in the set of tables being copied.\n\n"
            f"Suggestions:\n"
            f"1. Copy the whole schema rather than a subset of its tables\n"
            f"2. Check that '{missing}' lives in the source schema"
        )


class CycleError(GraphCopyError):
    """The foreign key graph is not acyclic."""

    phase = "ordering"

    def __init__(self, tables: list[str]):
        self.tables = sorted(tables)
        tables_str = ", ".join(self.tables)
        super().__init__(
            f"Circular dependency detected involving tables: {tables_str}\n\n"
            f"The set of tables does not form a valid dependency order, "
            f"so no safe copy order exists.\n\n"
            f"Suggestions:\n"
            f"1. Check foreign key relationships for cycles\n"
            f"2. For self-referencing tables, set engine.ignore_self_references"
        )


class CopyError(GraphCopyError):
    """Reading or writing rows failed for a table."""

    phase = "copy"

    def __init__(self, table: str, detail: str, offset: Optional[int] = None):
        self.table = table
        self.offset = offset
        where = f" at row {offset}" if offset is not None else ""
        super().__init__(f"Copying table '{table}' failed{where}: {detail}")


class TransactionError(GraphCopyError):
    """A transaction could not be configured or committed."""

    phase = "transaction"


class ConnectionFailedError(GraphCopyError):
    """No connection could be established within the retry window."""

    phase = "connection"


class PermissionsSyncError(GraphCopyError):
    """Permissions sync failed."""

    phase = "permissions"
