"""Core data models for graphcopy."""

from graphcopy.core.models import (
    Column,
    CopyPlan,
    CopyReport,
    ForeignKey,
    PlannedTable,
    TableCopyResult,
)

__all__ = [
    "Column",
    "CopyPlan",
    "CopyReport",
    "ForeignKey",
    "PlannedTable",
    "TableCopyResult",
]
