"""
graphcopy - Copy PostgreSQL schemas in foreign key dependency order.

This package provides tools for:
- Ordering tables so referenced tables are copied before referencing ones
- Streaming rows between databases in bounded multi-row INSERT batches
- Refreshing a destination schema inside a single all-or-nothing transaction
- Syncing permission subjects with upserts
"""

__version__ = "0.1.0"

from graphcopy.copier import BatchCopier
from graphcopy.core.models import (
    Column,
    CopyPlan,
    CopyReport,
    ForeignKey,
    PlannedTable,
    TableCopyResult,
)
from graphcopy.dependency import TableGraph, TableNodeMap, build_graph
from graphcopy.exceptions import (
    ConnectionFailedError,
    CopyError,
    CycleError,
    DiscoveryError,
    GraphConsistencyError,
    GraphCopyError,
    PermissionsSyncError,
    TransactionError,
)
from graphcopy.orchestrator import CopyOrchestrator
from graphcopy.ordering import table_order, topological_order
from graphcopy.permissions import PermissionsSync
from graphcopy.statements import StatementBuilder

__all__ = [
    "BatchCopier",
    "Column",
    "ConnectionFailedError",
    "CopyError",
    "CopyOrchestrator",
    "CopyPlan",
    "CopyReport",
    "CycleError",
    "DiscoveryError",
    "ForeignKey",
    "GraphConsistencyError",
    "GraphCopyError",
    "PermissionsSync",
    "PermissionsSyncError",
    "PlannedTable",
    "StatementBuilder",
    "TableCopyResult",
    "TableGraph",
    "TableNodeMap",
    "TransactionError",
    "__version__",
    "build_graph",
    "table_order",
    "topological_order",
]
