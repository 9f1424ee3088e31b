"""Copy session orchestration across a whole schema."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable

import psycopg
from psycopg import IsolationLevel

from graphcopy.backends.direct import DirectSource, DirectWriter
from graphcopy.config import CopyConfig
from graphcopy.copier import BatchCopier
from graphcopy.core.models import CopyPlan, CopyReport, PlannedTable, TableCopyResult
from graphcopy.dependency import build_graph
from graphcopy.exceptions import CopyError
from graphcopy.introspection import SchemaIntrospector
from graphcopy.ordering import topological_order
from graphcopy.statements import StatementBuilder
from graphcopy.transaction import commit, transaction_scope

logger = logging.getLogger(__name__)


class CopyOrchestrator:
    """
    Copy every table of a source schema into a destination schema.

    A session reads from one SERIALIZABLE, read-only source transaction and
    writes through one destination transaction that is committed once, after
    every table has been copied. Any failure rolls back both, so the
    destination is either fully refreshed or left untouched.

    Example:
        >>> orchestrator = CopyOrchestrator(CopyConfig(batch_size=5000))
        >>> report = orchestrator.run(source_conn, dest_conn, "public", "mirror")
        >>> report.as_dict()
        {'tb_organization': 3, 'tb_machine': 25000}
    """

    def __init__(
        self,
        config: CopyConfig | None = None,
        builder: StatementBuilder | None = None,
        introspector_factory: Callable = SchemaIntrospector,
        source_factory: Callable | None = None,
        writer_factory: Callable = DirectWriter,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Copy settings (batch size, excluded tables, ...)
            builder: Statement builder (derived from config if omitted)
            introspector_factory: (conn, schema) -> metadata introspector
            source_factory: (conn, schema, builder) -> row source
            writer_factory: (conn, schema, builder) -> destination writer
        """
        self.config = config or CopyConfig()
        self.builder = builder or StatementBuilder.from_name(
            self.config.placeholder_format, self.config.max_bind_parameters
        )
        self.copier = BatchCopier(self.config.batch_size, self.builder.max_parameters)
        self.introspector_factory = introspector_factory
        self.source_factory = source_factory or self._direct_source
        self.writer_factory = writer_factory

    def _direct_source(self, conn, schema: str, builder: StatementBuilder) -> DirectSource:
        return DirectSource(conn, schema, builder, itersize=self.config.itersize)

    @property
    def excluded_tables(self) -> frozenset[str]:
        return frozenset(self.config.excluded_tables)

    def plan(self, source_conn, source_schema: str) -> CopyPlan:
        """
        Compute the copy order and column lists for a schema without copying anything.

        Raises:
            DiscoveryError: If metadata cannot be read
            GraphConsistencyError: If a foreign key leaves the schema
            CycleError: If the tables cannot be ordered
        """
        with transaction_scope(
            source_conn,
            name="source transaction",
            isolation_level=IsolationLevel.SERIALIZABLE,
            read_only=True,
        ):
            introspector = self.introspector_factory(source_conn, source_schema)
            plan = self._plan(introspector, source_schema)
            plan.tables = [
                dataclasses.replace(
                    planned, columns=tuple(introspector.list_columns(planned.table))
                )
                for planned in plan.tables
            ]
            return plan

    def _plan(self, introspector, schema: str) -> CopyPlan:
        tables = introspector.list_tables()
        foreign_keys = introspector.list_foreign_keys(tables)
        logger.info(f"Found {len(tables)} tables and {len(foreign_keys)} foreign keys in {schema}")

        graph = build_graph(
            tables, foreign_keys, ignore_self_references=self.config.ignore_self_references
        )
        plan = CopyPlan(schema=schema)
        for node in topological_order(graph):
            table = graph.nodes.table(node)
            plan.tables.append(
                PlannedTable(
                    table=table,
                    depends_on=tuple(graph.table_dependencies(table)),
                    excluded=table in self.excluded_tables,
                )
            )
        return plan

    def run(
        self,
        source_conn,
        destination_conn,
        source_schema: str,
        destination_schema: str,
    ) -> CopyReport:
        """
        Copy all tables from source_schema into destination_schema.

        Destination tables are first emptied in reverse dependency order, so
        referencing rows go before the rows they reference, then refilled in
        dependency order.

        Args:
            source_conn: Connection to the source database
            destination_conn: Connection to the destination database
            source_schema: Schema to copy from
            destination_schema: Schema to copy into

        Returns:
            CopyReport with per-table row counts, in copy order

        Raises:
            GraphCopyError: On any failure; nothing is committed
        """
        logger.info(f"Source schema: {source_schema}")
        logger.info(f"Destination schema: {destination_schema}")

        with transaction_scope(
            source_conn,
            name="source transaction",
            isolation_level=IsolationLevel.SERIALIZABLE,
            read_only=True,
        ), transaction_scope(destination_conn, name="destination transaction"):
            introspector = self.introspector_factory(source_conn, source_schema)
            source = self.source_factory(source_conn, source_schema, self.builder)
            writer = self.writer_factory(destination_conn, destination_schema, self.builder)

            plan = self._plan(introspector, source_schema)
            report = CopyReport(source_schema=source_schema, destination_schema=destination_schema)

            deleted = self._clear_destination(plan, writer)
            for planned in plan.tables:
                result = self._copy_planned(planned, introspector, source, writer)
                if not result.skipped:
                    result.rows_deleted = deleted[planned.table]
                report.add(result)

            commit(destination_conn, "destination transaction")

        logger.info(
            f"Copied {report.total_rows} rows across {len(report.copied_tables)} tables"
        )
        return report

    def _clear_destination(self, plan: CopyPlan, writer) -> dict[str, int]:
        """Delete every copied table's rows, referencing tables first."""
        deleted: dict[str, int] = {}
        for planned in reversed(plan.tables):
            if planned.excluded:
                continue
            table = planned.table
            try:
                deleted[table] = writer.delete_all(table)
            except psycopg.Error as e:
                raise CopyError(table, f"deleting existing rows failed: {e}", offset=0) from e
            logger.info(f"{table}: deleted {deleted[table]} existing rows")
        return deleted

    def _copy_planned(self, planned: PlannedTable, introspector, source, writer) -> TableCopyResult:
        table = planned.table
        if planned.depends_on:
            logger.info(
                f"{table} depends on {', '.join(planned.depends_on)} ({len(planned.depends_on)})"
            )
        else:
            logger.info(f"{table} has no dependencies")

        if planned.excluded:
            logger.info(f"{table}: excluded from copy, skipping")
            return TableCopyResult(table=table, skipped=True)

        columns = introspector.list_columns(table)
        logger.debug(f"{table}: {', '.join(str(col) for col in columns)}")
        return self.copier.copy_table(
            source.stream_rows(table, columns),
            writer,
            table,
            columns,
        )
