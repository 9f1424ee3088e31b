"""Permissions entity sync."""

from __future__ import annotations

import logging
from collections.abc import Callable

import psycopg

from graphcopy.backends.direct import DirectSource, DirectWriter
from graphcopy.config import PermissionsConfig
from graphcopy.copier import BatchCopier
from graphcopy.core.models import Column, TableCopyResult
from graphcopy.exceptions import GraphCopyError, PermissionsSyncError
from graphcopy.statements import StatementBuilder
from graphcopy.transaction import commit, transaction_scope

logger = logging.getLogger(__name__)


class PermissionsSync:
    """
    Upsert the permission subjects into a destination schema.

    The permission tables are locked on the source in EXCLUSIVE mode for the
    duration of the read, so concurrent writers cannot change them while the
    subjects are copied. Existing destination rows are updated by key, never
    deleted.
    """

    def __init__(
        self,
        config: PermissionsConfig | None = None,
        builder: StatementBuilder | None = None,
        source_factory: Callable = DirectSource,
        writer_factory: Callable = DirectWriter,
        batch_size: int | None = None,
    ):
        self.config = config or PermissionsConfig()
        self.builder = builder or StatementBuilder()
        self.copier = BatchCopier(batch_size, self.builder.max_parameters)
        self.source_factory = source_factory
        self.writer_factory = writer_factory

    def run(self, permissions_conn, destination_conn, destination_schema: str) -> TableCopyResult:
        """
        Sync the subjects table from the permissions database.

        Args:
            permissions_conn: Connection to the permissions database
            destination_conn: Connection to the destination database
            destination_schema: Schema holding the destination subjects table

        Returns:
            TableCopyResult for the entity table

        Raises:
            PermissionsSyncError: If the sync fails; nothing is committed
        """
        table = self.config.entity_table
        columns = [Column(name=name, data_type="") for name in self.config.columns]

        try:
            with transaction_scope(
                permissions_conn, name="permissions transaction"
            ), transaction_scope(destination_conn, name="destination transaction"):
                source = self.source_factory(
                    permissions_conn, self.config.source_schema, self.builder
                )
                writer = self.writer_factory(destination_conn, destination_schema, self.builder)

                # Only concurrent reads can happen while the lock is held
                source.lock_tables(self.config.lock_tables)
                logger.info(f"Locked {', '.join(self.config.lock_tables)}")

                result = self.copier.copy_table(
                    source.stream_rows(table, columns),
                    writer,
                    table,
                    columns,
                    conflict_key=self.config.conflict_key,
                )
                commit(destination_conn, "destination transaction")
        except (GraphCopyError, psycopg.Error) as e:
            raise PermissionsSyncError(f"subject migration failed: {e}") from e

        logger.info(f"Synced {result.rows_copied} {table} rows into {destination_schema}")
        return result
