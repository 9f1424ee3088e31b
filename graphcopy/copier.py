"""Batched row copy for a single table."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from typing import Any

import psycopg

from graphcopy.core.models import Column, TableCopyResult
from graphcopy.exceptions import CopyError
from graphcopy.statements import MAX_BIND_PARAMETERS

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10_000


class BatchCopier:
    """
    Stream rows from a source into bounded multi-row INSERT statements.

    Every statement binds rows x columns parameters, which must stay within
    the destination's per-statement limit. The effective batch size is the
    requested one (or DEFAULT_BATCH_SIZE) capped at that limit for the table's
    column count.
    """

    def __init__(
        self,
        batch_size: int | None = None,
        max_parameters: int = MAX_BIND_PARAMETERS,
    ):
        """
        Initialize copier.

        Args:
            batch_size: Rows per INSERT statement (None for the safe default)
            max_parameters: Maximum bind parameters per statement
        """
        if batch_size is not None and batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        self.batch_size = batch_size
        self.max_parameters = max_parameters

    def batch_size_for(self, column_count: int) -> int:
        """Effective rows per statement for a table with column_count columns."""
        limit = max(1, self.max_parameters // max(1, column_count))
        if self.batch_size is None:
            return min(DEFAULT_BATCH_SIZE, limit)
        if self.batch_size > limit:
            logger.warning(
                f"Batch size {self.batch_size} x {column_count} columns exceeds "
                f"{self.max_parameters} bind parameters, using {limit} rows per batch"
            )
            return limit
        return self.batch_size

    def copy_table(
        self,
        rows: Iterable[Sequence[Any]],
        writer,
        table: str,
        columns: Sequence[Column],
        delete_first: bool = False,
        conflict_key: Sequence[str] | None = None,
    ) -> TableCopyResult:
        """
        Copy a table's rows into the destination in batches.

        Args:
            rows: Source rows, values in the same order as columns
            writer: Destination writer (DirectWriter or StagingWriter)
            table: Table name
            columns: Column list used for both reading and writing
            delete_first: Delete all destination rows before inserting
            conflict_key: Upsert on these key columns instead of inserting

        Returns:
            TableCopyResult with the number of rows copied

        Raises:
            CopyError: If a row cannot be read or a batch cannot be written
        """
        if not columns:
            raise CopyError(table, "table has no columns")

        names = [col.name for col in columns]
        batch_size = self.batch_size_for(len(names))
        result = TableCopyResult(table=table, batch_size=batch_size)

        if delete_first:
            try:
                result.rows_deleted = writer.delete_all(table)
            except psycopg.Error as e:
                raise CopyError(table, f"deleting existing rows failed: {e}", offset=0) from e
            logger.info(f"{table}: deleted {result.rows_deleted} existing rows")

        batch: list[Sequence[Any]] = []
        read = 0
        try:
            try:
                for row in rows:
                    if len(row) != len(names):
                        raise CopyError(
                            table,
                            f"row has {len(row)} values but {len(names)} columns were selected",
                            offset=read,
                        )
                    batch.append(row)
                    read += 1
                    if len(batch) >= batch_size:
                        self._flush(writer, table, names, batch, result, conflict_key)
            except psycopg.Error as e:
                raise CopyError(table, f"reading source rows failed: {e}", offset=read) from e

            if batch:
                self._flush(writer, table, names, batch, result, conflict_key)
        finally:
            # Releases the source cursor when the copy stops early
            close = getattr(rows, "close", None)
            if close is not None:
                close()

        if result.rows_copied != read:
            raise CopyError(
                table, f"read {read} rows but wrote {result.rows_copied}", offset=read
            )

        logger.info(
            f"{table}: copied {result.rows_copied} rows in {result.statements} statements"
        )
        return result

    def _flush(
        self,
        writer,
        table: str,
        names: list[str],
        batch: list[Sequence[Any]],
        result: TableCopyResult,
        conflict_key: Sequence[str] | None,
    ) -> None:
        offset = result.rows_copied
        try:
            if conflict_key:
                written = writer.upsert_rows(table, names, batch, conflict_key)
            else:
                written = writer.insert_rows(table, names, batch)
        except psycopg.Error as e:
            raise CopyError(table, f"writing batch failed: {e}", offset=offset) from e

        if conflict_key:
            # DO NOTHING conflicts report fewer rows; count what was sent
            written = len(batch)
        elif written != len(batch):
            raise CopyError(
                table, f"batch of {len(batch)} rows wrote {written}", offset=offset
            )
        logger.debug(f"{table}: wrote rows {offset}-{offset + written - 1}")
        result.rows_copied += written
        result.statements += 1
        batch.clear()
