"""Scoped transaction handling for source and destination connections."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import psycopg
from psycopg import IsolationLevel

from graphcopy.exceptions import TransactionError

logger = logging.getLogger(__name__)


def rollback_quietly(conn, name: str = "transaction") -> None:
    """
    Roll back a connection's transaction, logging any failure.

    Rolling back after an explicit commit is a no-op: the connection is idle,
    so there is nothing to discard and nothing to report.
    """
    try:
        conn.rollback()
    except psycopg.Error as e:
        logger.warning(f"Error rolling back {name}: {e}")


@contextmanager
def transaction_scope(
    conn,
    name: str = "transaction",
    isolation_level: IsolationLevel | None = None,
    read_only: bool | None = None,
) -> Iterator:
    """
    Run a block inside a transaction that is always rolled back on exit.

    The transaction begins implicitly with the first statement, using the
    given isolation level and access mode. Committing is the caller's job;
    whatever is left uncommitted when the block exits, normally or by an
    exception, is rolled back.

    Args:
        conn: Connection, not in autocommit mode and not inside a transaction
        name: Label used in log messages and errors
        isolation_level: Isolation level for the transaction
        read_only: Start a read-only transaction

    Raises:
        TransactionError: If the connection cannot be configured
    """
    try:
        if isolation_level is not None:
            conn.isolation_level = isolation_level
        if read_only is not None:
            conn.read_only = read_only
    except psycopg.Error as e:
        raise TransactionError(f"Could not configure {name}: {e}") from e

    try:
        yield conn
    finally:
        rollback_quietly(conn, name)


def commit(conn, name: str = "transaction") -> None:
    """Commit a connection's transaction, wrapping driver errors."""
    try:
        conn.commit()
    except psycopg.Error as e:
        raise TransactionError(f"Could not commit {name}: {e}") from e
    logger.info(f"Committed {name}")
