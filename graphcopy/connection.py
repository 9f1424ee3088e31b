"""Database connection setup."""

from __future__ import annotations

import logging
import time

import psycopg

from graphcopy.exceptions import ConnectionFailedError

logger = logging.getLogger(__name__)


def connect(url: str, timeout: float = 60.0, retry_interval: float = 2.0) -> psycopg.Connection:
    """
    Open a transactional (non-autocommit) connection, retrying while the
    server is unreachable.

    Args:
        url: PostgreSQL connection URL
        timeout: Seconds to keep retrying before giving up
        retry_interval: Seconds to wait between attempts

    Returns:
        Open psycopg connection

    Raises:
        ConnectionFailedError: If no connection succeeds within timeout
    """
    deadline = time.monotonic() + timeout
    attempt = 0
    while True:
        attempt += 1
        try:
            return psycopg.connect(url, autocommit=False)
        except psycopg.OperationalError as e:
            if time.monotonic() + retry_interval > deadline:
                raise ConnectionFailedError(
                    f"Unable to connect to the database after {attempt} attempts: {e}"
                ) from e
            logger.warning(f"Connection attempt {attempt} failed, retrying: {e}")
            time.sleep(retry_interval)
