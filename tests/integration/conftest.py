"""Fixtures for tests against a live PostgreSQL server.

Set GRAPHCOPY_TEST_DATABASE_URL to a database the tests may create and drop
schemas in. Without it every integration test is skipped.
"""

import os

import psycopg
import pytest
from psycopg import Connection

SOURCE = "gc_source"
DEST = "gc_dest"
PERMS = "gc_perms"


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.environ.get("GRAPHCOPY_TEST_DATABASE_URL")
    if not url:
        pytest.skip("GRAPHCOPY_TEST_DATABASE_URL not set")
    return url


@pytest.fixture
def schemas(database_url: str):
    """
    Create source, destination and permissions schemas.

    Source: a(3 rows) <- b(25000 rows) <- c(empty), plus version.
    Destination: the same tables, with stale rows in a and version.
    """
    with psycopg.connect(database_url, autocommit=True) as conn:
        for schema in (SOURCE, DEST, PERMS):
            conn.execute(f"DROP SCHEMA IF EXISTS {schema} CASCADE")
            conn.execute(f"CREATE SCHEMA {schema}")

        for schema in (SOURCE, DEST):
            conn.execute(f"CREATE TABLE {schema}.a (id INTEGER PRIMARY KEY, name TEXT NOT NULL)")
            conn.execute(f"""
                CREATE TABLE {schema}.b (
                    id INTEGER PRIMARY KEY,
                    a_id INTEGER NOT NULL REFERENCES {schema}.a(id),
                    note TEXT
                )
            """)
            conn.execute(f"""
                CREATE TABLE {schema}.c (
                    id INTEGER PRIMARY KEY,
                    b_id INTEGER NOT NULL REFERENCES {schema}.b(id)
                )
            """)
            conn.execute(f"CREATE TABLE {schema}.version (version TEXT, applied BOOLEAN)")

        conn.execute(f"INSERT INTO {SOURCE}.a VALUES (1, 'a-1'), (2, 'a-2'), (3, 'a-3')")
        conn.execute(f"""
            INSERT INTO {SOURCE}.b
            SELECT g, (g % 3) + 1, 'b-' || g FROM generate_series(1, 25000) AS g
        """)
        conn.execute(f"INSERT INTO {SOURCE}.version VALUES ('42', true)")
        conn.execute(f"INSERT INTO {DEST}.a VALUES (100, 'stale'), (101, 'stale')")
        conn.execute(f"INSERT INTO {DEST}.version VALUES ('7', true)")

        conn.execute(f"""
            CREATE TABLE {PERMS}.subjects (
                id INTEGER PRIMARY KEY, subject_id TEXT NOT NULL, subject_type TEXT NOT NULL
            )
        """)
        for table in ("resource_types", "resources", "permission_levels", "permissions"):
            conn.execute(f"CREATE TABLE {PERMS}.{table} (id INTEGER PRIMARY KEY)")
        conn.execute(
            f"INSERT INTO {PERMS}.subjects VALUES (1, 'u-1', 'user'), (2, 'g-1', 'group')"
        )
        conn.execute(f"""
            CREATE TABLE {DEST}.subjects (
                id INTEGER PRIMARY KEY, subject_id TEXT NOT NULL, subject_type TEXT NOT NULL
            )
        """)
        conn.execute(f"INSERT INTO {DEST}.subjects VALUES (1, 'u-old', 'user')")

    yield SOURCE, DEST, PERMS

    with psycopg.connect(database_url, autocommit=True) as conn:
        for schema in (SOURCE, DEST, PERMS):
            conn.execute(f"DROP SCHEMA IF EXISTS {schema} CASCADE")


@pytest.fixture
def source_conn(database_url: str, schemas) -> Connection:
    conn = psycopg.connect(database_url, autocommit=False)
    yield conn
    conn.close()


@pytest.fixture
def dest_conn(database_url: str, schemas) -> Connection:
    conn = psycopg.connect(database_url, autocommit=False)
    yield conn
    conn.close()


@pytest.fixture
def check_conn(database_url: str, schemas) -> Connection:
    """Separate session for checking what other sessions committed."""
    conn = psycopg.connect(database_url, autocommit=True)
    yield conn
    conn.close()
