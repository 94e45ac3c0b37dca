"""Shared pytest fixtures: table schemas, settings isolation and fake connections.

No test in this suite needs a running database; psycopg2 pools and
connections are replaced with MagicMock objects.
"""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest

# Keep Settings() independent of whatever .env the developer has locally
os.environ.setdefault("PGLQ_ENV_FILE", "tests/.env.test-does-not-exist")

from pg_lightquery.config import get_settings
from pg_lightquery.infrastructure.schema import ColumnDef, ColumnType, TableSchema


@pytest.fixture(autouse=True)
def _reset_settings_cache(monkeypatch):
    """Every test starts from the default configuration."""
    for name in (
        "DATABASE_URL",
        "ENVIRONMENT",
        "PGLQ_AUDIT_COLUMN",
        "PGLQ_DEFAULT_AUDIT_USER",
        "PGLQ_TABLES_CONFIG",
        "DB_POOL_SIZE",
        "DB_CONNECT_TIMEOUT",
        "DB_RETRY_ATTEMPTS",
        "DB_RETRY_BACKOFF_MS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def users_schema() -> TableSchema:
    """Users table with an auto-increment key and the audit column."""
    return TableSchema(
        table_name="users",
        columns=(
            ColumnDef("id", ColumnType.INTEGER, primary_key=True, auto_increment=True),
            ColumnDef("name", ColumnType.TEXT, not_null=True),
            ColumnDef("email", ColumnType.TEXT, unique=True),
            ColumnDef("createdAt", ColumnType.TIMESTAMP, not_null=True, default="NOW()"),
            ColumnDef("lastChangedBy", ColumnType.VARCHAR, length=64),
        ),
    )


@pytest.fixture
def posts_schema() -> TableSchema:
    """Posts table referencing users through userId."""
    return TableSchema(
        table_name="posts",
        columns=(
            ColumnDef("id", ColumnType.INTEGER, primary_key=True, auto_increment=True),
            ColumnDef("title", ColumnType.TEXT, not_null=True),
            ColumnDef("userId", ColumnType.INTEGER, not_null=True),
            ColumnDef("metadata", ColumnType.JSONB),
            ColumnDef("lastChangedBy", ColumnType.VARCHAR, length=64),
        ),
    )


@pytest.fixture
def tags_schema() -> TableSchema:
    """Table without audit column and with a composite primary key."""
    return TableSchema(
        table_name="post_tags",
        columns=(
            ColumnDef("postId", ColumnType.INTEGER, primary_key=True),
            ColumnDef("tag", ColumnType.VARCHAR, primary_key=True, length=32),
        ),
    )


@pytest.fixture
def fake_connection():
    """Fake psycopg2 connection with a context-aware cursor, as (conn, cursor)."""
    conn = MagicMock()
    cursor = MagicMock()
    cursor.__enter__.return_value = cursor
    cursor.__exit__.return_value = False
    conn.cursor.return_value = cursor
    return conn, cursor


@pytest.fixture
def fake_gateway():
    """Gateway double recording what it was asked to run."""
    gateway = MagicMock()
    gateway.execute.return_value = [{"id": 1}]
    gateway.execute_transaction.return_value = [[{"id": 1}]]
    return gateway
