"""Unit tests for the structured logging setup.

Tests cover:
- get_logger returns a structlog logger rendering JSON with ISO timestamps
- Sanitization of credentials and connection strings
- Context binding
- Builder events reaching the standard logging tree
"""

import json
import logging

import pytest
import structlog

from pg_lightquery.infrastructure.sql.operations.where import build_where_clause
from pg_lightquery.utils.logging import (
    REDACTED_VALUE,
    bind_context,
    get_logger,
    sanitize_for_logging,
)


def _last_event(caplog: pytest.LogCaptureFixture) -> dict:
    assert caplog.records, "nothing was logged"
    return json.loads(caplog.records[-1].message)


@pytest.mark.unit
def test_get_logger_returns_bound_logger() -> None:
    """get_logger exposes the structlog logging API."""
    logger = get_logger("pg_lightquery.tests")

    assert hasattr(logger, "bind")
    assert hasattr(logger, "debug")
    assert hasattr(logger, "error")


@pytest.mark.unit
def test_json_output_structure(caplog: pytest.LogCaptureFixture) -> None:
    """Each record is one JSON object with timestamp, level, logger and event."""
    caplog.set_level(logging.INFO)

    get_logger("pg_lightquery.tests").info("query.built", table="users", parameter_count=2)

    log_data = _last_event(caplog)
    assert log_data["event"] == "query.built"
    assert log_data["level"] == "info"
    assert log_data["logger"] == "pg_lightquery.tests"
    assert log_data["table"] == "users"
    assert log_data["parameter_count"] == 2
    assert "T" in log_data["timestamp"]


@pytest.mark.unit
@pytest.mark.parametrize(
    "key",
    ["password", "db_password", "access_token", "client_secret", "DATABASE_URL", "dsn", "connection_url"],
)
def test_sensitive_keys_redacted(key: str) -> None:
    """Credential-like keys are replaced, everything else is kept."""
    sanitized = sanitize_for_logging({key: "value", "table": "users"})

    assert sanitized[key] == REDACTED_VALUE
    assert sanitized["table"] == "users"


@pytest.mark.unit
def test_sanitize_nested_dicts() -> None:
    data = {"step": "u", "connection": {"password": "x", "host": "db"}}

    sanitized = sanitize_for_logging(data)

    assert sanitized["connection"] == {"password": REDACTED_VALUE, "host": "db"}
    assert data["connection"]["password"] == "x"


@pytest.mark.unit
def test_sanitization_in_logged_output(caplog: pytest.LogCaptureFixture) -> None:
    """Sensitive values never reach the rendered record."""
    caplog.set_level(logging.INFO)

    get_logger("pg_lightquery.tests").info(
        "database.gateway.initialized",
        connection_url="postgresql://app:hunter2@db/app",
        pool_size=5,
    )

    log_data = _last_event(caplog)
    assert log_data["connection_url"] == REDACTED_VALUE
    assert log_data["pool_size"] == 5
    assert "hunter2" not in caplog.records[-1].message


@pytest.mark.unit
def test_context_binding_persists(caplog: pytest.LogCaptureFixture) -> None:
    """Bound fields appear on every subsequent record."""
    caplog.set_level(logging.INFO)

    logger = bind_context(chain_id="c_123", table="users")
    logger.info("chain.step.added", step="u")
    logger.info("chain.step.added", step="p")

    steps = []
    for record in caplog.records[-2:]:
        log_data = json.loads(record.message)
        assert log_data["chain_id"] == "c_123"
        assert log_data["table"] == "users"
        steps.append(log_data["step"])
    assert steps == ["u", "p"]


@pytest.mark.unit
def test_bind_context_returns_bound_logger() -> None:
    assert isinstance(bind_context(table="users"), structlog.stdlib.BoundLogger)


@pytest.mark.unit
def test_dropped_filter_key_logged_at_debug(caplog: pytest.LogCaptureFixture) -> None:
    """Filter keys outside the allow-list leave a debug trace."""
    caplog.set_level(logging.DEBUG)

    build_where_clause({"password": "x"}, ["name"], table="users")

    events = [json.loads(record.message) for record in caplog.records]
    dropped = [event for event in events if event["event"] == "query.where.field_dropped"]
    assert dropped
    assert dropped[-1]["key"] == "password"
    assert dropped[-1]["table"] == "users"
    assert dropped[-1]["level"] == "debug"
