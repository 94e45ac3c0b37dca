"""
Unit tests for the PostgreSQL dialect.
"""

import pytest

from pg_lightquery.infrastructure.sql.dialects.postgresql import PostgreSQLDialect


class TestPostgreSQLDialect:
    """Tests for PostgreSQL dialect."""

    @pytest.fixture
    def dialect(self):
        return PostgreSQLDialect()

    def test_dialect_name(self, dialect):
        """Dialect should have correct name."""
        assert dialect.name == "postgresql"

    def test_quote_identifier(self, dialect):
        """Quote should use double quotes."""
        assert dialect.quote("lastChangedBy") == '"lastChangedBy"'

    def test_qualify_table(self, dialect):
        """Qualify should add schema prefix."""
        assert dialect.qualify("users", schema="crm") == "crm.users"

    def test_placeholder(self, dialect):
        assert dialect.placeholder(1) == "$1"
        assert dialect.placeholder(12) == "$12"

    def test_build_insert(self, dialect):
        """Simple INSERT statement."""
        sql = dialect.build_insert(
            table="users",
            columns=["name", "email"],
            placeholders=["$1", "$2"],
        )

        assert sql == 'INSERT INTO users ("name","email") VALUES ($1,$2)'

    def test_build_insert_with_schema(self, dialect):
        sql = dialect.build_insert("users", ["name"], ["$1"], schema="crm")
        assert sql == 'INSERT INTO crm.users ("name") VALUES ($1)'

    def test_build_insert_without_columns(self, dialect):
        """No columns means DEFAULT VALUES."""
        assert dialect.build_insert("users", [], []) == "INSERT INTO users DEFAULT VALUES"

    def test_build_insert_on_conflict_do_nothing(self, dialect):
        """INSERT ... ON CONFLICT DO NOTHING."""
        sql = dialect.build_insert_on_conflict_do_nothing(
            table="post_tags",
            columns=["postId", "tag"],
            placeholders=["$1", "$2"],
            conflict_columns=["postId", "tag"],
        )

        assert sql == (
            'INSERT INTO post_tags ("postId","tag") VALUES ($1,$2) '
            'ON CONFLICT ("postId", "tag") DO NOTHING'
        )

    def test_build_insert_on_conflict_do_update(self, dialect):
        """INSERT ... ON CONFLICT DO UPDATE overwrites from EXCLUDED."""
        sql = dialect.build_insert_on_conflict_do_update(
            table="users",
            columns=["id", "name", "email"],
            placeholders=["$1", "$2", "$3"],
            conflict_columns=["id"],
            update_columns=["name", "email"],
        )

        assert sql == (
            'INSERT INTO users ("id","name","email") VALUES ($1,$2,$3) '
            'ON CONFLICT ("id") DO UPDATE SET '
            '"name" = EXCLUDED."name", "email" = EXCLUDED."email"'
        )

    def test_build_update(self, dialect):
        sql = dialect.build_update("users", ["name", "email"], ["$1", "$2"], '"id" = $3')
        assert sql == 'UPDATE users SET "name" = $1, "email" = $2 WHERE "id" = $3'

    def test_build_update_without_where(self, dialect):
        sql = dialect.build_update("users", ["name"], ["$1"])
        assert sql == 'UPDATE users SET "name" = $1'

    def test_build_returning(self, dialect):
        """RETURNING star, columns, or nothing."""
        assert dialect.build_returning([], star=True) == "RETURNING *"
        assert dialect.build_returning(["id", "name"]) == 'RETURNING "id", "name"'
        assert dialect.build_returning([]) == ""

    def test_build_select(self, dialect):
        assert dialect.build_select("users", ["id", "name"]) == 'SELECT "id", "name" FROM users'
        assert dialect.build_select("users", []) == "SELECT * FROM users"
        assert (
            dialect.build_select("users", [], 'WHERE "id" = $1', schema="crm")
            == 'SELECT * FROM crm.users WHERE "id" = $1'
        )

    def test_build_scalar_subquery(self, dialect):
        assert dialect.build_scalar_subquery("u", "id") == '(SELECT "id" FROM u)'

    def test_build_with(self, dialect):
        """CTE bodies are joined and the final select is terminated."""
        sql = dialect.build_with(
            [("u", "INSERT INTO users DEFAULT VALUES RETURNING *"), ("p", "SELECT 1")],
            "u",
            [],
        )

        assert sql == (
            "WITH u AS (INSERT INTO users DEFAULT VALUES RETURNING *), "
            "p AS (SELECT 1) SELECT * FROM u;"
        )

    def test_build_with_projection(self, dialect):
        sql = dialect.build_with([("u", "SELECT 1")], "u", ["id"])
        assert sql.endswith('SELECT "id" FROM u;')
