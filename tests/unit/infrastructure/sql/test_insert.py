"""
Unit tests for InsertBuilder and the INSERT statement node.
"""

import pytest

from pg_lightquery.exceptions import ValidationError
from pg_lightquery.infrastructure.schema import ColumnDef, ColumnType, TableSchema
from pg_lightquery.infrastructure.sql.dialects.postgresql import PostgreSQLDialect
from pg_lightquery.infrastructure.sql.operations.insert import InsertBuilder
from pg_lightquery.infrastructure.sql.operations.statements import (
    BoundValue,
    InsertStatement,
    Returning,
    SubqueryValue,
)


@pytest.fixture
def builder():
    return InsertBuilder(PostgreSQLDialect())


class TestInsertBuilder:
    """Tests for InsertBuilder.insert."""

    def test_insert_stamps_audit_column(self, builder, users_schema):
        """The audit column is appended last with the default user."""
        query = builder.insert(users_schema, {"name": "John", "email": "john@x.com"})

        assert query.sql_text == (
            'INSERT INTO users ("name","email","lastChangedBy") VALUES ($1,$2,$3)'
        )
        assert query.values == ("John", "john@x.com", "SERVER")

    def test_acting_user(self, builder, users_schema):
        query = builder.insert(users_schema, {"name": "John"}, id_user="user-42")
        assert query.values == ("John", "user-42")

    def test_audit_value_in_data_is_replaced(self, builder, users_schema):
        query = builder.insert(users_schema, {"lastChangedBy": "someone", "name": "John"})

        assert query.sql_text == 'INSERT INTO users ("name","lastChangedBy") VALUES ($1,$2)'
        assert query.values == ("John", "SERVER")

    def test_none_values_skipped(self, builder, users_schema):
        query = builder.insert(users_schema, {"name": "John", "email": None})
        assert query.values == ("John", "SERVER")

    def test_columns_outside_allow_list_dropped(self, builder, users_schema):
        query = builder.insert(
            users_schema, {"name": "John", "email": "john@x.com"}, allowed=["name"]
        )

        assert query.sql_text == 'INSERT INTO users ("name","lastChangedBy") VALUES ($1,$2)'
        assert query.values == ("John", "SERVER")

    def test_unknown_columns_dropped_with_star(self, builder, users_schema):
        """'*' resolves to the schema columns, so strangers never reach SQL."""
        query = builder.insert(users_schema, {"name": "John", "isAdmin": True})
        assert '"isAdmin"' not in query.sql_text

    def test_allow_list_outside_schema_rejected(self, builder, users_schema):
        with pytest.raises(ValidationError, match="not part of the table schema"):
            builder.insert(users_schema, {"name": "John"}, allowed=["name", "password"])

    def test_table_without_audit_column(self, builder, tags_schema):
        query = builder.insert(tags_schema, {"postId": 1, "tag": "python"})

        assert query.sql_text == 'INSERT INTO post_tags ("postId","tag") VALUES ($1,$2)'
        assert query.values == (1, "python")

    def test_default_values(self, builder, tags_schema):
        """Nothing to insert produces DEFAULT VALUES."""
        query = builder.insert(tags_schema, {})

        assert query.sql_text == "INSERT INTO post_tags DEFAULT VALUES"
        assert query.values == ()

    def test_audit_stamping_disabled(self, users_schema):
        builder = InsertBuilder(PostgreSQLDialect(), audit_column=None)
        query = builder.insert(users_schema, {"name": "John"})

        assert query.sql_text == 'INSERT INTO users ("name") VALUES ($1)'

    def test_custom_default_user(self, users_schema):
        builder = InsertBuilder(PostgreSQLDialect(), default_user="batch")
        assert builder.insert(users_schema, {"name": "John"}).values == ("John", "batch")

    def test_schema_qualified_table(self, builder):
        schema = TableSchema(
            "accounts",
            (ColumnDef("id", ColumnType.INTEGER, primary_key=True),),
            pg_schema="crm",
        )
        query = builder.insert(schema, {"id": 5})
        assert query.sql_text == 'INSERT INTO crm.accounts ("id") VALUES ($1)'

    @pytest.mark.parametrize(
        "return_field, suffix",
        [
            ("*", " RETURNING *"),
            ("id", ' RETURNING "id"'),
            (["id", "name"], ' RETURNING "id", "name"'),
        ],
    )
    def test_returning(self, builder, users_schema, return_field, suffix):
        query = builder.insert(users_schema, {"name": "John"}, return_field=return_field)
        assert query.sql_text.endswith(suffix)

    def test_returning_leaves_values_unchanged(self, builder, users_schema):
        """Only the RETURNING clause depends on return_field."""
        data = {"name": "John", "email": "john@x.com"}
        plain = builder.insert(users_schema, data)
        returning = [
            builder.insert(users_schema, data, return_field=field)
            for field in ("*", "id", ["id", "name"])
        ]

        for query in returning:
            assert query.values == plain.values == ("John", "john@x.com", "SERVER")
            head, _, tail = query.sql_text.partition(" RETURNING ")
            assert head == plain.sql_text
            assert tail

    def test_unknown_returning_column(self, builder, users_schema):
        with pytest.raises(ValidationError, match="Returning column"):
            builder.insert(users_schema, {"name": "John"}, return_field="password")


class TestUpsert:
    """Tests for InsertBuilder.upsert."""

    def test_upsert_updates_non_key_columns(self, builder, users_schema):
        query = builder.upsert(users_schema, {"id": 1, "name": "John"})

        assert query.sql_text == (
            'INSERT INTO users ("id","name","lastChangedBy") VALUES ($1,$2,$3) '
            'ON CONFLICT ("id") DO UPDATE SET '
            '"name" = EXCLUDED."name", "lastChangedBy" = EXCLUDED."lastChangedBy"'
        )
        assert query.values == (1, "John", "SERVER")

    def test_upsert_only_keys_does_nothing(self, builder, tags_schema):
        query = builder.upsert(tags_schema, {"postId": 1, "tag": "python"})

        assert query.sql_text == (
            'INSERT INTO post_tags ("postId","tag") VALUES ($1,$2) '
            'ON CONFLICT ("postId", "tag") DO NOTHING'
        )

    def test_upsert_with_returning(self, builder, users_schema):
        query = builder.upsert(users_schema, {"id": 1, "name": "John"}, return_field="*")
        assert query.sql_text.endswith('EXCLUDED."lastChangedBy" RETURNING *')

    def test_upsert_requires_primary_key(self, builder):
        schema = TableSchema("logs", (ColumnDef("message", ColumnType.TEXT),))

        with pytest.raises(ValidationError, match="primary key"):
            builder.upsert(schema, {"message": "hello"})


class TestInsertStatement:
    """Tests for the INSERT node used by chains."""

    def test_parameter_count_ignores_subqueries(self):
        statement = InsertStatement(
            "posts",
            columns=("title", "userId"),
            slots=(BoundValue("Hi"), SubqueryValue("u", "id")),
        )

        query = statement.render()

        assert statement.parameter_count == 1
        assert query.sql_text == (
            'INSERT INTO posts ("title","userId") VALUES ($1,(SELECT "id" FROM u))'
        )
        assert query.values == ("Hi",)

    def test_with_reference_replaces_existing_slot(self):
        statement = InsertStatement(
            "posts", columns=("userId", "title"), slots=(BoundValue(9), BoundValue("Hi"))
        )

        rendered = statement.with_reference("userId", "u", "id").render()

        assert rendered.sql_text == (
            'INSERT INTO posts ("userId","title") VALUES ((SELECT "id" FROM u),$1)'
        )
        assert rendered.values == ("Hi",)

    def test_with_reference_appends_missing_column(self):
        statement = InsertStatement("posts", columns=("title",), slots=(BoundValue("Hi"),))
        updated = statement.with_reference("userId", "u", "id")

        assert updated.columns == ("title", "userId")
        assert statement.columns == ("title",)

    def test_mismatched_slots(self):
        with pytest.raises(ValueError):
            InsertStatement("posts", columns=("title", "userId"), slots=(BoundValue("Hi"),))


class TestReturning:
    """Tests for Returning.parse."""

    def test_none(self):
        returning = Returning.parse(None)
        assert not returning
        assert returning == Returning()

    def test_star_in_list(self):
        assert Returning.parse(["id", "*"]).star

    def test_duplicates_collapsed(self):
        assert Returning.parse(["id", "name", "id"]).columns == ("id", "name")
