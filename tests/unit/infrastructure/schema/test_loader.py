"""
Unit tests for the YAML table definition loader.
"""

import textwrap

import pytest

from pg_lightquery.exceptions import SchemaError
from pg_lightquery.infrastructure.schema import ColumnType
from pg_lightquery.infrastructure.schema.loader import (
    load_registry,
    load_table_schemas,
    parse_table_schemas,
)

TABLES_YAML = textwrap.dedent(
    """
    tables:
      users:
        columns:
          id: {type: INTEGER, primaryKey: true, autoIncrement: true}
          name: {type: TEXT, notNull: true}
          email: {type: TEXT, unique: true}
          isActive: {type: BOOLEAN, default: true}
          lastChangedBy: {type: VARCHAR, length: 64}
      posts:
        schema: blog
        columns:
          id: {type: INTEGER, primary_key: true}
          userId: {type: INTEGER, not_null: true}
          status: {type: ENUM, enumValues: [draft, live]}
          price: {type: NUMERIC, precision: 8, scale: 2}
    """
)


@pytest.fixture
def tables_file(tmp_path):
    path = tmp_path / "tables.yml"
    path.write_text(TABLES_YAML, encoding="utf-8")
    return path


class TestLoadTableSchemas:
    """Tests for load_table_schemas function."""

    def test_loads_tables_in_file_order(self, tables_file):
        schemas = load_table_schemas(tables_file)

        assert [schema.table_name for schema in schemas] == ["users", "posts"]

    def test_column_flags(self, tables_file):
        users, posts = load_table_schemas(tables_file)

        user_id = users.get_column("id")
        assert user_id.column_type is ColumnType.INTEGER
        assert user_id.primary_key and user_id.auto_increment
        assert users.get_column("name").not_null
        assert users.get_column("email").unique
        assert users.get_column("isActive").default == "TRUE"
        assert users.get_column("lastChangedBy").length == 64

        assert posts.pg_schema == "blog"
        assert posts.primary_keys == ("id",)
        assert posts.get_column("userId").not_null
        assert posts.get_column("status").enum_values == ("draft", "live")
        assert posts.get_column("price").precision == 8

    def test_missing_file(self, tmp_path):
        with pytest.raises(SchemaError, match="not found"):
            load_table_schemas(tmp_path / "missing.yml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")

        assert load_table_schemas(path) == []

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "broken.yml"
        path.write_text("tables: [unclosed", encoding="utf-8")

        with pytest.raises(SchemaError, match="Invalid YAML"):
            load_table_schemas(path)

    def test_load_registry(self, tables_file):
        registry = load_registry(str(tables_file))
        assert registry.names() == ["posts", "users"]


class TestParseTableSchemas:
    """Tests for parse_table_schemas validation."""

    def test_none_content(self):
        assert parse_table_schemas(None) == []

    def test_non_mapping(self):
        with pytest.raises(SchemaError, match="expected mapping"):
            parse_table_schemas(["users"])

    def test_unknown_column_option(self):
        data = {"tables": {"users": {"columns": {"id": {"type": "INTEGER", "primary": True}}}}}

        with pytest.raises(SchemaError, match="failed validation"):
            parse_table_schemas(data, source="inline.yml")

    def test_table_without_columns(self):
        with pytest.raises(SchemaError, match="failed validation"):
            parse_table_schemas({"tables": {"users": {"columns": {}}}})

    def test_unknown_type(self):
        data = {"tables": {"users": {"columns": {"id": {"type": "MONEY"}}}}}

        with pytest.raises(SchemaError, match="Unknown column type"):
            parse_table_schemas(data)
