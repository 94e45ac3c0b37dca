"""
PostgreSQL-specific SQL dialect implementation.

Provides PostgreSQL-specific SQL syntax for positional placeholders, INSERT
and UPDATE statements, conflict handling, RETURNING projections and CTEs.
"""

from typing import List, Optional, Sequence

from ..core.identifier import qualify_table, quote_identifier


class PostgreSQLDialect:
    """PostgreSQL SQL dialect implementation."""

    name = "postgresql"

    def quote(self, identifier: str) -> str:
        """Quote an identifier using PostgreSQL syntax (double quotes)."""
        return quote_identifier(identifier)

    def qualify(self, table: str, schema: Optional[str] = None) -> str:
        """Create a table reference, optionally schema-qualified."""
        return qualify_table(table, schema)

    def placeholder(self, index: int) -> str:
        """Positional parameter marker ($1-based)."""
        return f"${index}"

    def build_insert(
        self,
        table: str,
        columns: List[str],
        placeholders: List[str],
        schema: Optional[str] = None,
    ) -> str:
        """
        Build a simple INSERT statement.

        Args:
            table: Table name
            columns: List of column names
            placeholders: Value expressions, one per column
            schema: Optional schema name

        Returns:
            INSERT SQL statement
        """
        qualified_table = self.qualify(table, schema)
        if not columns:
            return f"INSERT INTO {qualified_table} DEFAULT VALUES"
        quoted_cols = ",".join(self.quote(c) for c in columns)
        values = ",".join(placeholders)
        return f"INSERT INTO {qualified_table} ({quoted_cols}) VALUES ({values})"

    def build_insert_on_conflict_do_nothing(
        self,
        table: str,
        columns: List[str],
        placeholders: List[str],
        conflict_columns: List[str],
        schema: Optional[str] = None,
    ) -> str:
        """Build INSERT ... ON CONFLICT DO NOTHING statement."""
        base_insert = self.build_insert(table, columns, placeholders, schema)
        conflict_cols = ", ".join(self.quote(c) for c in conflict_columns)
        return f"{base_insert} ON CONFLICT ({conflict_cols}) DO NOTHING"

    def build_insert_on_conflict_do_update(
        self,
        table: str,
        columns: List[str],
        placeholders: List[str],
        conflict_columns: List[str],
        update_columns: List[str],
        schema: Optional[str] = None,
    ) -> str:
        """
        Build INSERT ... ON CONFLICT DO UPDATE statement.

        Args:
            table: Table name
            columns: List of column names to insert
            placeholders: Value expressions, one per column
            conflict_columns: Columns for conflict detection
            update_columns: Columns overwritten from EXCLUDED on conflict
            schema: Optional schema name

        Returns:
            INSERT ... ON CONFLICT DO UPDATE SQL statement
        """
        base_insert = self.build_insert(table, columns, placeholders, schema)
        conflict_cols = ", ".join(self.quote(c) for c in conflict_columns)
        update_set = ", ".join(
            f"{self.quote(col)} = EXCLUDED.{self.quote(col)}" for col in update_columns
        )
        return f"{base_insert} ON CONFLICT ({conflict_cols}) DO UPDATE SET {update_set}"

    def build_update(
        self,
        table: str,
        columns: List[str],
        placeholders: List[str],
        where_sql: str = "",
        schema: Optional[str] = None,
    ) -> str:
        """Build an UPDATE ... SET ... [WHERE ...] statement."""
        qualified_table = self.qualify(table, schema)
        assignments = ", ".join(
            f"{self.quote(col)} = {expr}" for col, expr in zip(columns, placeholders)
        )
        sql = f"UPDATE {qualified_table} SET {assignments}"
        if where_sql:
            sql += f" WHERE {where_sql}"
        return sql

    def build_returning(self, columns: Sequence[str], star: bool = False) -> str:
        """RETURNING clause for ``*`` or an explicit column list; empty when neither."""
        if star:
            return "RETURNING *"
        if not columns:
            return ""
        return "RETURNING " + ", ".join(self.quote(c) for c in columns)

    def build_select(
        self,
        table: str,
        columns: Sequence[str],
        clause: str = "",
        schema: Optional[str] = None,
    ) -> str:
        """SELECT <columns|*> FROM <table> [clause]."""
        projection = ", ".join(self.quote(c) for c in columns) if columns else "*"
        sql = f"SELECT {projection} FROM {self.qualify(table, schema)}"
        if clause:
            sql += f" {clause}"
        return sql

    def build_scalar_subquery(self, source: str, column: str) -> str:
        """``(SELECT "column" FROM source)`` for reading one value out of a CTE."""
        return f"(SELECT {self.quote(column)} FROM {self.qualify(source)})"

    def build_with(
        self, ctes: Sequence[tuple], final_source: str, final_columns: Sequence[str]
    ) -> str:
        """Combine ``(name, body)`` pairs into ``WITH ... SELECT ... FROM ...;``."""
        definitions = ", ".join(f"{self.qualify(name)} AS ({body})" for name, body in ctes)
        projection = (
            ", ".join(self.quote(c) for c in final_columns) if final_columns else "*"
        )
        return f"WITH {definitions} SELECT {projection} FROM {self.qualify(final_source)};"
