"""
Unit tests for placeholder scanning, shifting and fragment merging.
"""

import pytest

from pg_lightquery.infrastructure.sql.core.placeholders import (
    adjust_placeholders,
    find_max_placeholder,
    iter_tokens,
    merge_fragments,
    strip_terminators,
)
from pg_lightquery.infrastructure.sql.core.query import QueryObject


class TestFindMaxPlaceholder:
    """Tests for find_max_placeholder function."""

    @pytest.mark.parametrize(
        "sql, expected",
        [
            ("SELECT * FROM t WHERE a = $1 AND b = $3", 3),
            ("SELECT 1", 0),
            ("SELECT '$9' AS price", 0),
            ('SELECT "$5" FROM t WHERE a = $1', 1),
            ("SELECT $$ $7 $$, $1", 1),
            ("SELECT $fn$ $4 $fn$ WHERE a = $2", 2),
            ("-- $9\nSELECT $1", 1),
            ("/* $9 */ SELECT $2", 2),
            ("SELECT E'it\\'s $3' WHERE a = $1", 1),
            ("SELECT $12 + $2", 12),
        ],
    )
    def test_scans_only_real_placeholders(self, sql, expected):
        """Literals, identifiers, dollar bodies and comments are skipped."""
        assert find_max_placeholder(sql) == expected


class TestIterTokens:
    """Tests for iter_tokens function."""

    def test_token_kinds(self):
        tokens = list(iter_tokens("a = $1 AND b = 'x'"))

        assert tokens == [
            ("text", "a = "),
            ("placeholder", "1"),
            ("text", " AND b = "),
            ("quoted", "'x'"),
        ]

    def test_tokens_rebuild_input(self):
        """Placeholders aside, the tokens concatenate back to the input."""
        sql = 'SELECT "a" FROM t WHERE b = \'$1\' -- note'
        assert "".join(text for _, text in iter_tokens(sql)) == sql


class TestAdjustPlaceholders:
    """Tests for adjust_placeholders function."""

    def test_shift(self):
        """Every placeholder moves by the offset."""
        assert adjust_placeholders('"name" = $1 AND "age" > $2', 3) == '"name" = $4 AND "age" > $5'

    def test_zero_offset_is_identity(self):
        sql = '"a" = $1'
        assert adjust_placeholders(sql, 0) is sql

    def test_shifts_compose(self):
        """Shifting by a then b equals shifting by a + b."""
        sql = '"a" = $1 OR "b" IN ($2, $3)'
        assert adjust_placeholders(adjust_placeholders(sql, 2), 3) == adjust_placeholders(sql, 5)

    def test_multi_digit_indexes(self):
        assert adjust_placeholders("$10 AND $1", 1) == "$11 AND $2"

    def test_literals_untouched(self):
        """$n inside quotes is text, not a placeholder."""
        assert adjust_placeholders("SELECT '$1', $1", 2) == "SELECT '$1', $3"


class TestStripTerminators:
    """Tests for strip_terminators function."""

    def test_trailing_semicolons_removed(self):
        assert strip_terminators("SELECT 1;;  ") == "SELECT 1"
        assert strip_terminators("  SELECT 1 ; \n") == "SELECT 1"

    def test_plain_sql_untouched(self):
        assert strip_terminators("SELECT 1") == "SELECT 1"


class TestMergeFragments:
    """Tests for merge_fragments function."""

    def test_second_fragment_is_shifted(self):
        """The documented users/name merge."""
        merged = merge_fragments(
            QueryObject("SELECT * FROM users WHERE active = $1", (True,)),
            QueryObject('AND "name" = $1', ("Ann",)),
        )

        assert merged.sql_text == 'SELECT * FROM users WHERE active = $1 AND "name" = $2'
        assert merged.values == (True, "Ann")

    def test_first_without_placeholders(self):
        """Nothing to shift past when the first part has no parameters."""
        merged = merge_fragments(
            QueryObject("SELECT * FROM users;"),
            QueryObject('WHERE "id" = $1', (7,)),
        )

        assert merged.sql_text == 'SELECT * FROM users WHERE "id" = $1'
        assert merged.values == (7,)

    def test_empty_second_fragment(self):
        merged = merge_fragments(QueryObject("SELECT * FROM t;"), QueryObject(""))

        assert merged.sql_text == "SELECT * FROM t"
        assert merged.values == ()

    def test_merged_placeholders_are_contiguous(self):
        """Every index from 1 to the value count is used."""
        merged = merge_fragments(
            QueryObject("SELECT * FROM t WHERE a = $1 AND b = $2", (1, 2)),
            QueryObject('AND "c" = $1 AND "d" = $2', (3, 4)),
        )

        for index in range(1, len(merged.values) + 1):
            assert f"${index}" in merged.sql_text
        assert find_max_placeholder(merged.sql_text) == len(merged.values)
