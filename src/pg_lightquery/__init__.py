"""
pg-lightquery - Parameterized SQL construction for PostgreSQL.

Builds positionally-parameterized SELECT/INSERT/UPDATE statements from declared
table schemas and caller-supplied filter maps, and composes several writes into
one atomic CTE statement.
"""

__version__ = "0.1.0"
