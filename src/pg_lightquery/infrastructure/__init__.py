"""
Infrastructure layer: table schemas, SQL statement construction and the
per-table operations facade.

Components:
- schema: column/table definitions, registry, DDL generation, YAML loading
- sql: placeholder bookkeeping, predicate compiler, statement builders
- table: TableOperations facade and the TableBase class for table wrappers
"""
