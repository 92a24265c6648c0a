"""
CellSync Backend — Model DDL Tests
====================================

What we test:
    ✅ Edit timestamps default to the wall clock at insert time on PostgreSQL
       (clock_timestamp(), not the transaction-start now())
    ✅ Other dialects fall back to CURRENT_TIMESTAMP
"""

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.schema import CreateTable

from cellsync.models.edit import EditRecord


class TestEditTimestampDefault:

    def test_postgresql_uses_clock_timestamp(self):
        ddl = str(CreateTable(EditRecord.__table__).compile(dialect=postgresql.dialect()))

        assert "DEFAULT clock_timestamp()" in ddl
        assert "now()" not in ddl

    def test_sqlite_uses_current_timestamp(self):
        ddl = str(CreateTable(EditRecord.__table__).compile(dialect=sqlite.dialect()))

        assert "DEFAULT CURRENT_TIMESTAMP" in ddl
