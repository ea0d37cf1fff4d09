"""
Tests for the SQL backend: schema bootstrap, atomic counters and
connection handling. SQLite stands in for PostgreSQL.
"""

import asyncio

import pytest
from sqlalchemy import event, inspect

from linksnap_app.schemas.link import ShortLinkUpdate
from linksnap_app.storage.exceptions import DuplicateCode, StorageUnavailable
from linksnap_app.storage.strategies import SQLStorage


def count_statements(engine):
    """Attach a listener that records every SQL statement sent to the database."""
    statements = []

    @event.listens_for(engine, "before_cursor_execute")
    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    return statements


class TestSchema:
    """Test table and index bootstrap"""

    def test_creates_table_and_created_at_index(self, sql_storage):
        inspector = inspect(sql_storage.engine)

        columns = {column["name"] for column in inspector.get_columns("urls")}
        indexes = {index["name"] for index in inspector.get_indexes("urls")}

        assert columns == {
            "short_code", "original_url", "qr_code", "clicks", "created_at", "last_accessed"
        }
        assert "idx_urls_created_at" in indexes

    def test_initialize_twice_creates_nothing_new(self, sql_storage):
        """Test that a second initialize only checks for existing objects"""
        statements = count_statements(sql_storage.engine)

        asyncio.run(sql_storage.initialize())

        assert not any(s.lstrip().upper().startswith("CREATE") for s in statements)

    def test_unreachable_database_raises_unavailable(self, tmp_path):
        """Test that a database that cannot be opened is reported, not hidden"""
        storage = SQLStorage(f"sqlite:///{tmp_path / 'missing-dir' / 'sub' / 'db.sqlite'}")

        try:
            with pytest.raises(StorageUnavailable):
                asyncio.run(storage.initialize())
        finally:
            asyncio.run(storage.close())

    @pytest.mark.parametrize("database_url", ["not a database url", "nosuchdialect://host/db"])
    def test_unusable_database_url_raises_unavailable(self, database_url):
        """Test that a bad connection string fails as a storage error"""
        with pytest.raises(StorageUnavailable):
            SQLStorage(database_url)


class TestAtomicity:
    """Test the server-side click counter"""

    def test_concurrent_increments_are_not_lost(self, sql_storage, record_factory):
        """Test that M concurrent increments give exactly M clicks"""
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))

        async def hammer(times):
            await asyncio.gather(*(sql_storage.increment_clicks("abc123") for _ in range(times)))

        asyncio.run(hammer(25))

        record = asyncio.run(sql_storage.find_by_code("abc123"))
        assert record.clicks == 25
        assert record.last_accessed is not None

    def test_increment_is_a_single_update(self, sql_storage, record_factory):
        """Test that no read-then-write pair is issued"""
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))
        statements = count_statements(sql_storage.engine)

        asyncio.run(sql_storage.increment_clicks("abc123"))

        assert len(statements) == 1
        assert statements[0].lstrip().upper().startswith("UPDATE")
        assert "clicks + " in statements[0]


class TestStatements:
    """Test statement construction for partial updates"""

    def test_empty_update_issues_no_statement(self, sql_storage, record_factory):
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))
        statements = count_statements(sql_storage.engine)

        asyncio.run(sql_storage.update("abc123", ShortLinkUpdate()))

        assert statements == []

    def test_update_sets_only_given_columns(self, sql_storage, record_factory):
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))
        statements = count_statements(sql_storage.engine)

        asyncio.run(sql_storage.update("abc123", ShortLinkUpdate(qr_code_image="data:new")))

        assert len(statements) == 1
        assert "qr_code" in statements[0]
        assert "original_url" not in statements[0]
        assert "clicks" not in statements[0]
        assert asyncio.run(sql_storage.find_by_code("abc123")).qr_code_image == "data:new"


class TestConnectionPool:
    """Test that connections go back to the pool on every path"""

    def test_connections_released_after_success_and_miss(self, sql_storage, record_factory):
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))
        asyncio.run(sql_storage.find_by_code("abc123"))
        asyncio.run(sql_storage.find_by_code("missing"))
        asyncio.run(sql_storage.get_all())

        assert sql_storage.engine.pool.checkedout() == 0

    def test_connections_released_after_errors(self, sql_storage, record_factory):
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))

        for _ in range(20):
            with pytest.raises(DuplicateCode):
                asyncio.run(sql_storage.create("abc123", record_factory("abc123")))

        assert sql_storage.engine.pool.checkedout() == 0
        # The pool still serves requests
        assert asyncio.run(sql_storage.exists("abc123")) is True

    def test_timestamps_are_timezone_aware(self, sql_storage, record_factory):
        """Test that SQLite's naive values come back as UTC"""
        asyncio.run(sql_storage.create("abc123", record_factory("abc123")))
        asyncio.run(sql_storage.increment_clicks("abc123"))

        record = asyncio.run(sql_storage.find_by_code("abc123"))

        assert record.created_at.utcoffset().total_seconds() == 0
        assert record.last_accessed.utcoffset().total_seconds() == 0
