"""
Unit Tests - Transaction Sources
"""
from datetime import date, datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError

from pos_analytics.analytics import AnalyticsEngine
from pos_analytics.database import InMemoryTransactionSource, SqlTransactionSource


@pytest.fixture
def sql_source():
    """SQLite in-memory source with the schema created"""
    source = SqlTransactionSource(create_engine("sqlite://"))
    source.create_schema()
    yield source
    source.engine.dispose()


class TestInMemorySource:
    """Tests for InMemoryTransactionSource"""

    def test_sorted_by_time(self, sample_transactions):
        """Test input order does not matter"""
        source = InMemoryTransactionSource(reversed(sample_transactions))

        assert [t.id for t in source.fetch()] == ["t1", "t2", "t3"]
        assert len(source) == 3

    def test_date_bounds_inclusive(self, sample_transactions):
        """Test both bounds include whole days"""
        source = InMemoryTransactionSource(sample_transactions)

        assert [t.id for t in source.fetch(date(2024, 3, 2), date(2024, 3, 2))] == ["t3"]
        assert [t.id for t in source.fetch(end=date(2024, 3, 1))] == ["t1", "t2"]
        assert source.fetch(start=date(2024, 3, 3)) == ()

    def test_same_instant_keeps_input_order(self, make_transaction):
        """Test simultaneous sales stay in input order"""
        at = datetime(2024, 3, 1, 9)
        first, second = make_transaction(at), make_transaction(at)

        source = InMemoryTransactionSource([first, second])

        assert source.fetch() == (first, second)


class TestSqlSource:
    """Tests for SqlTransactionSource"""

    def test_round_trip(self, sql_source, sample_transactions):
        """Test stored rows come back as equal transactions"""
        assert sql_source.add_all(sample_transactions) == 3

        fetched = sql_source.fetch()

        assert [t.id for t in fetched] == ["t1", "t2", "t3"]
        assert fetched[0].customer_token == "ANON-0000-0000-0001"
        assert fetched[1].customer_token is None
        assert fetched[0].amount == pytest.approx(38.7)
        assert fetched[0].occurred_at == datetime(2024, 3, 1, 10, 15, 50)

    def test_date_filter(self, sql_source, sample_transactions):
        """Test range filter on the stored date"""
        sql_source.add_all(sample_transactions)

        assert [t.id for t in sql_source.fetch(date(2024, 3, 2), date(2024, 3, 31))] == ["t3"]

    def test_duplicate_ids_rejected(self, sql_source, sample_transactions):
        """Test a failed insert leaves the table unchanged"""
        sql_source.add_all(sample_transactions[:1])

        with pytest.raises(IntegrityError):
            sql_source.add_all(sample_transactions[:1])
        assert len(sql_source.fetch()) == 1

    def test_engine_over_sql_matches_memory(self, sql_source, sample_transactions, test_settings, march_2024):
        """Test analytics do not depend on the source type"""
        sql_source.add_all(sample_transactions)

        from_sql = AnalyticsEngine(sql_source, settings=test_settings).revenue.metrics(march_2024)
        from_memory = AnalyticsEngine(
            InMemoryTransactionSource(sample_transactions), settings=test_settings
        ).revenue.metrics(march_2024)

        assert from_sql == from_memory
