"""Query path resolution tests"""

import pytest

from snaplake.core.errors import NotFoundError
from snaplake.schemas.api import TableLocator
from snaplake.services.resolver import QueryResolver

from .conftest import JOB_COLUMNS

ROWS = [{"job_number": "J-001", "status": "complete", "quantity": 1}]


class TestQueryResolver:
    """Locator resolution and the empty short-circuit"""

    def test_no_registered_tables_returns_empty(self, service, query_engine):
        result = service.query("SELECT 1")
        assert result.model_dump() == {"columns": [], "rows": [], "row_count": 0}
        assert query_engine.calls == []

    def test_tables_without_complete_snapshot_return_empty(self, service, query_engine, jobs_table):
        service.ledger.create_snapshot(jobs_table)
        chunked = service.start_snapshot(jobs_table)
        chunked.append_chunk(ROWS)

        result = service.query("SELECT * FROM production_jobs")

        assert result.row_count == 0
        assert result.columns == []
        assert query_engine.calls == []

    def test_single_file_locator(self, service, query_engine, jobs_table):
        snap = service.snapshot(jobs_table, ROWS)

        result = service.query("SELECT COUNT(*) AS n FROM production_jobs")

        assert result.rows == [{"n": 1.0}]
        assert query_engine.calls == [
            {
                "sql": "SELECT COUNT(*) AS n FROM production_jobs",
                "locators": [TableLocator(table_name="production_jobs", s3_path=snap.s3_key)],
            }
        ]

    def test_chunked_snapshot_resolves_to_glob(self, service, jobs_table):
        service.snapshot(jobs_table, ROWS)
        chunked = service.start_snapshot(jobs_table)
        chunked.append_chunk(ROWS)
        chunked.append_chunk(ROWS)
        service.finalize(chunked)

        locators = service.resolver.resolve()

        assert locators == [
            TableLocator(
                table_name="production_jobs",
                s3_path=f"production_jobs/chunks/{chunked.snapshot_id}/*.parquet",
            )
        ]

    def test_explicit_names_skip_unknown_tables(self, service, query_engine, jobs_table):
        service.registry.register_table("orders", JOB_COLUMNS)
        service.snapshot(jobs_table, ROWS)

        service.query("SELECT 1", table_names=["missing", "orders", "production_jobs"])

        assert [loc.table_name for loc in query_engine.calls[0]["locators"]] == ["production_jobs"]

    def test_strict_mode_raises_for_unresolved_tables(self, service, query_engine, jobs_table):
        strict = QueryResolver(service.registry, service.ledger, query_engine, strict=True)

        with pytest.raises(NotFoundError):
            strict.query("SELECT 1", table_names=["missing"])
        with pytest.raises(NotFoundError):
            strict.query("SELECT 1")
        assert query_engine.calls == []

    def test_repeated_queries_are_identical(self, service, jobs_table):
        service.snapshot(jobs_table, ROWS)
        first = service.query("SELECT 1")
        second = service.query("SELECT 1")
        assert first == second
        assert service.resolver.resolve() == service.resolver.resolve()
