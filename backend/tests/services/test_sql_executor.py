"""Tests for SqlExecutor — guard ordering, EXPLAIN handling, row limits."""

import pytest

from app.core.errors import DataAccessError, SafetyDenialError, ToolValidationError
from app.core.metrics import sql_guard_denials_total
from app.schemas.tools import ExplainResult, QueryResult
from app.services.sql_executor import SqlExecutor


def _rows(n: int) -> list[dict]:
    return [{"id": i, "name": f"row {i}"} for i in range(n)]


class TestGuard:
    async def test_drop_denied_before_reaching_engine(self, postgres_factory):
        postgres = postgres_factory()
        executor = SqlExecutor(postgres, read_only=True)
        before = sql_guard_denials_total._value.get()

        with pytest.raises(SafetyDenialError) as exc_info:
            await executor.execute("DROP TABLE users")

        assert postgres.acquired == 0
        assert "READ_ONLY" in exc_info.value.message
        assert sql_guard_denials_total._value.get() == before + 1

    async def test_mutation_allowed_when_not_read_only(self, postgres_factory, query_conn):
        conn = query_conn([])
        executor = SqlExecutor(postgres_factory(conn=conn), read_only=False)

        result = await executor.execute("DELETE FROM sessions WHERE expired")

        assert isinstance(result, QueryResult)
        conn.prepare.assert_awaited_once_with("DELETE FROM sessions WHERE expired")

    @pytest.mark.parametrize("sql", ["", "   ", "\n\t"])
    async def test_blank_sql_is_validation_error(self, postgres_factory, sql):
        postgres = postgres_factory()
        with pytest.raises(ToolValidationError, match="SQL query is required"):
            await SqlExecutor(postgres).execute(sql)
        assert postgres.acquired == 0


class TestExplain:
    async def test_explain_returns_full_plan(self, postgres_factory, query_conn):
        plan = [{"QUERY PLAN": f"step {i}"} for i in range(150)]
        conn = query_conn(plan)
        executor = SqlExecutor(postgres_factory(conn=conn), read_only=True)

        result = await executor.execute("EXPLAIN SELECT * FROM users", limit=10)

        assert isinstance(result, ExplainResult)
        assert result.type == "explain"
        assert len(result.plan) == 150
        conn.fetch.assert_awaited_once_with("EXPLAIN SELECT * FROM users")
        conn.prepare.assert_not_called()

    async def test_explain_of_delete_bypasses_guard(self, postgres_factory, query_conn):
        conn = query_conn([{"QUERY PLAN": "Delete on t"}])
        executor = SqlExecutor(postgres_factory(conn=conn), read_only=True)

        result = await executor.execute("EXPLAIN DELETE FROM t")

        assert result.plan == [{"QUERY PLAN": "Delete on t"}]


class TestRowLimit:
    async def test_default_limit_truncates(self, postgres_factory, query_conn):
        conn = query_conn(_rows(1500), columns=[("id", 23), ("name", 25)])
        executor = SqlExecutor(postgres_factory(conn=conn))

        result = await executor.execute("SELECT * FROM t")

        assert isinstance(result, QueryResult)
        assert len(result.rows) == 100
        assert result.row_count == 1500
        assert result.truncated is True
        assert result.limit == 100
        assert [f.model_dump() for f in result.fields] == [
            {"name": "id", "type": 23},
            {"name": "name", "type": 25},
        ]

    async def test_requested_limit_capped_at_max(self, postgres_factory, query_conn):
        executor = SqlExecutor(postgres_factory(conn=query_conn(_rows(1500))))

        result = await executor.execute("SELECT * FROM t", limit=5000)

        assert len(result.rows) == 1000
        assert result.limit == 1000
        assert result.truncated is True

    async def test_exactly_limit_rows_not_truncated(self, postgres_factory, query_conn):
        executor = SqlExecutor(postgres_factory(conn=query_conn(_rows(10))))

        result = await executor.execute("SELECT * FROM t", limit=10)

        assert len(result.rows) == 10
        assert result.truncated is False

    async def test_configured_limits(self, postgres_factory, query_conn):
        executor = SqlExecutor(
            postgres_factory(conn=query_conn(_rows(30))), default_limit=5, max_limit=20
        )

        assert (await executor.execute("SELECT 1")).limit == 5
        assert (await executor.execute("SELECT 1", limit=50)).limit == 20

    async def test_connection_released_after_query(self, postgres_factory, query_conn):
        postgres = postgres_factory(conn=query_conn(_rows(3)))

        await SqlExecutor(postgres).execute("SELECT * FROM t")

        assert postgres.acquired == 1
        assert postgres.released == 1


class TestEngineErrors:
    async def test_engine_error_propagates_and_releases(self, postgres_factory, query_conn):
        conn = query_conn([])
        conn.prepare.side_effect = DataAccessError('syntax error at or near "SELEC"')
        postgres = postgres_factory(conn=conn)

        with pytest.raises(DataAccessError, match="syntax error"):
            await SqlExecutor(postgres).execute("SELEC 1")

        assert postgres.released == 1


class TestRowValues:
    async def test_bytea_rendered_as_hex(self, postgres_factory, query_conn):
        conn = query_conn([{"id": 1, "blob": b"\xff\xfe\x00"}], columns=[("id", 23), ("blob", 17)])

        result = await SqlExecutor(postgres_factory(conn=conn)).execute("SELECT * FROM files")

        assert result.rows == [{"id": 1, "blob": "\\xfffe00"}]

    async def test_bytea_array_rendered_as_hex(self, postgres_factory, query_conn):
        conn = query_conn([{"chunks": [b"\x01", None]}])

        result = await SqlExecutor(postgres_factory(conn=conn)).execute("SELECT chunks FROM t")

        assert result.rows == [{"chunks": ["\\x01", None]}]

    async def test_explain_rows_made_json_safe(self, postgres_factory, query_conn):
        conn = query_conn([{"QUERY PLAN": "Seq Scan", "raw": b"\x80"}])

        result = await SqlExecutor(postgres_factory(conn=conn)).execute("EXPLAIN SELECT 1")

        assert result.plan == [{"QUERY PLAN": "Seq Scan", "raw": "\\x80"}]
