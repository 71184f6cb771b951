"""SQL Executor — runs caller-supplied SQL behind the read-only guard.

The guard runs before a connection is acquired, so a denied statement never
reaches the database. EXPLAIN output is returned whole; every other result is
capped at the effective row limit and flagged when rows were cut off.
"""

import time

import structlog

from app.core.errors import SafetyDenialError, ToolValidationError
from app.core.metrics import (
    query_execution_duration_seconds,
    query_result_rows,
    sql_guard_denials_total,
)
from app.core.postgres import PostgresClient
from app.schemas.tools import ExplainResult, QueryField, QueryResult
from app.services.row_values import json_safe_row
from app.services.sql_guard import check_sql, clamp_limit, is_explain, truncate_rows

logger = structlog.stdlib.get_logger(__name__)


class SqlExecutor:
    def __init__(
        self,
        postgres: PostgresClient,
        read_only: bool = True,
        default_limit: int = 100,
        max_limit: int = 1000,
    ):
        self._postgres = postgres
        self._read_only = read_only
        self._default_limit = default_limit
        self._max_limit = max_limit

    async def execute(self, sql: str, limit: int | None = None) -> QueryResult | ExplainResult:
        if not sql or not sql.strip():
            raise ToolValidationError("SQL query is required")

        try:
            check_sql(sql, self._read_only)
        except SafetyDenialError as exc:
            sql_guard_denials_total.inc()
            logger.info("sql_denied", keywords=exc.keywords, sql=sql[:200])
            raise

        if is_explain(sql):
            return await self._explain(sql)
        return await self._query(sql, clamp_limit(limit, self._default_limit, self._max_limit))

    async def _explain(self, sql: str) -> ExplainResult:
        start = time.perf_counter()
        async with self._postgres.acquire() as conn:
            records = await conn.fetch(sql)
        duration = time.perf_counter() - start

        query_execution_duration_seconds.labels(kind="explain").observe(duration)
        query_result_rows.labels(kind="explain").observe(len(records))
        logger.info(
            "sql_executed",
            kind="explain",
            rows=len(records),
            duration_ms=round(duration * 1000, 2),
        )
        return ExplainResult(plan=[json_safe_row(r) for r in records])

    async def _query(self, sql: str, limit: int) -> QueryResult:
        start = time.perf_counter()
        async with self._postgres.acquire() as conn:
            statement = await conn.prepare(sql)
            records = await statement.fetch()
            fields = [
                QueryField(name=attr.name, type=attr.type.oid)
                for attr in statement.get_attributes()
            ]
        duration = time.perf_counter() - start

        rows, truncated = truncate_rows(records, limit)
        query_execution_duration_seconds.labels(kind="query").observe(duration)
        query_result_rows.labels(kind="query").observe(len(records))
        logger.info(
            "sql_executed",
            kind="query",
            rows=len(records),
            returned=len(rows),
            truncated=truncated,
            duration_ms=round(duration * 1000, 2),
        )
        return QueryResult(
            rows=[json_safe_row(r) for r in rows],
            row_count=len(records),
            truncated=truncated,
            limit=limit,
            fields=fields,
        )
