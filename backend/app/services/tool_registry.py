"""Tool Registry — advertises tools and dispatches tool calls.

Each tool belongs to one feature; tools whose feature is not in
``settings.features`` are hidden from tools/list and refuse calls with
FeatureDisabledError. Arguments are validated with the pydantic models in
app.schemas.tools before any service is touched.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import BaseModel, ValidationError

from app.core.config import Settings
from app.core.errors import FeatureDisabledError, ToolError, ToolNotFoundError, ToolValidationError
from app.core.metrics import tool_call_duration_seconds, tool_calls_total
from app.core.postgrest import PostgrestClient
from app.schemas.tools import (
    ExecuteSqlArgs,
    IntrospectSchemaArgs,
    PostgrestGetArgs,
    PostgrestResult,
    TableDocArgs,
    ToolArguments,
    ToolDefinition,
)
from app.services.schema_introspector import SchemaIntrospector
from app.services.sql_executor import SqlExecutor

logger = structlog.stdlib.get_logger(__name__)

INTROSPECT_SCHEMA = "sbsh_introspect_schema"
EXECUTE_SQL = "sbsh_execute_sql"
POSTGREST_GET = "sbsh_postgrest_get"
GET_TABLE_DOC = "sbsh_get_table_doc"


@dataclass(frozen=True)
class ToolSpec:
    name: str
    feature: str
    arguments: type[ToolArguments]
    input_schema: dict[str, Any]
    description: str
    # Used instead of ``description`` while READ_ONLY is on
    read_only_description: str | None = None

    def describe(self, read_only: bool) -> str:
        if read_only and self.read_only_description:
            return self.read_only_description
        return self.description


TOOL_SPECS: tuple[ToolSpec, ...] = (
    ToolSpec(
        name=INTROSPECT_SCHEMA,
        feature="database",
        arguments=IntrospectSchemaArgs,
        input_schema={
            "type": "object",
            "properties": {
                "schemas": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": 'PostgreSQL schemas to introspect (default: ["public"])',
                }
            },
        },
        description=(
            "[sbsh] Return summarized schema info (tables/columns/keys/indexes/RLS). "
            "Output is token-optimized digest."
        ),
    ),
    ToolSpec(
        name=EXECUTE_SQL,
        feature="database",
        arguments=ExecuteSqlArgs,
        input_schema={
            "type": "object",
            "required": ["sql"],
            "properties": {
                "sql": {"type": "string", "description": "SQL query to execute"},
                "limit": {
                    "type": "number",
                    "description": "Row limit (max 1000, default 100)",
                },
            },
        },
        description="[sbsh] Execute SQL (DML/DDL guarded by allowlist; READ-ONLY recommended)",
        read_only_description=(
            "[sbsh] Execute SELECT/EXPLAIN safely (READ-ONLY mode: DML/DDL blocked)"
        ),
    ),
    ToolSpec(
        name=POSTGREST_GET,
        feature="postgrest",
        arguments=PostgrestGetArgs,
        input_schema={
            "type": "object",
            "required": ["table"],
            "properties": {
                "table": {"type": "string", "description": "Table name"},
                "query": {
                    "type": "object",
                    "description": "PostgREST query params (select, eq, order, limit, etc.)",
                    "additionalProperties": True,
                },
            },
        },
        description=(
            "[sbsh] GET request via PostgREST with RLS respected. "
            "Use this for safe data access with user permissions."
        ),
    ),
    ToolSpec(
        name=GET_TABLE_DOC,
        feature="docs",
        arguments=TableDocArgs,
        input_schema={
            "type": "object",
            "required": ["table"],
            "properties": {
                "table": {
                    "type": "string",
                    "description": "Table name (schema.table or just table)",
                }
            },
        },
        description=(
            "[sbsh] Get minimal documentation for a table (columns/types/constraints/RLS)."
        ),
    ),
)

_SPECS_BY_NAME = {spec.name: spec for spec in TOOL_SPECS}


def _describe(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        msg = err["msg"].removeprefix("Value error, ")
        loc = ".".join(str(p) for p in err["loc"])
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


class ToolRegistry:
    def __init__(
        self,
        settings: Settings,
        introspector: SchemaIntrospector,
        executor: SqlExecutor,
        postgrest: PostgrestClient,
    ):
        self._settings = settings
        self._introspector = introspector
        self._executor = executor
        self._postgrest = postgrest
        self._handlers: dict[str, Callable[[Any], Awaitable[BaseModel]]] = {
            INTROSPECT_SCHEMA: self._introspect_schema,
            EXECUTE_SQL: self._execute_sql,
            POSTGREST_GET: self._postgrest_get,
            GET_TABLE_DOC: self._get_table_doc,
        }

    def list_tools(self) -> list[ToolDefinition]:
        """Tool definitions for every enabled feature."""
        return [
            ToolDefinition(
                name=spec.name,
                description=spec.describe(self._settings.read_only),
                inputSchema=spec.input_schema,
            )
            for spec in TOOL_SPECS
            if self._settings.feature_enabled(spec.feature)
        ]

    async def call(self, name: str | None, arguments: Any) -> BaseModel:
        """Validate and dispatch one tool call."""
        spec = _SPECS_BY_NAME.get(name or "")
        if spec is None:
            raise ToolNotFoundError(name)

        start = time.perf_counter()
        try:
            if not self._settings.feature_enabled(spec.feature):
                raise FeatureDisabledError(spec.feature)
            try:
                args = spec.arguments.model_validate(arguments if arguments is not None else {})
            except ValidationError as exc:
                raise ToolValidationError(_describe(exc)) from exc
            result = await self._handlers[spec.name](args)
        except ToolError as exc:
            tool_calls_total.labels(tool=spec.name, status=exc.kind).inc()
            logger.info("tool_call_failed", tool=spec.name, kind=exc.kind, error=exc.message)
            raise
        except Exception:
            tool_calls_total.labels(tool=spec.name, status="internal").inc()
            raise
        finally:
            tool_call_duration_seconds.labels(tool=spec.name).observe(
                time.perf_counter() - start
            )

        tool_calls_total.labels(tool=spec.name, status="ok").inc()
        return result

    async def _introspect_schema(self, args: IntrospectSchemaArgs) -> BaseModel:
        return await self._introspector.introspect(args.schemas)

    async def _execute_sql(self, args: ExecuteSqlArgs) -> BaseModel:
        return await self._executor.execute(args.sql, args.limit)

    async def _get_table_doc(self, args: TableDocArgs) -> BaseModel:
        return await self._introspector.table_document(args.table)

    async def _postgrest_get(self, args: PostgrestGetArgs) -> BaseModel:
        data = await self._postgrest.get(args.table, args.query)
        return PostgrestResult(
            data=data,
            count=len(data) if isinstance(data, list) else 0,
        )
