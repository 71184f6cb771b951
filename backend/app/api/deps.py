"""Dependency injection for FastAPI routes.

All services are provided via Depends() from this module.
Route handlers never instantiate services directly.
"""

from fastapi import Depends, Request

from app.core.config import Settings
from app.core.postgres import PostgresClient
from app.core.postgrest import PostgrestClient
from app.core.postgrest import get_postgrest_client as _get_postgrest_client
from app.services.schema_introspector import SchemaIntrospector
from app.services.sql_executor import SqlExecutor
from app.services.tool_registry import ToolRegistry


async def get_settings(request: Request) -> Settings:
    """Return the settings the app was started with."""
    return request.app.state.settings


async def get_postgres_client(request: Request) -> PostgresClient:
    """Return the pooled PostgreSQL client from app state."""
    return request.app.state.postgres


async def get_postgrest_client(
    settings: Settings = Depends(get_settings),
) -> PostgrestClient:
    return _get_postgrest_client(settings)


async def get_schema_introspector(
    postgres: PostgresClient = Depends(get_postgres_client),
) -> SchemaIntrospector:
    return SchemaIntrospector(postgres=postgres)


async def get_sql_executor(
    settings: Settings = Depends(get_settings),
    postgres: PostgresClient = Depends(get_postgres_client),
) -> SqlExecutor:
    return SqlExecutor(
        postgres=postgres,
        read_only=settings.read_only,
        default_limit=settings.sql_default_limit,
        max_limit=settings.sql_max_limit,
    )


async def get_tool_registry(
    settings: Settings = Depends(get_settings),
    introspector: SchemaIntrospector = Depends(get_schema_introspector),
    executor: SqlExecutor = Depends(get_sql_executor),
    postgrest: PostgrestClient = Depends(get_postgrest_client),
) -> ToolRegistry:
    return ToolRegistry(
        settings=settings,
        introspector=introspector,
        executor=executor,
        postgrest=postgrest,
    )
