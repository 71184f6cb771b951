"""Schema Introspector — reads PostgreSQL catalog metadata for the tool surface.

Two operations:
- ``introspect``: four schema-scoped catalog queries joined into a compact digest.
- ``table_document``: three queries scoped to one table, returned in full.

Strictly read-only. Queries within one operation run concurrently, each on its
own pooled connection; results are combined only after all of them return.
A failure in any query fails the whole operation.
"""

import asyncio
import time

import structlog

from app.core.metrics import catalog_orphan_rows_total
from app.core.postgres import PostgresClient
from app.schemas.tools import SchemaDigest, TableDocument
from app.services.catalog_digest import build_digest, render_digest
from app.services.table_doc import build_table_document, parse_table_name

logger = structlog.stdlib.get_logger(__name__)

DIGEST_NOTE = "Use sbsh_get_table_doc for detailed column info"

COLUMNS_QUERY = """
    SELECT table_schema, table_name, column_name, data_type, is_nullable
    FROM information_schema.columns
    WHERE table_schema = ANY($1::text[])
    ORDER BY table_schema, table_name, ordinal_position
"""

INDEXES_QUERY = """
    SELECT schemaname, tablename, indexname, indexdef
    FROM pg_indexes
    WHERE schemaname = ANY($1::text[])
"""

CONSTRAINTS_QUERY = """
    SELECT n.nspname AS schema, c.relname AS "table", con.conname, con.contype
    FROM pg_constraint con
    JOIN pg_class c ON c.oid = con.conrelid
    JOIN pg_namespace n ON n.oid = c.relnamespace
    WHERE n.nspname = ANY($1::text[])
"""

POLICIES_QUERY = """
    SELECT schemaname AS schema, tablename AS "table", policyname AS policy_name, cmd
    FROM pg_policies
    WHERE schemaname = ANY($1::text[])
"""

TABLE_COLUMNS_QUERY = """
    SELECT
        column_name,
        data_type,
        is_nullable,
        column_default,
        character_maximum_length,
        col_description(
            format('%I.%I', table_schema, table_name)::regclass, ordinal_position
        ) AS comment
    FROM information_schema.columns
    WHERE table_schema = $1 AND table_name = $2
    ORDER BY ordinal_position
"""

TABLE_CONSTRAINTS_QUERY = """
    SELECT conname, contype, pg_get_constraintdef(oid) AS def
    FROM pg_constraint
    WHERE conrelid = format('%I.%I', $1::text, $2::text)::regclass
"""

TABLE_POLICIES_QUERY = """
    SELECT polname, polcmd, pg_get_expr(polqual, polrelid) AS qual
    FROM pg_policy
    WHERE polrelid = format('%I.%I', $1::text, $2::text)::regclass
"""


class SchemaIntrospector:
    """Catalog reads over the shared PostgreSQL pool."""

    def __init__(self, postgres: PostgresClient):
        self._postgres = postgres

    async def introspect(self, schemas: list[str]) -> SchemaDigest:
        """Return the compact digest for every table in ``schemas``."""
        start = time.perf_counter()
        params = [list(schemas)]
        columns, indexes, constraints, policies = await asyncio.gather(
            self._postgres.fetch(COLUMNS_QUERY, params),
            self._postgres.fetch(INDEXES_QUERY, params),
            self._postgres.fetch(CONSTRAINTS_QUERY, params),
            self._postgres.fetch(POLICIES_QUERY, params),
        )

        build = build_digest(columns, indexes, constraints, policies)
        if build.orphan_total:
            for kind, count in build.orphans.items():
                if count:
                    catalog_orphan_rows_total.labels(kind=kind).inc(count)
            logger.info("catalog_orphan_rows_dropped", schemas=schemas, **build.orphans)

        digest = render_digest(build.entries)
        logger.info(
            "schema_introspected",
            schemas=schemas,
            tables=len(digest),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return SchemaDigest(digest=digest, table_count=len(digest), note=DIGEST_NOTE)

    async def table_document(self, table_name: str) -> TableDocument:
        """Return columns, constraint definitions and RLS policies for one table."""
        schema, table = parse_table_name(table_name)
        params = [schema, table]
        columns, constraints, policies = await asyncio.gather(
            self._postgres.fetch(TABLE_COLUMNS_QUERY, params),
            self._postgres.fetch(TABLE_CONSTRAINTS_QUERY, params),
            self._postgres.fetch(TABLE_POLICIES_QUERY, params),
        )
        logger.info(
            "table_documented",
            schema=schema,
            table=table,
            columns=len(columns),
            policies=len(policies),
        )
        return build_table_document(schema, table, columns, constraints, policies)
