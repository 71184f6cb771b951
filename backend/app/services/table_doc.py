"""Single-table documentation: name resolution and document assembly."""

from collections.abc import Mapping, Sequence
from typing import Any

from app.core.errors import ToolValidationError
from app.schemas.tools import TableDocument
from app.services.row_values import catalog_text

DEFAULT_SCHEMA = "public"


def parse_table_name(value: str) -> tuple[str, str]:
    """Resolve ``schema.table`` or a bare ``table`` to a (schema, table) pair.

    Splits on the first dot only. Identifiers are not validated; they go to
    parameterized queries and any error surfaces from the engine.
    """
    if not value:
        raise ToolValidationError("Table name is required")
    schema, dot, table = value.partition(".")
    if not dot:
        return DEFAULT_SCHEMA, value
    return schema, table


def _plain(row: Mapping[str, Any]) -> dict[str, Any]:
    return {
        key: catalog_text(value) if isinstance(value, bytes) else value
        for key, value in row.items()
    }


def build_table_document(
    schema: str,
    table: str,
    columns: Sequence[Mapping[str, Any]],
    constraints: Sequence[Mapping[str, Any]],
    policies: Sequence[Mapping[str, Any]],
) -> TableDocument:
    return TableDocument(
        schema=schema,
        table=table,
        columns=[_plain(r) for r in columns],
        constraints=[_plain(r) for r in constraints],
        rls_policies=[_plain(r) for r in policies],
        rls_enabled=len(policies) > 0,
    )
