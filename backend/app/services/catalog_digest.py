"""Catalog digest — joins raw catalog rows into a compact per-table summary.

Input is the four catalog result sets (columns, indexes, constraints, policies)
as returned by the introspection queries. Tables are keyed by ``schema.table``
and seeded only from the column rows; index, constraint and policy rows whose
table has no column rows are dropped and counted as orphans.

Pure functions — no I/O.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from app.schemas.tools import DigestRecord
from app.services.row_values import catalog_text

NOT_NULL_MARKER = "!"


@dataclass(frozen=True)
class ColumnInfo:
    name: str
    type: str
    nullable: bool


@dataclass(frozen=True)
class IndexInfo:
    name: str
    definition: str


@dataclass(frozen=True)
class ConstraintInfo:
    name: str
    kind: str  # p=primary key, f=foreign key, u=unique, c=check


@dataclass(frozen=True)
class PolicyInfo:
    name: str
    command: str


@dataclass
class TableDigestEntry:
    schema: str
    table: str
    columns: list[ColumnInfo] = field(default_factory=list)
    indexes: list[IndexInfo] = field(default_factory=list)
    constraints: list[ConstraintInfo] = field(default_factory=list)
    policies: list[PolicyInfo] = field(default_factory=list)


@dataclass
class DigestBuild:
    """Aggregated entries in first-seen order plus per-kind orphan counts."""

    entries: list[TableDigestEntry]
    orphans: dict[str, int]

    @property
    def orphan_total(self) -> int:
        return sum(self.orphans.values())


def table_key(schema: str, table: str) -> str:
    return f"{schema}.{table}"


def _as_text(value: Any) -> str:
    # pg "char" columns (contype, polcmd) can arrive as bytes
    if isinstance(value, bytes):
        return catalog_text(value)
    return "" if value is None else str(value)


def build_digest(
    columns: Iterable[Mapping[str, Any]],
    indexes: Iterable[Mapping[str, Any]],
    constraints: Iterable[Mapping[str, Any]],
    policies: Iterable[Mapping[str, Any]],
) -> DigestBuild:
    """Join the four catalog result sets in one pass over each.

    Column rows must already be ordered by schema, table, ordinal position;
    that order becomes the column order of each entry.
    """
    tables: dict[str, TableDigestEntry] = {}

    for row in columns:
        key = table_key(row["table_schema"], row["table_name"])
        entry = tables.get(key)
        if entry is None:
            entry = TableDigestEntry(schema=row["table_schema"], table=row["table_name"])
            tables[key] = entry
        entry.columns.append(
            ColumnInfo(
                name=row["column_name"],
                type=row["data_type"],
                nullable=row["is_nullable"] == "YES",
            )
        )

    orphans = {"indexes": 0, "constraints": 0, "policies": 0}

    for row in indexes:
        entry = tables.get(table_key(row["schemaname"], row["tablename"]))
        if entry is None:
            orphans["indexes"] += 1
            continue
        entry.indexes.append(IndexInfo(name=row["indexname"], definition=row["indexdef"]))

    for row in constraints:
        entry = tables.get(table_key(row["schema"], row["table"]))
        if entry is None:
            orphans["constraints"] += 1
            continue
        entry.constraints.append(
            ConstraintInfo(name=row["conname"], kind=_as_text(row["contype"]))
        )

    for row in policies:
        entry = tables.get(table_key(row["schema"], row["table"]))
        if entry is None:
            orphans["policies"] += 1
            continue
        entry.policies.append(
            PolicyInfo(name=row["policy_name"], command=_as_text(row["cmd"]))
        )

    return DigestBuild(entries=list(tables.values()), orphans=orphans)


def render_column(column: ColumnInfo) -> str:
    suffix = "" if column.nullable else NOT_NULL_MARKER
    return f"{column.name}:{column.type}{suffix}"


def render_digest(entries: Iterable[TableDigestEntry]) -> list[DigestRecord]:
    return [
        DigestRecord(
            schema=entry.schema,
            table=entry.table,
            cols=[render_column(c) for c in entry.columns],
            idx_count=len(entry.indexes),
            cons_count=len(entry.constraints),
            rls=len(entry.policies) > 0,
        )
        for entry in entries
    ]
