"""Pydantic schemas for tool arguments and tool results."""

import math
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Arguments ---


class ToolArguments(BaseModel):
    model_config = ConfigDict(extra="ignore")


class IntrospectSchemaArgs(ToolArguments):
    schemas: list[str] = Field(default_factory=lambda: ["public"])

    @field_validator("schemas", mode="before")
    @classmethod
    def default_when_null(cls, v: Any) -> Any:
        return ["public"] if v is None else v

    @field_validator("schemas")
    @classmethod
    def not_empty(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("schemas must contain at least one schema name")
        return v


class ExecuteSqlArgs(ToolArguments):
    sql: str
    limit: int | None = Field(default=None, ge=1)

    @field_validator("limit", mode="before")
    @classmethod
    def floor_fractional(cls, v: Any) -> Any:
        # JSON numbers like 10.5 mean "up to 10 rows"
        if isinstance(v, float):
            if not math.isfinite(v):
                raise ValueError("limit must be a finite number")
            return math.floor(v)
        return v

    @field_validator("sql")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("SQL query is required")
        return v


class TableDocArgs(ToolArguments):
    table: str

    @field_validator("table")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Table name is required")
        return v


class PostgrestGetArgs(ToolArguments):
    table: str
    query: dict[str, Any] = Field(default_factory=dict)

    @field_validator("table")
    @classmethod
    def not_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("Table name is required")
        return v


# --- Results ---


class DigestRecord(BaseModel):
    """Compact per-table summary. ``cols`` entries are ``name:type``, ``!`` = NOT NULL."""

    schema_: str = Field(alias="schema")
    table: str
    cols: list[str]
    idx_count: int
    cons_count: int
    rls: bool

    model_config = ConfigDict(populate_by_name=True)


class SchemaDigest(BaseModel):
    digest: list[DigestRecord]
    table_count: int
    note: str


class QueryField(BaseModel):
    name: str
    type: int  # engine type OID


class QueryResult(BaseModel):
    type: Literal["query"] = "query"
    rows: list[dict[str, Any]]
    row_count: int
    truncated: bool
    limit: int
    fields: list[QueryField]


class ExplainResult(BaseModel):
    type: Literal["explain"] = "explain"
    plan: list[dict[str, Any]]


class TableDocument(BaseModel):
    schema_: str = Field(alias="schema")
    table: str
    columns: list[dict[str, Any]]
    constraints: list[dict[str, Any]]
    rls_policies: list[dict[str, Any]]
    rls_enabled: bool

    model_config = ConfigDict(populate_by_name=True)


class PostgrestResult(BaseModel):
    data: Any
    count: int
    rls_respected: bool = True


class ToolDefinition(BaseModel):
    """Tool advertisement entry for tools/list."""

    name: str
    description: str
    inputSchema: dict[str, Any]
