"""Pydantic schemas for the JSON-RPC 2.0 envelope on /mcp."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class RpcRequest(BaseModel):
    jsonrpc: Literal["2.0"]
    id: str | int | None = None
    method: str
    params: Any = None


class ToolCallParams(BaseModel):
    name: str | None = None
    arguments: Any = Field(default_factory=dict)


class RpcError(BaseModel):
    code: int
    message: str
    data: dict[str, Any] | None = None


class RpcResponse(BaseModel):
    jsonrpc: Literal["2.0"] = "2.0"
    id: str | int | None = None
    result: Any = None
    error: RpcError | None = None
