"""MCP endpoint — JSON-RPC 2.0 over HTTP POST.

Methods:
- initialize / ping   — client handshake and keepalive
- tools/list          — tools advertised for the enabled features
- tools/call          — dispatch to the tool registry

Tool failures come back as JSON-RPC error objects whose ``data.kind`` names the
error class (feature_disabled, validation, safety_denial, data_access, upstream).
"""

from typing import Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError
from pydantic_core import to_jsonable_python

from app.api.deps import get_tool_registry
from app.core.errors import ToolError
from app.schemas.rpc import RpcRequest, ToolCallParams
from app.services.tool_registry import ToolRegistry

router = APIRouter()
logger = structlog.stdlib.get_logger("sbsh.mcp")

PROTOCOL_VERSION = "2024-11-05"
SERVER_VERSION = "0.1.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def _result(rpc_id: str | int | None, result: Any) -> JSONResponse:
    return JSONResponse(
        content={
            "jsonrpc": "2.0",
            "id": rpc_id,
            "result": to_jsonable_python(result, by_alias=True, fallback=str),
        }
    )


def _error(
    rpc_id: str | int | None,
    code: int,
    message: str,
    kind: str,
    status_code: int = 200,
) -> JSONResponse:
    return JSONResponse(
        content={
            "jsonrpc": "2.0",
            "id": rpc_id,
            "error": {"code": code, "message": message, "data": {"kind": kind}},
        },
        status_code=status_code,
    )


@router.post("/mcp")
async def mcp_endpoint(
    request: Request,
    registry: ToolRegistry = Depends(get_tool_registry),
):
    try:
        body = await request.json()
    except ValueError:
        return _error(None, PARSE_ERROR, "Parse error", "protocol", status_code=400)

    try:
        req = RpcRequest.model_validate(body)
    except ValidationError as exc:
        rpc_id = body.get("id") if isinstance(body, dict) else None
        if not isinstance(rpc_id, (str, int)):
            rpc_id = None
        return _error(
            rpc_id,
            INVALID_REQUEST,
            f"Invalid Request: {exc.error_count()} validation error(s)",
            "protocol",
            status_code=400,
        )

    structlog.contextvars.bind_contextvars(rpc_id=req.id, rpc_method=req.method)
    request.state.rpc_method = req.method

    if req.method.startswith("notifications/"):
        return Response(status_code=202)

    match req.method:
        case "initialize":
            return _result(
                req.id,
                {
                    "protocolVersion": PROTOCOL_VERSION,
                    "serverInfo": {"name": "sbsh", "version": SERVER_VERSION},
                    "capabilities": {"tools": {"listChanged": False}},
                },
            )
        case "ping":
            return _result(req.id, {})
        case "tools/list":
            return _result(req.id, {"tools": registry.list_tools()})
        case "tools/call":
            return await _call_tool(request, req, registry)
        case _:
            return _error(
                req.id,
                METHOD_NOT_FOUND,
                f"Method not found: {req.method}",
                "not_found",
                status_code=404,
            )


async def _call_tool(request: Request, req: RpcRequest, registry: ToolRegistry) -> JSONResponse:
    try:
        params = ToolCallParams.model_validate(req.params if req.params is not None else {})
    except ValidationError:
        return _error(
            req.id, INVALID_PARAMS, "Invalid params for tools/call", "validation"
        )

    structlog.contextvars.bind_contextvars(tool=params.name)
    request.state.tool = params.name
    try:
        result = await registry.call(params.name, params.arguments)
        return _result(req.id, result)
    except ToolError as exc:
        return _error(req.id, exc.code, exc.message, exc.kind, status_code=exc.http_status)
    except Exception as exc:
        logger.exception("tool_call_crashed", tool=params.name)
        return _error(
            req.id,
            INTERNAL_ERROR,
            str(exc) or "Internal error",
            "internal",
            status_code=500,
        )
