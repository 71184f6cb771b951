"""Tool error taxonomy.

Every failure a tool can report maps to one of these classes. Each carries the
JSON-RPC error code and a short ``kind`` the /mcp route puts in ``error.data``.
Nothing here is retried; retries are a caller concern.
"""


class ToolError(Exception):
    """Base class for errors reported through the tool result envelope."""

    code = -32603
    kind = "internal"
    http_status = 200

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class FeatureDisabledError(ToolError):
    """Tool invoked while its feature flag is off."""

    code = -32001
    kind = "feature_disabled"

    def __init__(self, feature: str):
        self.feature = feature
        super().__init__(f'Feature "{feature}" is disabled')


class ToolValidationError(ToolError):
    """Missing, empty, or malformed tool arguments."""

    code = -32602
    kind = "validation"


class SafetyDenialError(ToolError):
    """Statement classified as mutating while READ_ONLY mode is active."""

    code = -32003
    kind = "safety_denial"

    def __init__(self, keywords: list[str]):
        self.keywords = keywords
        found = ", ".join(keywords)
        super().__init__(
            "READ_ONLY mode: DML/DDL/DCL operations are blocked. "
            f"Only SELECT and EXPLAIN are allowed (found: {found})."
        )


class DataAccessError(ToolError):
    """The database rejected or failed a query. Carries the engine's message."""

    code = -32004
    kind = "data_access"

    def __init__(self, message: str, sqlstate: str | None = None):
        self.sqlstate = sqlstate
        super().__init__(message)


class UpstreamError(ToolError):
    """PostgREST returned a non-2xx status or could not be reached."""

    code = -32005
    kind = "upstream"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class ToolNotFoundError(ToolError):
    code = -32601
    kind = "not_found"
    http_status = 404

    def __init__(self, name: str | None):
        self.name = name
        super().__init__(f"Tool not found: {name}")
