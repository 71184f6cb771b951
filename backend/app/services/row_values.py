"""Row value rendering for tool results.

asyncpg hands back ``bytes`` for bytea columns. Those are rendered the way psql
shows them (``\\x`` followed by hex) so every row survives JSON encoding.
"""

from collections.abc import Mapping
from typing import Any


def bytea_hex(value: bytes | bytearray | memoryview) -> str:
    return "\\x" + bytes(value).hex()


def json_safe(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytea_hex(value)
    if isinstance(value, Mapping):
        return {key: json_safe(v) for key, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [json_safe(v) for v in value]
    return value


def json_safe_row(row: Mapping[str, Any]) -> dict[str, Any]:
    return {key: json_safe(value) for key, value in row.items()}


def catalog_text(value: bytes) -> str:
    """Decode a pg ``"char"``/name value; non-UTF-8 bytes fall back to hex."""
    try:
        return value.decode()
    except UnicodeDecodeError:
        return bytea_hex(value)
