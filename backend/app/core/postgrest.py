"""PostgREST async client (httpx).

Forwards GET requests verbatim with the configured JWT so the data layer
applies its own Row-Level Security. No query rewriting happens here.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from app.core.config import Settings
from app.core.errors import ToolValidationError, UpstreamError

logger = structlog.stdlib.get_logger("sbsh.postgrest")


def _param_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class PostgrestClient:
    base_url: str
    jwt: str
    timeout: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.jwt}",
            "apikey": self.jwt,
            "Content-Type": "application/json",
        }

    async def get(self, table: str, query: dict[str, Any] | None = None) -> Any:
        """GET ``{base_url}/{table}`` with ``query`` as the query string."""
        if not self.jwt:
            raise ToolValidationError("POSTGREST_JWT is not configured")

        url = f"{self.base_url.rstrip('/')}/{quote(table, safe='')}"
        params = [(key, _param_value(value)) for key, value in (query or {}).items()]

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.warning("postgrest_request_failed", table=table, error=str(exc))
            raise UpstreamError(f"PostgREST request failed: {exc}") from exc

        if response.is_error:
            raise UpstreamError(
                f"PostgREST error ({response.status_code}): {response.text}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("postgrest_non_json_body", table=table, status=response.status_code)
            raise UpstreamError(
                "PostgREST returned a non-JSON body", status_code=response.status_code
            ) from exc


def get_postgrest_client(settings: Settings) -> PostgrestClient:
    return PostgrestClient(
        base_url=settings.postgrest_url,
        jwt=settings.postgrest_jwt,
        timeout=settings.postgrest_timeout,
    )
