"""Connector backend that forwards actions to an HTTP gateway."""

import httpx

from ..errors import CapabilityExecutionError
from ..logging_config import get_logger

logger = get_logger(__name__)


def parse_retry_after(value: str | None) -> int | None:
    """Retry-After header (seconds) to milliseconds."""
    if not value:
        return None
    try:
        return int(float(value) * 1000)
    except ValueError:
        return None


class HttpConnectorAdapter:
    """POSTs ``params`` to ``{base_url}/connectors/{id}/actions/{action}``."""

    def __init__(
        self,
        base_url: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = headers or {}

    async def execute(self, capability_id: str, action_id: str, params: dict) -> dict:
        url = f"{self._base_url}/connectors/{capability_id}/actions/{action_id}"
        try:
            response = await self._client.post(url, json=params, headers=self._headers)
        except httpx.TimeoutException as e:
            raise CapabilityExecutionError(f"Request timeout: {e}", capability_id) from e
        except httpx.HTTPError as e:
            raise CapabilityExecutionError(f"Network error: {e}", capability_id) from e

        if response.status_code == 429:
            raise CapabilityExecutionError(
                "429 Too Many Requests",
                capability_id,
                retry_after_ms=parse_retry_after(response.headers.get("Retry-After")),
            )
        if response.is_error:
            raise CapabilityExecutionError(
                f"HTTP {response.status_code}: {response.text[:200]}", capability_id
            )

        try:
            return response.json()
        except ValueError:
            return {"success": True, "result": response.text}

    async def close(self) -> None:
        await self._client.aclose()
