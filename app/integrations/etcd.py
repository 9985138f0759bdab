from __future__ import annotations

import base64
import logging
from typing import Any

import httpx

from app.core.exceptions import CoordinationError

logger = logging.getLogger(__name__)


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


class EtcdClient:
    """Minimal etcd v3 client speaking to the JSON gRPC gateway."""

    def __init__(
        self,
        base_url: str = "http://localhost:2379",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self._transport)

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        async with self._client() as client:
            response = await client.post(path, json=payload)
            response.raise_for_status()
            return response.json() if response.content else {}

    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key`` or None when the key is absent."""
        data = await self._post("/v3/kv/range", {"key": _b64(key)})
        kvs = data.get("kvs") or []
        if not kvs:
            return None
        raw = kvs[0].get("value")
        if raw is None:
            return ""
        return base64.b64decode(raw).decode("utf-8")

    async def check_connection(self, key: str = "test-key") -> None:
        """Perform a single read; raise CoordinationError if etcd cannot answer."""
        try:
            await self.get(key)
        except (httpx.HTTPError, ValueError) as exc:
            logger.error(f"Error connecting to etcd at {self.base_url}: {exc}")
            raise CoordinationError(str(exc) or exc.__class__.__name__) from exc
