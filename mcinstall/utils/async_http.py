"""Async HTTP client utilities."""

import aiohttp
from typing import Any, Dict, Optional

from ..exceptions import NetworkError


class AsyncHTTPClient:
    """Reusable async JSON client."""

    def __init__(self, headers: Optional[Dict[str, str]] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.default_headers = headers or {}
        self.session = session
        self._owns_session = session is None

    async def __aenter__(self):
        if self.session is None:
            self.session = aiohttp.ClientSession(headers=self.default_headers)
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if self.session and self._owns_session:
            await self.session.close()
            self.session = None

    async def get(self, url: str, headers: Optional[Dict[str, str]] = None) -> Any:
        """GET a json document; any non-success status is a NetworkError."""
        if self.session is None:
            raise RuntimeError("AsyncHTTPClient used outside of 'async with'")
        req_headers = {**self.default_headers, **(headers or {})}
        try:
            async with self.session.get(url, headers=req_headers) as resp:
                if resp.status >= 400:
                    raise NetworkError(url, resp.reason or "", status=resp.status)
                return await resp.json(content_type=None)
        except aiohttp.ClientError as e:
            raise NetworkError(url, str(e)) from e
