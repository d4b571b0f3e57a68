"""Client for Postcodes.io - free UK postcode geocoding API.

No authentication required. Docs: https://postcodes.io/

Requests are single-shot: no retry, and no timeout unless one is passed in.
"""

import logging
from typing import Any

import httpx

from postcodes_explorer.models import Request

logger = logging.getLogger(__name__)

BASE_URL = "https://api.postcodes.io"


class PostcodesAPIError(Exception):
    """Raised when a request cannot complete or returns a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, reason: str = "", body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.reason = reason
        self.body = body


class PostcodesClient:
    """Thin GET/POST JSON dispatcher for the postcodes.io API."""

    def __init__(self, base_url: str = BASE_URL, timeout: float | None = None):
        self.base_url = base_url
        self._http = httpx.AsyncClient(timeout=timeout, base_url=base_url)

    async def close(self):
        await self._http.aclose()

    async def get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        """GET ``path`` and return the parsed JSON body."""
        return await self._request("GET", path, params=params or None)

    async def post_json(self, path: str, payload: Any) -> Any:
        """POST ``payload`` as a JSON body to ``path`` and return the parsed response."""
        return await self._request(
            "POST",
            path,
            json=payload,
            headers={"Content-Type": "application/json"},
        )

    async def send(self, request: Request) -> Any:
        """Dispatch a prepared Request."""
        if request.method == "POST":
            return await self.post_json(request.path, request.payload)
        if request.method == "GET":
            return await self.get_json(request.path, request.params)
        raise ValueError(f"Unsupported method: {request.method}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug("%s %s%s", method, self.base_url, path)
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise PostcodesAPIError(f"Network error: {e}") from e

        if not response.is_success:
            reason = response.reason_phrase
            try:
                body = response.json()
            except ValueError:
                body = None
            logger.warning("%s %s returned %s %s", method, path, response.status_code, reason)
            raise PostcodesAPIError(
                f"{response.status_code} {reason}",
                status_code=response.status_code,
                reason=reason,
                body=body,
            )

        try:
            return response.json()
        except ValueError as e:
            raise PostcodesAPIError(
                "Invalid JSON response",
                status_code=response.status_code,
                reason=response.reason_phrase,
            ) from e
