"""
Transport protocol for peer REST calls.

Defines the seam where concrete HTTP implementations plug in. The peer
client depends on this protocol, not on httpx directly, so the transport
can be swapped without editing client logic.

Concrete implementations:
    - HttpxTransport (default, uses httpx.AsyncClient)
    - FakeTransport (tests, returns canned responses)

Response handling is shared by every verb:
    - A body that is not JSON is returned as ``{"text": <body>}``.
    - Any status other than 200 raises PeerError(HTTP_ERROR) with the
      parsed body in ``details["body"]``; the peer puts its error
      description there.
    - Timeouts and connection failures raise PeerError(TIMEOUT) and
      PeerError(CONNECTION_FAILED).
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable

import httpx

from chainorchestra.errors import PeerError

logger = logging.getLogger(__name__)


@runtime_checkable
class PeerTransport(Protocol):
    """Async transport for peer REST requests."""

    async def get_json(self, url: str) -> dict[str, Any]:
        """GET ``url`` and return the parsed response body.

        Raises:
            PeerError: On transport failure or a non-200 status.
        """
        ...

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST ``payload`` as application/json and return the parsed body.

        Raises:
            PeerError: On transport failure or a non-200 status.
        """
        ...

    async def delete_json(self, url: str) -> dict[str, Any]:
        """DELETE ``url`` and return the parsed response body.

        Raises:
            PeerError: On transport failure or a non-200 status.
        """
        ...


def _parse_body(response: httpx.Response) -> dict[str, Any]:
    """Parse a response body, falling back to ``{"text": ...}``."""
    try:
        parsed = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return {"text": response.text}
    if not isinstance(parsed, dict):
        return {"text": response.text}
    return parsed


class HttpxTransport:
    """Default transport using httpx.AsyncClient.

    Args:
        timeout: Request timeout in seconds.
        headers: Extra headers sent with every request.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ) -> None:
        self._timeout = timeout
        self._headers = headers or {}

    @property
    def timeout(self) -> float:
        return self._timeout

    async def get_json(self, url: str) -> dict[str, Any]:
        return await self._request("GET", url)

    async def post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", url, payload)

    async def delete_json(self, url: str) -> dict[str, Any]:
        return await self._request("DELETE", url)

    async def _request(
        self,
        method: str,
        url: str,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Accept": "application/json", **self._headers}
        if payload is not None:
            headers["Content-Type"] = "application/json"

        logger.debug("%s %s", method, url)
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.request(
                    method,
                    url,
                    json=payload,
                    headers=headers,
                )
        except httpx.TimeoutException as e:
            raise PeerError(
                f"{method} {url} timed out after {self._timeout}s",
                error_code="TIMEOUT",
                details={"url": url, "timeout_s": self._timeout},
            ) from e
        except httpx.ConnectError as e:
            raise PeerError(
                f"Failed to connect to {url}",
                error_code="CONNECTION_FAILED",
                details={"url": url},
            ) from e
        except httpx.HTTPError as e:
            raise PeerError(
                f"HTTP error: {e}",
                error_code="HTTP_ERROR",
                details={"url": url, "error": str(e)},
            ) from e

        body = _parse_body(response)
        if response.status_code != 200:
            raise PeerError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                error_code="HTTP_ERROR",
                details={
                    "url": url,
                    "status_code": response.status_code,
                    "body": body,
                },
            )
        return body
