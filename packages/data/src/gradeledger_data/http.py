"""Shared aiohttp session handling for the grading service API."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from .exceptions import NetworkError
from .models import Identity

logger = logging.getLogger(__name__)


class GradingServiceClient:
    """Thin aiohttp client for the grading service.

    Every response is wrapped in the envelope ``{success, data, message}``;
    ``request`` returns ``data`` and turns transport failures, timeouts,
    HTTP errors and ``success: false`` into ``NetworkError``.

    Args:
        base_url: Root URL of the grading service
        timeout: Request timeout in seconds
        verify_ssl: Verify SSL certificates
    """

    def __init__(self, base_url: str, timeout: float = 30.0, verify_ssl: bool = True) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._verify_ssl = verify_ssl
        self._session: aiohttp.ClientSession | None = None
        self._initialized = False

    @property
    def base_url(self) -> str:
        return self._base_url

    async def initialize(self) -> None:
        """Create the HTTP session. Idempotent."""
        if self._initialized:
            return
        connector = aiohttp.TCPConnector(ssl=self._verify_ssl)
        self._session = aiohttp.ClientSession(
            headers={"Content-Type": "application/json", "Accept": "application/json"},
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self._timeout),
        )
        self._initialized = True
        logger.info("%s initialized: %s", type(self).__name__, self._base_url)

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None
        self._initialized = False

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(f"{type(self).__name__} not initialized. Call initialize() first.")

    async def request(
        self,
        operation: str,
        method: str,
        path: str,
        identity: Identity | None = None,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Perform one API call and return the unwrapped ``data``.

        Raises:
            NetworkError: On any transport or service failure
        """
        self._ensure_initialized()
        assert self._session is not None

        request_headers = identity.headers() if identity else {}
        if headers:
            request_headers.update(headers)
        clean_params = {k: str(v) for k, v in (params or {}).items() if v is not None}

        url = f"{self._base_url}{path}"
        try:
            async with self._session.request(
                method, url, params=clean_params, json=json, headers=request_headers
            ) as response:
                await self._check_response(operation, response)
                body = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            logger.error("Request '%s' timed out after %ss", operation, self._timeout)
            raise NetworkError(operation, "request timed out") from e
        except aiohttp.ClientError as e:
            logger.error("Request '%s' failed: %s", operation, e)
            raise NetworkError(operation, str(e)) from e
        except ValueError as e:
            logger.error("Request '%s' returned a non-JSON body", operation)
            raise NetworkError(operation, "invalid JSON response", retryable=False) from e

        return self._unwrap(operation, body)

    async def _check_response(self, operation: str, response: aiohttp.ClientResponse) -> None:
        if response.status >= 400:
            text = await response.text()
            logger.error("HTTP request '%s' failed: HTTP %s: %s", operation, response.status, text)
            raise NetworkError(
                operation,
                text or response.reason or "request failed",
                status=response.status,
                retryable=response.status >= 500 or response.status == 429,
            )

    @staticmethod
    def _unwrap(operation: str, body: Any) -> Any:
        if not isinstance(body, dict) or "success" not in body:
            return body
        if not body["success"]:
            raise NetworkError(operation, body.get("message") or "request rejected", retryable=False)
        return body.get("data")
