"""Single JSON POST over httpx with an optional hard wall-clock deadline.

Failures are reduced to two signals that the LLM client classifies:
``RequestTimeout`` and ``HTTPStatusFailure``. A 2xx body that is not JSON
raises ``AIValidationError``. Transport errors from httpx propagate untouched.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from .errors import AIValidationError

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = "REQUEST_TIMEOUT"


class RequestTimeout(Exception):
    """Sentinel raised when a call exceeds its deadline."""

    def __init__(self, timeout_seconds: float | None = None) -> None:
        super().__init__(REQUEST_TIMEOUT)
        self.timeout_seconds = timeout_seconds


class HTTPStatusFailure(Exception):
    """Non-2xx response; ``str(exc)`` is ``"HTTP {status}: {reason}"``."""

    def __init__(self, status_code: int, reason: str) -> None:
        super().__init__(f"HTTP {status_code}: {reason}")
        self.status_code = status_code
        self.reason = reason


class HTTPClientService:
    """Thin async wrapper used by provider clients.

    A new ``httpx.AsyncClient`` and a new timeout scope are created for every
    call; nothing timer-related outlives the call.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._transport = transport

    async def post_with_timeout(
        self,
        url: str,
        body: Any,
        timeout_seconds: float,
        headers: dict[str, str] | None = None,
    ) -> Any:
        try:
            async with asyncio.timeout(timeout_seconds):
                return await self._send(url, body, headers, timeout=timeout_seconds)
        except (TimeoutError, httpx.TimeoutException) as exc:
            logger.warning("POST %s exceeded %.1fs deadline", url, timeout_seconds)
            raise RequestTimeout(timeout_seconds) from exc

    async def post(
        self,
        url: str,
        body: Any,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """POST without a deadline; the caller owns cancellation."""
        return await self._send(url, body, headers, timeout=None)

    async def _send(
        self,
        url: str,
        body: Any,
        headers: dict[str, str] | None,
        *,
        timeout: float | None,
    ) -> Any:
        merged_headers = {"Content-Type": "application/json", **(headers or {})}

        async with httpx.AsyncClient(transport=self._transport, timeout=timeout) as client:
            resp = await client.post(url, json=body, headers=merged_headers)

        if not resp.is_success:
            raise HTTPStatusFailure(resp.status_code, resp.reason_phrase)
        try:
            return resp.json()
        except ValueError as exc:
            raise AIValidationError("Malformed API response", details=str(exc)) from exc
