"""Rate-limited HTTP transport used by every provider fetcher."""

import json
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from knowscroll.core.exceptions import (
    HTTPStatusError,
    ParseError,
    RateLimitedError,
    TransportError,
    TransportTimeoutError,
)
from knowscroll.core.logging import get_logger
from knowscroll.core.rate_limit import RateLimiter

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransportRequest:
    """Outbound GET request."""

    url: str
    params: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class TransportResponse:
    """Successful provider response, body already read."""

    status: int
    text: str
    url: str
    content_type: str = ""

    def json(self) -> Any:
        try:
            return json.loads(self.text)
        except ValueError as e:
            raise ParseError(f"Invalid JSON from {self.url}: {e}") from e


def _parse_retry_after(value: Any) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class RateLimitedTransport:
    """
    HTTP transport with a shared rate limiter and a per-call timeout.

    Raises:
        RateLimitedError: provider answered 429
        HTTPStatusError: any other non-2xx status
        TransportTimeoutError: the call exceeded ``timeout_seconds``
        TransportError: connection-level failure
    """

    def __init__(
        self,
        limiter: RateLimiter,
        timeout_seconds: float = 10.0,
        user_agent: str = "Knowscroll/1.0",
    ) -> None:
        self.limiter = limiter
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent

    async def send(self, request: TransportRequest) -> TransportResponse:
        await self.limiter.acquire()

        headers = {"User-Agent": self.user_agent, **request.headers}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    request.url,
                    params=request.params,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if response.status == 429:
                        retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                        logger.bind(url=request.url, retry_after=retry_after).warning(
                            "provider_rate_limited"
                        )
                        raise RateLimitedError(request.url, retry_after)

                    if not 200 <= response.status < 300:
                        raise HTTPStatusError(response.status, request.url)

                    text = await response.text()
                    return TransportResponse(
                        status=response.status,
                        text=text,
                        url=request.url,
                        content_type=response.headers.get("Content-Type", ""),
                    )
        except TimeoutError as e:
            raise TransportTimeoutError(
                f"Request to {request.url} timed out after {self.timeout_seconds}s"
            ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Request to {request.url} failed: {e}") from e
