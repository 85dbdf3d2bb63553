"""Shared HTTP plumbing for the REST-based source adapters."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..errors import SourceUnavailable

logger = logging.getLogger(__name__)

USER_AGENT = "clipscout/1.0"
RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class RetryableResponse(Exception):
    """Raised for throttled or 5xx responses so tenacity retries them."""

    def __init__(self, response: httpx.Response) -> None:
        super().__init__(f"HTTP {response.status_code} from {response.request.url}")
        self.response = response


def build_client(timeout: float, transport: httpx.AsyncBaseTransport | None = None, **kwargs: Any) -> httpx.AsyncClient:
    headers = {"User-Agent": USER_AGENT, "Accept": "application/json", **kwargs.pop("headers", {})}
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=10.0),
        headers=headers,
        transport=transport,
        follow_redirects=True,
        **kwargs,
    )


@retry(
    retry=retry_if_exception_type((httpx.TransportError, RetryableResponse)),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, max=10),
    reraise=True,
)
async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs: Any) -> httpx.Response:
    response = await client.request(method, url, **kwargs)
    if response.status_code in RETRYABLE_STATUS:
        raise RetryableResponse(response)
    return response


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    platform: str,
    allow_missing: bool = False,
    **kwargs: Any,
) -> Any:
    """Send a request and decode its JSON body.

    Transport errors, non-2xx statuses and undecodable bodies all surface as
    ``SourceUnavailable``. With ``allow_missing`` a 404 returns None instead.
    """
    try:
        response = await _send(client, method, url, **kwargs)
    except (httpx.TransportError, RetryableResponse) as exc:
        raise SourceUnavailable(platform, str(exc)) from exc
    if allow_missing and response.status_code == 404:
        return None
    if response.is_error:
        raise SourceUnavailable(platform, f"HTTP {response.status_code} from {url}")
    try:
        return response.json()
    except ValueError as exc:
        raise SourceUnavailable(platform, f"invalid JSON from {url}") from exc
