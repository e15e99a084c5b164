"""Shared GET-with-retry helper for the registry and GitHub clients."""

import asyncio
import logging
from typing import Any, Callable

import httpx

from stackhumans.models.errors import FailureKind, FetchFailure, FetchResult

logger = logging.getLogger(__name__)

# Returns a final result for statuses the caller handles itself, or None to
# continue with the default handling (2xx parsed, everything else a failure).
StatusHandler = Callable[[httpx.Response], FetchResult | None]


def status_failure(response: httpx.Response) -> FetchFailure:
    """Classify a non-2xx response.

    4xx responses are definitive, except request timeouts (408) and 429 which
    may clear up on their own.
    """
    status = response.status_code
    if 400 <= status < 500 and status not in (408, 429):
        kind = FailureKind.REJECTED
    else:
        kind = FailureKind.HTTP_STATUS
    return FetchFailure(kind=kind, status=status, message=f"HTTP {status}")


async def _attempt(
    client: httpx.AsyncClient,
    url: str,
    *,
    headers: dict[str, str] | None,
    params: dict | None,
    timeout: float,
    handle_status: StatusHandler | None,
    parse: Callable[[Any], Any] | None,
) -> FetchResult:
    """Issue one request and turn every outcome into a ``FetchResult``."""
    try:
        response = await client.get(url, headers=headers, params=params, timeout=timeout)
    except httpx.TimeoutException as e:
        return FetchResult.fail(FetchFailure(kind=FailureKind.TIMEOUT, message=str(e) or "Request timeout"))
    except httpx.RequestError as e:
        return FetchResult.fail(FetchFailure(kind=FailureKind.NETWORK, message=str(e) or "Network error"))

    if handle_status is not None:
        handled = handle_status(response)
        if handled is not None:
            return handled

    if not response.is_success:
        return FetchResult.fail(status_failure(response))

    try:
        data = response.json()
    except ValueError as e:
        return FetchResult.fail(
            FetchFailure(
                kind=FailureKind.MALFORMED,
                status=response.status_code,
                message=f"JSON parse error: {e}",
            )
        )

    if parse is None:
        return FetchResult.ok(data)
    try:
        return FetchResult.ok(parse(data))
    except (ValueError, TypeError, KeyError) as e:
        return FetchResult.fail(
            FetchFailure(
                kind=FailureKind.MALFORMED,
                status=response.status_code,
                message=f"Unexpected response shape: {e}",
            )
        )


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    retries: int,
    backoff_base: float,
    timeout: float,
    headers: dict[str, str] | None = None,
    params: dict | None = None,
    handle_status: StatusHandler | None = None,
    parse: Callable[[Any], Any] | None = None,
) -> FetchResult:
    """GET ``url`` and decode JSON, retrying transient failures.

    Retries only failures whose kind is retryable, waiting
    ``backoff_base * 2**n`` seconds before retry ``n + 1``. Never raises for
    upstream faults; the last failure is returned once ``retries`` is spent.

    Args:
        client: Client to issue the request with.
        url: Absolute URL.
        retries: Extra attempts after the first.
        backoff_base: Delay before the first retry, in seconds.
        timeout: Per-attempt timeout in seconds.
        headers: Request headers.
        params: Query parameters.
        handle_status: Hook for statuses the caller treats specially.
        parse: Converts decoded JSON into the result value. ``ValueError``,
            ``TypeError`` and ``KeyError`` are reported as malformed bodies.

    Returns:
        FetchResult with the parsed value or the final failure.
    """
    attempt = 0
    while True:
        result = await _attempt(
            client,
            url,
            headers=headers,
            params=params,
            timeout=timeout,
            handle_status=handle_status,
            parse=parse,
        )
        if result.is_ok or not result.failure.retryable or attempt >= retries:
            if not result.is_ok and result.failure.retryable:
                logger.debug(f"Giving up on {url} after {attempt + 1} attempts: {result.failure}")
            return result

        delay = backoff_base * (2 ** attempt)
        logger.debug(f"Retrying {url} in {delay:.2f}s ({result.failure})")
        await asyncio.sleep(delay)
        attempt += 1
