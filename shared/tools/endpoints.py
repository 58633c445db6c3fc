"""HTTP probes against blockchain node endpoints."""

import time

import httpx

from agents.health.models import MalformedResponse, ProbeOutcome, Success, TransportError


def _elapsed_ms(start: float) -> int:
    return round((time.monotonic() - start) * 1000)


async def fetch_json(
    url: str,
    timeout: float = 10.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProbeOutcome:
    """GET ``url`` and return the parsed JSON body as a probe outcome.

    Never raises for network or HTTP failures; those come back as
    ``TransportError``. A body that is not JSON is a ``MalformedResponse``.
    """
    start = time.monotonic()
    try:
        async with httpx.AsyncClient(
            timeout=timeout, follow_redirects=True, transport=transport
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
    except httpx.TimeoutException:
        return TransportError(
            response_time_ms=_elapsed_ms(start),
            message=f"timeout of {round(timeout * 1000)}ms exceeded",
        )
    except httpx.HTTPStatusError as e:
        return TransportError(
            response_time_ms=_elapsed_ms(start),
            message=f"Request failed with status code {e.response.status_code}",
        )
    except Exception as e:
        return TransportError(
            response_time_ms=_elapsed_ms(start),
            message=str(e) or type(e).__name__,
        )

    try:
        data = resp.json()
    except ValueError as e:
        return MalformedResponse(
            response_time_ms=_elapsed_ms(start),
            message=f"Invalid JSON response: {e}",
        )
    return Success(response_time_ms=_elapsed_ms(start), data=data)
