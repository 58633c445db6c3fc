"""Queue-backed endpoint health checks."""

import asyncio
import logging
from typing import Callable

import httpx

from agents.health.evaluator import ENDPOINT_TYPES, build_url, log_transition, url_path
from agents.health.models import Endpoint, EndpointState, Transition
from shared.config import Config
from shared.tools.endpoints import fetch_json
from shared.tools.queue import DedupQueue

log = logging.getLogger("chainhealth.monitor")


class HealthMonitor:
    """Probes endpoints through a de-duplicating queue keyed by address.

    Usage:
        monitor = HealthMonitor(config)
        state = await monitor.check_url(Endpoint(address), "rpc", "cosmoshub-4", state)
    """

    def __init__(
        self,
        config: Config,
        transport: httpx.AsyncBaseTransport | None = None,
        on_transition: Callable[[Transition], None] = log_transition,
    ):
        self.config = config
        self.transport = transport
        self.on_transition = on_transition
        self.queue = DedupQueue(config.concurrency)

    def size(self) -> int:
        return self.queue.size()

    @property
    def running(self) -> int:
        return self.queue.running

    def clear(self) -> None:
        self.queue.clear()

    async def join(self) -> None:
        await self.queue.join()

    def check_url(
        self,
        url: Endpoint,
        endpoint_type: str,
        chain_id: str,
        current: EndpointState | None = None,
    ) -> asyncio.Future:
        """Queue a probe of ``url`` and return a future for its new snapshot.

        Expected failures (timeouts, HTTP errors, bad headers) are folded into
        the returned state instead of being raised.
        """
        if endpoint_type not in ENDPOINT_TYPES:
            raise ValueError(f"Unknown endpoint type: {endpoint_type}")
        if current is None:
            current = EndpointState.initial(url)

        async def request() -> EndpointState:
            target = f"{url.address}/{url_path(endpoint_type)}"
            outcome = await fetch_json(
                target,
                timeout=self.config.request_timeout_seconds,
                transport=self.transport,
            )
            state, transition = build_url(
                endpoint_type, chain_id, url, current, outcome, self.config
            )
            if transition is not None:
                self.on_transition(transition)
            log.debug(
                "%s %s: available=%s errors=%d height=%s (%sms)",
                chain_id, url.address, state.available, state.error_count,
                state.block_height, state.response_time_ms,
            )
            return state

        return self.queue.submit(request, key=url.address)
