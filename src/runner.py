"""Main entry point: async scheduler loop for chain-health."""

import asyncio
import logging
import signal
import sys

from agents.health.models import Endpoint, EndpointState
from agents.health.monitor import HealthMonitor
from shared.config import load_config

log = logging.getLogger("chainhealth")


async def run_checks(monitor: HealthMonitor, endpoints: list[dict], states: dict[str, EndpointState]) -> None:
    """Probe every endpoint once and store the new snapshots in ``states``."""
    futures = []
    for ep in endpoints:
        try:
            url = Endpoint(address=ep["address"], provider=ep.get("provider"))
            future = monitor.check_url(url, ep["type"], ep["chain_id"], states.get(url.address))
        except (KeyError, ValueError) as e:
            log.error("Skipping invalid endpoint %r: %r", ep, e)
            continue
        futures.append((url, future))

    results = await asyncio.gather(*(f for _, f in futures), return_exceptions=True)
    for (url, _), result in zip(futures, results):
        if isinstance(result, BaseException):
            log.error("Probe of %s failed: %r", url.address, result)
            continue
        states[result.address] = result

    available = sum(1 for s in states.values() if s.available)
    log.info("%d/%d endpoints available", available, len(states))


async def main():
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    log.info("chain-health starting")
    log.info(
        "Check interval: %ds, %d endpoint(s), concurrency %d",
        config.check_interval_seconds, len(config.endpoints), config.concurrency,
    )

    monitor = HealthMonitor(config)
    states: dict[str, EndpointState] = {}
    shutdown = asyncio.Event()

    def handle_signal():
        log.info("Shutdown signal received")
        shutdown.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal)

    while not shutdown.is_set():
        try:
            await run_checks(monitor, config.endpoints, states)
        except Exception:
            log.exception("Check run failed")

        # Wait for next check interval or shutdown
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=config.check_interval_seconds)
        except asyncio.TimeoutError:
            pass

    monitor.clear()
    await monitor.join()
    log.info("chain-health stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(0)
