"""Tests for src/runner.py: one scheduling cycle."""

from datetime import datetime, timezone

import httpx
import pytest

from agents.health.monitor import HealthMonitor
from shared.config import Config
from src.runner import run_checks


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "down.example":
        return httpx.Response(502)
    header = {
        "chain_id": "cosmoshub-4",
        "time": datetime.now(timezone.utc).isoformat(),
        "height": "5",
    }
    return httpx.Response(200, json={"block": {"header": header}})


@pytest.mark.asyncio
async def test_run_checks_stores_latest_snapshots():
    config = Config(endpoints=[])
    monitor = HealthMonitor(config, transport=httpx.MockTransport(_handler))
    endpoints = [
        {"chain_id": "cosmoshub-4", "type": "rest", "address": "https://up.example"},
        {"chain_id": "cosmoshub-4", "type": "rest", "address": "https://down.example"},
    ]
    states = {}

    await run_checks(monitor, endpoints, states)
    assert states["https://up.example"].available is True
    assert states["https://down.example"].available is False

    await run_checks(monitor, endpoints, states)
    assert states["https://up.example"].block_height == 5
    assert states["https://down.example"].last_error == "Request failed with status code 502"


@pytest.mark.asyncio
async def test_run_checks_skips_invalid_entries(caplog):
    config = Config(endpoints=[])
    monitor = HealthMonitor(config, transport=httpx.MockTransport(_handler))
    endpoints = [
        {"chain_id": "cosmoshub-4", "type": "rest", "address": "https://a.example"},
        {"chain_id": "cosmoshub-4", "type": "grpc", "address": "https://b.example"},
        {"chain_id": "cosmoshub-4", "address": "https://c.example"},
        {"chain_id": "cosmoshub-4", "type": "rest", "address": "https://d.example"},
    ]
    states = {}

    await run_checks(monitor, endpoints, states)

    assert sorted(states) == ["https://a.example", "https://d.example"]
    assert all(s.available for s in states.values())
    assert sum("Skipping invalid endpoint" in m for m in caplog.messages) == 2
