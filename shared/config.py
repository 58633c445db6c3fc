"""Environment-based configuration for chain-health."""

import json
import os
from dataclasses import dataclass, field

DEFAULT_ENDPOINTS = [
    {
        "chain_id": "cosmoshub-4",
        "type": "rest",
        "address": "https://rest.cosmos.directory/cosmoshub",
    },
    {
        "chain_id": "cosmoshub-4",
        "type": "rpc",
        "address": "https://rpc.cosmos.directory/cosmoshub",
    },
]


def _load_endpoints() -> list[dict[str, str]]:
    raw = os.getenv("ENDPOINTS_JSON", "")
    if not raw:
        return [dict(ep) for ep in DEFAULT_ENDPOINTS]
    return json.loads(raw)


@dataclass(frozen=True)
class Config:
    # Probe queue
    concurrency: int = field(
        default_factory=lambda: int(os.getenv("HEALTH_CONCURRENCY", "20"))
    )
    request_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10"))
    )

    # Availability rules
    error_cooldown_seconds: int = field(
        default_factory=lambda: int(os.getenv("ERROR_COOLDOWN_SECONDS", "180"))
    )
    allowed_delay_seconds: int = field(
        default_factory=lambda: int(os.getenv("ALLOWED_DELAY_SECONDS", "300"))
    )
    allowed_errors: int = field(
        default_factory=lambda: int(os.getenv("ALLOWED_ERRORS", "2"))
    )

    # Scheduling
    check_interval_seconds: int = field(
        default_factory=lambda: int(os.getenv("CHECK_INTERVAL_SECONDS", "60"))
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )

    # Endpoints to probe: each has chain_id, type ("rest" or "rpc") and address
    endpoints: list[dict[str, str]] = field(default_factory=_load_endpoints)


def load_config() -> Config:
    return Config()
