"""Endpoint snapshots and probe outcomes."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Endpoint:
    address: str
    provider: str | None = None


@dataclass(frozen=True)
class EndpointState:
    """Availability snapshot for one endpoint.

    Each probe derives a new snapshot from the previous one; instances are
    never modified in place.
    """

    url: Endpoint
    available: bool = False
    error_count: int = 0
    last_error: str | None = None
    last_error_at: datetime | None = None
    block_height: int | None = None
    block_time: datetime | None = None
    response_time_ms: int | None = None

    @property
    def address(self) -> str:
        return self.url.address

    @classmethod
    def initial(cls, url: Endpoint) -> "EndpointState":
        return cls(url=url)


# --- Probe outcomes ---


@dataclass(frozen=True)
class ProbeOutcome:
    response_time_ms: int

    @property
    def error(self) -> str | None:
        return getattr(self, "message", None)


@dataclass(frozen=True)
class Success(ProbeOutcome):
    data: Any
    block_height: int | None = None
    block_time: datetime | None = None


@dataclass(frozen=True)
class TransportError(ProbeOutcome):
    """Timeout, connection failure or non-2xx status."""

    message: str


@dataclass(frozen=True)
class ValidationError(ProbeOutcome):
    """Header arrived but failed the chain-ID or block-delay check."""

    message: str
    block_height: int | None = None
    block_time: datetime | None = None


@dataclass(frozen=True)
class MalformedResponse(ProbeOutcome):
    """Body was not JSON or lacked the expected block header fields."""

    message: str


@dataclass(frozen=True)
class Transition:
    label: str  # "Removing", "Adding" or "Failed"
    chain_id: str
    endpoint_type: str
    address: str
    error: str | None = None
