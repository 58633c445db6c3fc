"""Block header validation and the availability state fold.

``build_url`` takes the previous snapshot and one probe outcome and returns
the next snapshot plus an optional ``Transition``. It never logs; callers pass
the transition to ``log_transition`` (or their own sink).

Availability rules:
  - An error while available increments ``error_count``; past
    ``allowed_errors`` the endpoint goes down.
  - An error while unavailable leaves ``error_count`` alone.
  - A clean probe brings an unavailable endpoint straight back up.
  - A clean probe resets ``error_count`` only once ``error_cooldown_seconds``
    have passed since the last error.
  - An endpoint that comes back inside the cooldown keeps its streak, so its
    next error takes it down again. ``error_count`` never exceeds
    ``allowed_errors + 1``.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone

from dateutil import parser as date_parser

from agents.health.models import (
    Endpoint,
    EndpointState,
    MalformedResponse,
    ProbeOutcome,
    Success,
    Transition,
    ValidationError,
)
from shared.config import Config

log = logging.getLogger("chainhealth.evaluator")

ENDPOINT_TYPES = ("rest", "rpc")


class MalformedHeader(Exception):
    """Response body lacks a usable ``block.header``."""


@dataclass(frozen=True)
class HeaderCheck:
    block_time: datetime
    block_height: int
    error: str | None = None


def url_path(endpoint_type: str) -> str:
    return "blocks/latest" if endpoint_type == "rest" else "block"


def _format_seconds(seconds: float) -> str:
    seconds = round(seconds, 3)
    if seconds == int(seconds):
        return str(int(seconds))
    return str(seconds)


def _parse_time(value: str) -> datetime:
    parsed = date_parser.isoparse(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def check_header(endpoint_type: str, data, chain_id: str, config: Config, now: datetime) -> HeaderCheck:
    """Validate the latest block header in a REST or RPC response body.

    Raises:
        MalformedHeader: if the header or one of its fields is missing or unparsable.
    """
    error = None
    try:
        if endpoint_type == "rpc":
            data = data["result"]
        header = data["block"]["header"]
        actual_chain_id = header["chain_id"]
        block_time = _parse_time(header["time"])
        block_height = int(header["height"])
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise MalformedHeader(f"{type(e).__name__}: {e}") from e

    if actual_chain_id != chain_id:
        error = f"Unexpected chain ID: {actual_chain_id}"

    if error is None and block_time < now - timedelta(seconds=config.allowed_delay_seconds):
        behind = (now - block_time).total_seconds()
        error = f"Unexpected block delay: {_format_seconds(behind)}"

    return HeaderCheck(block_time=block_time, block_height=block_height, error=error)


def check_outcome(
    endpoint_type: str, chain_id: str, outcome: ProbeOutcome, config: Config, now: datetime
) -> ProbeOutcome:
    """Run header validation on a successful fetch; other outcomes pass through."""
    if not isinstance(outcome, Success):
        return outcome
    try:
        header = check_header(endpoint_type, outcome.data, chain_id, config, now)
    except MalformedHeader as e:
        return MalformedResponse(
            response_time_ms=outcome.response_time_ms,
            message=f"Malformed response: {e}",
        )
    if header.error:
        return ValidationError(
            response_time_ms=outcome.response_time_ms,
            message=header.error,
            block_height=header.block_height,
            block_time=header.block_time,
        )
    return replace(outcome, block_height=header.block_height, block_time=header.block_time)


def build_url(
    endpoint_type: str,
    chain_id: str,
    url: Endpoint,
    current: EndpointState,
    outcome: ProbeOutcome,
    config: Config,
    now: datetime | None = None,
) -> tuple[EndpointState, Transition | None]:
    """Fold one probe outcome into the endpoint's previous snapshot."""
    now = now or datetime.now(timezone.utc)
    outcome = check_outcome(endpoint_type, chain_id, outcome, config, now)
    error = outcome.error

    was_available = current.available
    error_count = current.error_count or 0
    last_error = current.last_error
    last_error_at = current.last_error_at

    if error:
        if was_available:
            error_count = min(error_count + 1, config.allowed_errors + 1)
        last_error = error
        last_error_at = now
    elif error_count > 0:
        cooldown_start = now - timedelta(seconds=config.error_cooldown_seconds)
        if last_error_at is None or last_error_at <= cooldown_start:
            error_count = 0

    # A clean probe always brings the endpoint up; the streak only gates staying up.
    now_available = not error or (was_available and error_count <= config.allowed_errors)

    transition = None
    if was_available and not now_available:
        transition = Transition("Removing", chain_id, endpoint_type, url.address, error)
    elif not was_available and now_available:
        transition = Transition("Adding", chain_id, endpoint_type, url.address)
    elif was_available and error:
        transition = Transition("Failed", chain_id, endpoint_type, url.address, error)

    state = EndpointState(
        url=url,
        available=now_available,
        error_count=error_count,
        last_error=last_error,
        last_error_at=last_error_at,
        block_height=getattr(outcome, "block_height", None),
        block_time=getattr(outcome, "block_time", None),
        response_time_ms=outcome.response_time_ms,
    )
    return state, transition


def log_transition(transition: Transition) -> None:
    level = logging.INFO if transition.label == "Adding" else logging.WARNING
    parts = [transition.label, transition.chain_id, transition.endpoint_type, transition.address]
    if transition.error:
        parts.append(transition.error)
    log.log(level, "%s", " ".join(parts))
