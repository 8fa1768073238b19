"""Display helpers for oracle proposals: portal links, state classes, timestamps."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from urllib.parse import urlencode

from app.domain import Proposal

PORTAL_BASE_URL = "https://oracle.uma.xyz"
PORTAL_PROJECT = "Polymarket"
PORTAL_CHAIN_ID = 137

# States outside both sets render as neutral.
_POSITIVE_STATES = frozenset({"proposed", "settled"})
_WARNING_STATES = frozenset({"closed"})


def build_portal_url(proposal: Proposal) -> str | None:
    tx_hash = (proposal.request_hash or "").strip()
    log_index = (proposal.request_log_index or "").strip()
    if not tx_hash or not log_index:
        return None
    if (proposal.state or "").lower() == "requested":
        query = urlencode(
            {
                "project": PORTAL_PROJECT,
                "transactionHash": tx_hash,
                "eventIndex": log_index,
                "chainId": PORTAL_CHAIN_ID,
            }
        )
        return f"{PORTAL_BASE_URL}/propose?{query}"
    query = urlencode({"transactionHash": tx_hash, "eventIndex": log_index})
    return f"{PORTAL_BASE_URL}/?{query}"


def classify_state(state: str | None) -> str:
    normalized = (state or "").lower()
    if normalized in _POSITIVE_STATES:
        return "positive"
    if normalized in _WARNING_STATES:
        return "warning"
    return "neutral"


def format_timestamp(value: str | int | float | None) -> str | None:
    if value is None or value == "":
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return str(value)
    if not math.isfinite(seconds):
        return str(value)
    # the subgraph reports unset timestamps as zero
    if seconds == 0:
        return None
    try:
        moment = datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return str(value)
    return moment.isoformat().replace("+00:00", "Z")


def proposal_timestamp(proposal: Proposal) -> str | None:
    return format_timestamp(proposal.proposal_timestamp or proposal.request_timestamp)
