from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping

from app.domain import Event, EventMarkets, Market

PROPOSED_STATUS = "proposed"

_DECIMAL_PATTERN = re.compile(r"^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")


def _market_id(raw_market: Mapping[str, Any]) -> str | None:
    raw_id = raw_market.get("id")
    if raw_id is None:
        raw_id = raw_market.get("market_id")
    if raw_id is None or isinstance(raw_id, bool):
        return None
    market_id = str(raw_id).strip()
    return market_id or None


def _first_text(*values: Any) -> str | None:
    for value in values:
        if value is None:
            continue
        text = str(value).strip()
        if text:
            return text
    return None


def _parse_finite_float(value: str) -> float | None:
    # float() also accepts "1_0", "inf" and "nan"; ids only count as numbers in plain decimal form.
    if not _DECIMAL_PATTERN.match(value):
        return None
    parsed = float(value)
    return parsed if math.isfinite(parsed) else None


def market_sort_key(market_id: str) -> tuple[int, float, str]:
    """Numeric ids first in numeric order, then the rest lexicographically."""

    numeric = _parse_finite_float(market_id)
    if numeric is None:
        return (1, 0.0, market_id)
    return (0, numeric, market_id)


def is_proposed(raw_market: Mapping[str, Any]) -> bool:
    return raw_market.get("umaResolutionStatus") == PROPOSED_STATUS


def normalize_market(raw_market: Mapping[str, Any]) -> Market | None:
    market_id = _market_id(raw_market)
    if market_id is None:
        return None

    closed = bool(raw_market.get("closed"))
    proposed = is_proposed(raw_market)
    if proposed:
        state_label = "Proposed"
    elif closed:
        state_label = "Closed"
    else:
        state_label = "Open"

    return Market(
        id=market_id,
        label=_first_text(
            raw_market.get("question"),
            raw_market.get("groupItemTitle"),
            raw_market.get("slug"),
        )
        or f"Market {market_id}",
        closed=closed,
        proposed=proposed,
        state_label=state_label,
        slug=_first_text(raw_market.get("slug")),
        uma_status=_first_text(
            raw_market.get("umaStatus"), raw_market.get("umaResolutionStatus")
        ),
    )


def collect_markets(
    event: Event, include_closed: bool, include_proposed: bool
) -> list[Market]:
    rows: list[Market] = []
    for raw_market in event.raw_markets:
        market = normalize_market(raw_market)
        if market is None:
            continue
        if market.closed and not include_closed:
            continue
        if market.proposed and not include_proposed:
            continue
        rows.append(market)
    rows.sort(key=lambda market: market_sort_key(market.id))
    return rows


def group_markets(
    events: Iterable[Event], include_closed: bool, include_proposed: bool
) -> list[EventMarkets]:
    return [
        EventMarkets(
            event=event,
            markets=tuple(collect_markets(event, include_closed, include_proposed)),
        )
        for event in events
    ]


def unique_market_ids(groups: Iterable[EventMarkets]) -> list[str]:
    """Market ids across all groups, first occurrence wins."""

    seen: dict[str, None] = {}
    for group in groups:
        for market in group.markets:
            seen.setdefault(market.id, None)
    return list(seen)
