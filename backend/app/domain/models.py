"""Typed domain representations shared by the lookup pipeline and its hosts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, Mapping, TypeVar

from dateutil import parser as date_parser

from app.core.errors import PayloadDecodeError

T = TypeVar("T")


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    return text if text.strip() else None


def _parse_datetime(value: Any) -> datetime | None:
    if not value:
        return None
    try:
        return date_parser.isoparse(str(value))
    except (ValueError, TypeError):
        return None


@dataclass(frozen=True, slots=True)
class Target:
    """What the user asked for: a slug, a numeric event id, or (programmatically) both."""

    slug: str | None = None
    event_id: str | None = None


@dataclass(frozen=True, slots=True)
class Event:
    """Event snapshot decoded from the Gamma events API."""

    event_id: str
    slug: str | None
    title: str | None
    parent_event_id: str | None
    start_time: datetime | None
    end_time: datetime | None
    raw_markets: tuple[dict[str, Any], ...] = ()
    raw_data: dict[str, Any] | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "Event":
        if not isinstance(payload, Mapping):
            raise PayloadDecodeError(
                f"Expected an event object, got {type(payload).__name__}"
            )
        event_id = _optional_str(payload.get("id"))
        if event_id is None:
            raise PayloadDecodeError("Event payload is missing an id")

        markets = payload.get("markets")
        raw_markets = (
            tuple(item for item in markets if isinstance(item, Mapping))
            if isinstance(markets, list)
            else ()
        )
        parent = payload.get("parentEventId")
        if parent is None:
            parent = payload.get("parent_event_id")

        return cls(
            event_id=event_id,
            slug=_optional_str(payload.get("slug")),
            title=_optional_str(payload.get("title")) or _optional_str(payload.get("name")),
            parent_event_id=_optional_str(parent),
            start_time=_parse_datetime(payload.get("startDate")),
            end_time=_parse_datetime(payload.get("endDate")),
            raw_markets=raw_markets,
            raw_data=dict(payload),
        )


@dataclass(frozen=True, slots=True)
class Market:
    """Filtered market row ready for display and oracle lookups."""

    id: str
    label: str
    closed: bool
    proposed: bool
    state_label: str
    slug: str | None = None
    uma_status: str | None = None


@dataclass(frozen=True, slots=True)
class Proposal:
    """Optimistic oracle price request as returned by the subgraph."""

    id: str | None = None
    state: str | None = None
    proposer: str | None = None
    disputer: str | None = None
    proposed_price: str | None = None
    request_timestamp: str | None = None
    proposal_timestamp: str | None = None
    request_hash: str | None = None
    request_log_index: str | None = None
    raw_data: dict[str, Any] | None = field(default=None, compare=False)

    @classmethod
    def from_payload(cls, payload: Any) -> "Proposal":
        if not isinstance(payload, Mapping):
            raise PayloadDecodeError(
                f"Expected a proposal object, got {type(payload).__name__}"
            )
        return cls(
            id=_optional_str(payload.get("id")),
            state=_optional_str(payload.get("state")),
            proposer=_optional_str(payload.get("proposer")),
            disputer=_optional_str(payload.get("disputer")),
            proposed_price=_optional_str(payload.get("proposedPrice")),
            request_timestamp=_optional_str(payload.get("requestTimestamp")),
            proposal_timestamp=_optional_str(payload.get("proposalTimestamp")),
            request_hash=_optional_str(payload.get("requestHash")),
            request_log_index=_optional_str(payload.get("requestLogIndex")),
            raw_data=dict(payload),
        )


ResultChunk = dict[str, list[Proposal]]


@dataclass(frozen=True, slots=True)
class EventMarkets:
    """An event together with the market rows that survived filtering."""

    event: Event
    markets: tuple[Market, ...]


@dataclass(frozen=True)
class SoftResult(Generic[T]):
    """Outcome of a best-effort lookup: a value, and a warning when it degraded."""

    value: T
    warning: str | None = None


@dataclass(slots=True)
class RelatedEvents:
    """Deduplicated event set in discovery order plus non-fatal lookup warnings."""

    events: list[Event] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def add(self, event: Event) -> bool:
        if any(existing.event_id == event.event_id for existing in self.events):
            return False
        self.events.append(event)
        return True

    @property
    def event_ids(self) -> list[str]:
        return [event.event_id for event in self.events]
