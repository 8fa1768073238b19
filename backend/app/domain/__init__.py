"""Domain models representing events, markets and oracle proposals."""

from .models import (
    Event,
    EventMarkets,
    Market,
    Proposal,
    RelatedEvents,
    ResultChunk,
    SoftResult,
    Target,
)

__all__ = [
    "Event",
    "EventMarkets",
    "Market",
    "Proposal",
    "RelatedEvents",
    "ResultChunk",
    "SoftResult",
    "Target",
]
