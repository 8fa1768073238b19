from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.domain import Event, EventMarkets, Market, Proposal
from app.schemas import EventWithMarkets, ProposalView


def test_proposal_view_derives_display_fields():
    """Verify that state class, timestamp and portal link are derived from the raw proposal."""
    view = ProposalView.from_proposal(
        Proposal.from_payload(
            {
                "id": "req-9",
                "state": "Settled",
                "requestTimestamp": 1735689600,
                "requestHash": "0xfeed",
                "requestLogIndex": 7,
            }
        )
    )
    assert view.state_class == "positive"
    assert view.request_timestamp == "1735689600"
    assert view.display_timestamp == "2025-01-01T00:00:00Z"
    assert view.portal_url == "https://oracle.uma.xyz/?transactionHash=0xfeed&eventIndex=7"


def test_event_with_markets_reads_domain_objects():
    """Verify that domain dataclasses convert into response schemas."""
    event = Event.from_payload(
        {"id": 42, "name": "Named only", "parent_event_id": 7, "startDate": "2025-02-01T00:00:00Z"}
    )
    market = Market(id="1", label="One", closed=False, proposed=False, state_label="Open")

    schema = EventWithMarkets.from_group(EventMarkets(event=event, markets=(market,)))

    assert schema.event.event_id == "42"
    assert schema.event.title == "Named only"
    assert schema.event.parent_event_id == "7"
    assert schema.event.start_time is not None
    assert schema.markets[0].label == "One"


def test_settings_parse_comma_separated_fallbacks():
    settings = Settings(
        transport_fallbacks="https://proxy.test/?url={url}, https://raw.test/get?u={url}"
    )
    assert settings.transport_fallbacks == [
        "https://proxy.test/?url={url}",
        "https://raw.test/get?u={url}",
    ]


def test_settings_reject_fallback_without_placeholder():
    with pytest.raises(ValidationError):
        Settings(transport_fallbacks=["https://proxy.test/"])


def test_settings_require_known_default_chain():
    with pytest.raises(ValidationError):
        Settings(oracle_default_chain="mainnet")


def test_settings_events_url_joins_base_and_path():
    settings = Settings(polymarket_base_url="https://gamma.test/", polymarket_events_path="events/")
    assert settings.events_url == "https://gamma.test/events"
