from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from app.core.errors import EventNotFoundError, InvalidTargetError, OracleQueryError, TransportError
from app.domain import Event, EventMarkets, Market, Proposal, Target
from app.main import _lookup_service, _stream_service, app
from app.services.lookup_service import LookupResult, LookupUpdate


@pytest.fixture
def client():
    """Test client that cleans up dependency overrides after each test."""
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def lookup_result() -> LookupResult:
    event = Event.from_payload({"id": "16085", "slug": "will-x-happen", "title": "Will X happen?"})
    market = Market(
        id="1200",
        label="Will X happen by September?",
        closed=False,
        proposed=True,
        state_label="Proposed",
        slug="will-x-happen-by-september",
        uma_status="proposed",
    )
    proposal = Proposal(
        id="req-1",
        state="Requested",
        request_timestamp="1735689600",
        request_hash="0xabc",
        request_log_index="3",
    )
    return LookupResult(
        target=Target(slug="will-x-happen"),
        groups=[EventMarkets(event=event, markets=(market,))],
        market_ids=["1200"],
        proposals={"1200": [proposal]},
        warnings=["Could not load child events of 16085: offline"],
    )


def test_healthcheck(client):
    """Verify the healthcheck endpoint returns a successful response."""
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_lookup_returns_events_markets_and_proposals(client, lookup_result):
    """Verify the /lookup endpoint serializes the full run result."""
    mock_service = MagicMock()
    mock_service.run.return_value = lookup_result
    app.dependency_overrides[_lookup_service] = lambda: mock_service

    response = client.get(
        "/lookup", params={"q": "will-x-happen", "include_closed": "true", "batch_size": 4}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["target"] == {"slug": "will-x-happen", "event_id": None}
    assert body["market_count"] == 1
    assert body["events"][0]["event"]["event_id"] == "16085"
    assert body["events"][0]["markets"][0]["state_label"] == "Proposed"
    [proposal] = body["proposals"]["1200"]
    assert proposal["state_class"] == "neutral"
    assert proposal["display_timestamp"] == "2025-01-01T00:00:00Z"
    assert proposal["portal_url"].startswith("https://oracle.uma.xyz/propose?")
    assert body["warnings"] == ["Could not load child events of 16085: offline"]

    request = mock_service.run.call_args.args[0]
    assert request.raw_input == "will-x-happen"
    assert request.include_closed is True
    assert request.include_proposed is True
    assert request.batch_size == 4


@pytest.mark.parametrize(
    "error, status_code",
    [
        (InvalidTargetError("Enter a slug"), 400),
        (EventNotFoundError("Polymarket event not found."), 404),
        (TransportError("gamma unreachable"), 502),
        (OracleQueryError("UMA GraphQL error"), 502),
    ],
)
def test_lookup_maps_errors_to_status_codes(client, error, status_code):
    """Verify lookup failures become HTTP errors carrying the user-facing message."""
    mock_service = MagicMock()
    mock_service.run.side_effect = error
    app.dependency_overrides[_lookup_service] = lambda: mock_service

    response = client.get("/lookup", params={"q": "anything"})

    assert response.status_code == status_code
    assert response.json() == {"detail": str(error)}


def test_lookup_requires_query(client):
    response = client.get("/lookup")
    assert response.status_code == 422


def test_lookup_stream_emits_ndjson_records(client, lookup_result):
    """Verify the streaming endpoint emits one record per update and ends with an error record on failure."""
    chunk = {"1200": lookup_result.proposals["1200"]}

    def updates(_request):
        yield LookupUpdate(kind="status", message="Loading Polymarket event…")
        yield LookupUpdate(kind="events", groups=lookup_result.groups, warnings=[], total=1)
        yield LookupUpdate(kind="proposals", chunk=chunk, resolved=1, total=2)
        raise OracleQueryError("UMA GraphQL error: []")

    mock_service = MagicMock()
    mock_service.iter_updates.side_effect = updates
    app.dependency_overrides[_stream_service] = lambda: mock_service

    response = client.get("/lookup/stream", params={"q": "will-x-happen"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/x-ndjson")
    records = [json.loads(line) for line in response.text.splitlines() if line]
    assert [record["type"] for record in records] == ["status", "events", "proposals", "error"]
    assert records[2]["proposals"]["1200"][0]["id"] == "req-1"
    assert records[2]["resolved"] == 1
    assert records[3] == {
        "type": "error",
        "kind": "OracleQueryError",
        "message": "UMA GraphQL error: []",
    }
    mock_service.close.assert_called_once()


def test_lookup_stream_finishes_with_done_record(client, lookup_result):
    def updates(_request):
        yield LookupUpdate(kind="done", message="Found 1 market(s).", result=lookup_result)

    mock_service = MagicMock()
    mock_service.iter_updates.side_effect = updates
    app.dependency_overrides[_stream_service] = lambda: mock_service

    response = client.get("/lookup/stream", params={"q": "will-x-happen"})

    records = [json.loads(line) for line in response.text.splitlines() if line]
    assert records == [{"type": "done", "message": "Found 1 market(s).", "market_count": 1}]
