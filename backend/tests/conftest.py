from __future__ import annotations

import copy
import json
import sys
from pathlib import Path
from typing import Callable

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import httpx
import pytest

from app.core.config import Settings
from ingestion.transport import FallbackTransport


@pytest.fixture
def sample_event_payload() -> dict[str, object]:
    path = Path(__file__).parent / "data" / "sample_event.json"
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def make_event(sample_event_payload) -> Callable[..., dict[str, object]]:
    """Build event payloads that share the sample's markets unless overridden."""

    def factory(**overrides: object) -> dict[str, object]:
        payload = copy.deepcopy(sample_event_payload)
        payload.update(overrides)
        return payload

    return factory


@pytest.fixture
def make_transport() -> Callable[..., FallbackTransport]:
    """Return a factory for transports backed by an in-process request handler."""

    created: list[FallbackTransport] = []

    def factory(
        handler: Callable[[httpx.Request], httpx.Response],
        fallbacks: list[str] | None = None,
    ) -> FallbackTransport:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        transport = FallbackTransport(fallbacks=fallbacks or [], timeout=1.0, client=client)
        created.append(transport)
        return transport

    yield factory
    for transport in created:
        transport.client.close()


@pytest.fixture
def test_settings(monkeypatch) -> Settings:
    settings = Settings(
        polymarket_base_url="https://gamma.test",
        polymarket_events_path="/events",
        related_events_limit=25,
        oracle_chain_endpoints={
            "polygon": "https://oracle.test/polygon",
            "amoy": "https://oracle.test/amoy",
        },
        oracle_default_chain="polygon",
        oracle_batch_size=2,
        transport_fallbacks=[],
        http_timeout_seconds=1.0,
    )
    monkeypatch.setattr("app.core.config.get_settings", lambda: settings)
    monkeypatch.setattr("app.core.config.settings", settings)
    return settings
