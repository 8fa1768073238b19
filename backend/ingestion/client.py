from __future__ import annotations

from typing import Any
from urllib.parse import quote

from app.core.config import settings

from .transport import FallbackTransport


class PolymarketEventsClient:
    """Thin wrapper around the Polymarket Gamma events endpoints."""

    def __init__(
        self,
        *,
        events_url: str | None = None,
        related_limit: int | None = None,
        transport: FallbackTransport | None = None,
    ) -> None:
        self.events_url = (events_url or settings.events_url).rstrip("/")
        self.related_limit = related_limit or settings.related_events_limit
        self._owns_transport = transport is None
        self.transport = transport or FallbackTransport()

    def slug_url(self, slug: str) -> str:
        return f"{self.events_url}/slug/{quote(slug, safe='')}"

    def id_url(self, event_id: str) -> str:
        return f"{self.events_url}/{quote(event_id, safe='')}"

    def fetch_by_slug(self, slug: str) -> Any:
        return self.transport.get_json(self.slug_url(slug))

    def fetch_by_id(self, event_id: str) -> Any:
        return self.transport.get_json(self.id_url(event_id))

    def fetch_children(self, parent_event_id: str) -> Any:
        params: dict[str, Any] = {
            "parent_event_id": parent_event_id,
            "limit": self.related_limit,
        }
        return self.transport.get_json(self.events_url, params=params)

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "PolymarketEventsClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
