"""Resolve a lookup target into its event and the events related to it."""

from __future__ import annotations

from typing import Any, Callable, Mapping, TypeVar

from loguru import logger

from app.core.errors import (
    EventNotFoundError,
    PayloadDecodeError,
    ProposalLookupError,
    TargetConfigurationError,
    TransportError,
)
from app.domain import Event, RelatedEvents, SoftResult, Target

from .client import PolymarketEventsClient

T = TypeVar("T")

NOT_FOUND_MESSAGE = "Polymarket event not found. Double-check the slug or event ID."


class EventResolver:
    """Fetch a primary event and walk its shallow parent/child hierarchy."""

    def __init__(self, client: PolymarketEventsClient) -> None:
        self.client = client

    def _attempt(self, label: str, fetch: Callable[[], Any]) -> tuple[Event | None, str | None]:
        """Run one lookup strategy.

        Returns the decoded event, or ``None`` plus the reason when the
        lookup signalled "not found" or produced an unusable payload.
        Transport failures other than 404 propagate.
        """

        try:
            payload = fetch()
        except TransportError as exc:
            if exc.not_found:
                return None, f"{label}: {exc}"
            raise
        except ValueError as exc:
            logger.warning("Event lookup {} returned a non-JSON body: {}", label, exc)
            return None, f"{label}: response body is not JSON"

        if isinstance(payload, Mapping) and payload.get("error"):
            return None, f"{label}: {payload['error']}"

        try:
            return Event.from_payload(payload), None
        except PayloadDecodeError as exc:
            logger.warning("Event lookup {} returned an unusable payload: {}", label, exc)
            return None, f"{label}: {exc}"

    def fetch_primary_event(self, target: Target) -> Event:
        attempts: list[tuple[str, Callable[[], Any]]] = []
        if target.slug:
            slug = target.slug
            attempts.append((f"slug={slug}", lambda: self.client.fetch_by_slug(slug)))
        if target.event_id:
            event_id = target.event_id
            attempts.append((f"id={event_id}", lambda: self.client.fetch_by_id(event_id)))
        if not attempts:
            raise TargetConfigurationError("Unable to determine slug or event id from input.")

        reasons: list[str] = []
        for label, fetch in attempts:
            event, reason = self._attempt(label, fetch)
            if event is not None:
                logger.info("Resolved event {} via {}", event.event_id, label)
                return event
            logger.info("Event lookup {} found nothing: {}", label, reason)
            reasons.append(reason or label)
        raise EventNotFoundError(NOT_FOUND_MESSAGE, reasons=reasons)

    def fetch_event_by_id(self, event_id: str) -> Event | None:
        event, reason = self._attempt(f"id={event_id}", lambda: self.client.fetch_by_id(event_id))
        if event is None:
            logger.info("Event {} not found: {}", event_id, reason)
        return event

    def fetch_child_events(self, parent_event_id: str) -> list[Event]:
        try:
            payload = self.client.fetch_children(parent_event_id)
        except ValueError as exc:
            raise PayloadDecodeError(
                f"Child events of {parent_event_id} returned a non-JSON body"
            ) from exc
        if not isinstance(payload, list):
            logger.warning(
                "Child events of {} returned {} instead of a list",
                parent_event_id,
                type(payload).__name__,
            )
            return []

        children: list[Event] = []
        for raw_event in payload:
            try:
                children.append(Event.from_payload(raw_event))
            except PayloadDecodeError as exc:
                logger.warning("Skipping child event of {}: {}", parent_event_id, exc)
        return children

    @staticmethod
    def _best_effort(description: str, fetch: Callable[[], T], default: T) -> SoftResult[T]:
        try:
            return SoftResult(fetch())
        except ProposalLookupError as exc:
            warning = f"Could not load {description}: {exc}"
            logger.warning("{}", warning)
            return SoftResult(default, warning)

    def gather_related_events(self, primary: Event) -> RelatedEvents:
        related = RelatedEvents()
        related.add(primary)
        root_id = primary.parent_event_id or primary.event_id

        if primary.parent_event_id:
            parent_id = primary.parent_event_id
            parent = self._best_effort(
                f"parent event {parent_id}",
                lambda: self.fetch_event_by_id(parent_id),
                None,
            )
            if parent.warning:
                related.warnings.append(parent.warning)
            if parent.value is not None:
                related.add(parent.value)

        children = self._best_effort(
            f"child events of {root_id}",
            lambda: self.fetch_child_events(root_id),
            [],
        )
        if children.warning:
            related.warnings.append(children.warning)
        for child in children.value:
            related.add(child)

        logger.info(
            "Gathered {} related event(s) for {} (root={})",
            len(related.events),
            primary.event_id,
            root_id,
        )
        return related
