"""Run one oracle proposal lookup end to end and report progress to a sink."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator, Protocol, Sequence

from loguru import logger

from app.core.config import Settings, get_settings
from app.core.errors import InvalidTargetError, ProposalLookupError
from app.domain import EventMarkets, ResultChunk, Target
from ingestion.client import PolymarketEventsClient
from ingestion.events import EventResolver
from ingestion.markets import group_markets, unique_market_ids
from ingestion.target import parse_target
from ingestion.transport import FallbackTransport
from oracle.client import OracleClient

INPUT_HINT = "Enter a slug, full URL, or numeric event id."
NO_MARKETS_MESSAGE = "No markets match the selected filters."


class PresentationSink(Protocol):
    """Consumer of lookup progress: status lines, the event shell, proposal chunks."""

    def status(self, message: str, *, error: bool = False) -> None:
        ...

    def events_ready(self, groups: Sequence[EventMarkets]) -> None:
        ...

    def proposals_chunk(self, chunk: ResultChunk) -> None:
        ...


class NullSink:
    def status(self, message: str, *, error: bool = False) -> None:
        return None

    def events_ready(self, groups: Sequence[EventMarkets]) -> None:
        return None

    def proposals_chunk(self, chunk: ResultChunk) -> None:
        return None


@dataclass(slots=True)
class LookupRequest:
    raw_input: str
    include_closed: bool = False
    include_proposed: bool = True
    batch_size: int | None = None
    chain: str | None = None


@dataclass(slots=True)
class LookupResult:
    target: Target
    groups: list[EventMarkets]
    market_ids: list[str]
    proposals: ResultChunk = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    @property
    def market_count(self) -> int:
        return len(self.market_ids)


@dataclass(slots=True)
class LookupUpdate:
    """One step of a running lookup, in the order a sink should see it."""

    kind: str
    message: str | None = None
    groups: list[EventMarkets] | None = None
    warnings: list[str] | None = None
    chunk: ResultChunk | None = None
    resolved: int = 0
    total: int = 0
    result: LookupResult | None = None


class LookupService:
    """Coordinate target parsing, event discovery, market filtering and oracle lookups."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        events_client: PolymarketEventsClient | None = None,
        oracle_client: OracleClient | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._transport: FallbackTransport | None = None
        if events_client is None or oracle_client is None:
            self._transport = FallbackTransport(
                fallbacks=self.settings.transport_fallbacks,
                timeout=self.settings.http_timeout_seconds,
            )
        self.events_client = events_client or PolymarketEventsClient(
            events_url=self.settings.events_url,
            related_limit=self.settings.related_events_limit,
            transport=self._transport,
        )
        self.oracle_client = oracle_client or OracleClient(
            chain_endpoints=self.settings.oracle_chain_endpoints,
            default_chain=self.settings.oracle_default_chain,
            batch_size=self.settings.oracle_batch_size,
            transport=self._transport,
        )
        self.resolver = EventResolver(self.events_client)

    def iter_updates(self, request: LookupRequest) -> Iterator[LookupUpdate]:
        """Yield progress updates; the last one has ``kind == "done"`` and carries the result.

        Fatal errors propagate as :class:`ProposalLookupError` after any
        updates already yielded.
        """

        target = parse_target(request.raw_input)
        if target is None:
            raise InvalidTargetError(INPUT_HINT)

        yield LookupUpdate(kind="status", message="Loading Polymarket event…")
        primary = self.resolver.fetch_primary_event(target)
        related = self.resolver.gather_related_events(primary)

        groups = group_markets(related.events, request.include_closed, request.include_proposed)
        market_ids = unique_market_ids(groups)
        result = LookupResult(
            target=target,
            groups=groups,
            market_ids=market_ids,
            warnings=list(related.warnings),
        )
        yield LookupUpdate(
            kind="events",
            groups=groups,
            warnings=list(related.warnings),
            total=len(market_ids),
        )

        if not market_ids:
            yield LookupUpdate(kind="done", message=NO_MARKETS_MESSAGE, result=result)
            return

        yield LookupUpdate(kind="status", message="Fetching UMA proposals…")
        total = len(market_ids)
        resolved = 0
        for chunk in self.oracle_client.iter_proposal_chunks(
            market_ids, request.chain, request.batch_size
        ):
            result.proposals.update(chunk)
            resolved += len(chunk)
            yield LookupUpdate(kind="proposals", chunk=chunk, resolved=resolved, total=total)
            yield LookupUpdate(
                kind="status",
                message=f"Fetched UMA for {resolved}/{total} market(s)…",
            )

        logger.info(
            "Lookup '{}' finished: events={}, markets={}, with_proposals={}",
            request.raw_input,
            len(groups),
            total,
            sum(1 for proposals in result.proposals.values() if proposals),
        )
        yield LookupUpdate(kind="done", message=f"Found {total} market(s).", result=result)

    def run(self, request: LookupRequest, sink: PresentationSink | None = None) -> LookupResult:
        sink = sink or NullSink()
        try:
            for update in self.iter_updates(request):
                _dispatch(update, sink)
                if update.kind == "done" and update.result is not None:
                    return update.result
            raise ProposalLookupError("Lookup ended without a result.")
        except ProposalLookupError as exc:
            logger.error("Lookup '{}' failed: {}", request.raw_input, exc)
            sink.status(str(exc), error=True)
            raise

    def close(self) -> None:
        if self._transport is not None:
            self._transport.close()

    def __enter__(self) -> "LookupService":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _dispatch(update: LookupUpdate, sink: PresentationSink) -> Any:
    if update.kind == "events":
        return sink.events_ready(update.groups or [])
    if update.kind == "proposals":
        return sink.proposals_chunk(update.chunk or {})
    if update.message:
        return sink.status(update.message)
    return None
