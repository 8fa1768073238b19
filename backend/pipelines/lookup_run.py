"""Standalone job that looks up oracle proposals for an event and its related events."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from loguru import logger

from app.core.config import get_settings
from app.core.errors import InvalidTargetError, ProposalLookupError
from app.domain import EventMarkets, ResultChunk
from app.services.lookup_service import LookupRequest, LookupResult, LookupService
from oracle.links import build_portal_url, proposal_timestamp


@dataclass(slots=True)
class ConsoleSink:
    """Presentation sink that reports progress through the logger."""

    labels: dict[str, str] = field(default_factory=dict)
    chunks_received: int = 0

    def status(self, message: str, *, error: bool = False) -> None:
        if error:
            logger.error("{}", message)
        else:
            logger.info("{}", message)

    def events_ready(self, groups: Sequence[EventMarkets]) -> None:
        for group in groups:
            event = group.event
            logger.info(
                "Event {} ({}): {} market(s)",
                event.event_id,
                event.title or event.slug or "untitled",
                len(group.markets),
            )
            for market in group.markets:
                self.labels.setdefault(market.id, market.label)

    def proposals_chunk(self, chunk: ResultChunk) -> None:
        self.chunks_received += 1
        for market_id, proposals in chunk.items():
            label = self.labels.get(market_id, market_id)
            if not proposals:
                logger.info("[{}] {}: no UMA requests yet", market_id, label)
                continue
            for proposal in proposals:
                logger.info(
                    "[{}] {}: {} @ {} {}",
                    market_id,
                    label,
                    proposal.state or "?",
                    proposal_timestamp(proposal) or "-",
                    build_portal_url(proposal) or "(missing tx hash/index)",
                )


def summarize(result: LookupResult) -> dict[str, Any]:
    return {
        "target": {"slug": result.target.slug, "event_id": result.target.event_id},
        "events": [
            {
                "event_id": group.event.event_id,
                "slug": group.event.slug,
                "title": group.event.title,
                "markets": [
                    {"id": market.id, "label": market.label, "state": market.state_label}
                    for market in group.markets
                ],
            }
            for group in result.groups
        ],
        "proposals": {
            market_id: [
                {
                    "id": proposal.id,
                    "state": proposal.state,
                    "timestamp": proposal_timestamp(proposal),
                    "portal_url": build_portal_url(proposal),
                }
                for proposal in proposals
            ]
            for market_id, proposals in result.proposals.items()
        },
        "market_count": result.market_count,
        "warnings": result.warnings,
    }


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find UMA optimistic-oracle proposals for a Polymarket event and its related events",
    )
    parser.add_argument("target", help="Event slug, Polymarket URL or numeric event id")
    parser.add_argument(
        "--include-closed",
        action="store_true",
        help="Include markets that are already closed",
    )
    parser.add_argument(
        "--exclude-proposed",
        action="store_true",
        help="Skip markets whose resolution has already been proposed",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Number of markets packed into each oracle query",
    )
    parser.add_argument(
        "--chain",
        default=None,
        help="Oracle chain key (defaults to ORACLE_DEFAULT_CHAIN)",
    )
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional path where a JSON summary report will be written",
    )
    return parser.parse_args(argv)


def _write_summary(result: LookupResult, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(summarize(result), default=str, indent=2))
    logger.info("Lookup summary written to {}", path)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    settings = get_settings()
    request = LookupRequest(
        raw_input=args.target,
        include_closed=args.include_closed,
        include_proposed=not args.exclude_proposed,
        batch_size=args.batch_size,
        chain=args.chain,
    )
    with LookupService(settings) as service:
        try:
            result = service.run(request, ConsoleSink())
        except InvalidTargetError:
            return 2
        except ProposalLookupError:
            return 1

    if args.summary_path:
        _write_summary(result, args.summary_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
