from __future__ import annotations

import json
from typing import Any, Callable, Iterator, Mapping, Sequence

from loguru import logger

from app.core.config import settings
from app.core.errors import OracleQueryError, PayloadDecodeError
from app.domain import Proposal, ResultChunk
from ingestion.transport import FallbackTransport

from .query import alias_for, build_batch_query, chunk_ids

ChunkCallback = Callable[[ResultChunk], None]


def _decode_proposals(market_id: str, raw_entries: Any) -> list[Proposal]:
    if not isinstance(raw_entries, list):
        return []
    proposals: list[Proposal] = []
    for raw_entry in raw_entries:
        try:
            proposals.append(Proposal.from_payload(raw_entry))
        except PayloadDecodeError as exc:
            logger.warning("Skipping proposal for market {}: {}", market_id, exc)
    return proposals


class OracleClient:
    """Look up optimistic-oracle price requests for markets, one batch query at a time."""

    def __init__(
        self,
        *,
        chain_endpoints: Mapping[str, str] | None = None,
        default_chain: str | None = None,
        batch_size: int | None = None,
        transport: FallbackTransport | None = None,
    ) -> None:
        endpoints = settings.oracle_chain_endpoints if chain_endpoints is None else chain_endpoints
        self.chain_endpoints = {key.lower(): url for key, url in endpoints.items()}
        self.default_chain = (default_chain or settings.oracle_default_chain).lower()
        self.batch_size = batch_size or settings.oracle_batch_size
        self._owns_transport = transport is None
        self.transport = transport or FallbackTransport()

    def resolve_endpoint(self, chain_key: str | None) -> str:
        if chain_key:
            endpoint = self.chain_endpoints.get(chain_key.strip().lower())
            if endpoint:
                return endpoint
            logger.warning(
                "Unknown oracle chain '{}', using default '{}'", chain_key, self.default_chain
            )
        return self.chain_endpoints[self.default_chain]

    def resolve_batch_size(self, value: Any) -> int:
        if isinstance(value, bool):
            return self.batch_size
        try:
            size = int(value)
        except (TypeError, ValueError):
            return self.batch_size
        return size if size > 0 else self.batch_size

    def _run_batch(self, endpoint: str, batch: list[str]) -> ResultChunk:
        payload = build_batch_query(batch)
        try:
            data = self.transport.post_json(endpoint, payload.to_dict())
        except ValueError as exc:
            raise OracleQueryError("UMA response body is not JSON") from exc
        if not isinstance(data, Mapping):
            raise OracleQueryError(
                f"UMA response must be an object, got {type(data).__name__}"
            )
        if data.get("errors"):
            raise OracleQueryError(f"UMA GraphQL error: {json.dumps(data['errors'])}")

        fields = data.get("data")
        if not isinstance(fields, Mapping):
            fields = {}
        return {
            market_id: _decode_proposals(market_id, fields.get(alias_for(index)))
            for index, market_id in enumerate(batch)
        }

    def iter_proposal_chunks(
        self,
        market_ids: Sequence[str],
        chain_key: str | None = None,
        batch_size: int | None = None,
    ) -> Iterator[ResultChunk]:
        unique_ids = list(dict.fromkeys(str(market_id) for market_id in market_ids))
        if not unique_ids:
            return
        endpoint = self.resolve_endpoint(chain_key)
        size = self.resolve_batch_size(batch_size)
        batches = list(chunk_ids(unique_ids, size))
        for batch_index, batch in enumerate(batches, start=1):
            logger.info(
                "UMA batch {}/{}: {} market(s) endpoint={}",
                batch_index,
                len(batches),
                len(batch),
                endpoint,
            )
            yield self._run_batch(endpoint, batch)

    def fetch_proposals(
        self,
        market_ids: Sequence[str],
        chain_key: str | None = None,
        batch_size: int | None = None,
        on_chunk: ChunkCallback | None = None,
    ) -> ResultChunk:
        results: ResultChunk = {}
        for chunk in self.iter_proposal_chunks(market_ids, chain_key, batch_size):
            results.update(chunk)
            if on_chunk is not None:
                on_chunk(chunk)
        return results

    def close(self) -> None:
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "OracleClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
