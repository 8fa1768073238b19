"""Build the batched optimistic-oracle subgraph query for a set of markets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterator, Sequence

PER_MARKET_LIMIT = 5

PROPOSAL_FIELDS = (
    "id",
    "state",
    "proposer",
    "disputer",
    "proposedPrice",
    "requestTimestamp",
    "proposalTimestamp",
    "requestHash",
    "requestLogIndex",
)


@dataclass(frozen=True, slots=True)
class GraphQLPayload:
    query: str
    variables: dict[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {"query": self.query, "variables": dict(self.variables)}


def encode_needle(market_id: str) -> str:
    """Hex form of ``market_id: <id>`` as it appears in request ancillary data."""

    return f"market_id: {market_id}".encode("utf-8").hex()


def alias_for(index: int) -> str:
    return f"m{index}"


def chunk_ids(ids: Sequence[str], size: int) -> Iterator[list[str]]:
    if size < 1:
        raise ValueError("batch size must be at least 1")
    for index in range(0, len(ids), size):
        yield list(ids[index : index + size])


def build_batch_query(batch: Sequence[str]) -> GraphQLPayload:
    fields = " ".join(PROPOSAL_FIELDS)
    var_defs = ", ".join(f"$needle{index}: String!" for index in range(len(batch)))
    selections = "\n".join(
        f"  {alias_for(index)}: optimisticPriceRequests(first: {PER_MARKET_LIMIT}, "
        f"orderBy: requestTimestamp, orderDirection: desc, "
        f"where: {{ ancillaryData_contains: $needle{index} }}) {{ {fields} }}"
        for index in range(len(batch))
    )
    variables = {
        f"needle{index}": encode_needle(market_id) for index, market_id in enumerate(batch)
    }
    return GraphQLPayload(query=f"query({var_defs}) {{\n{selections}\n}}", variables=variables)
