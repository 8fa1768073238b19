from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.domain import EventMarkets, Proposal, ResultChunk, Target
from oracle.links import build_portal_url, classify_state, proposal_timestamp


class TargetSchema(BaseModel):
    slug: str | None = None
    event_id: str | None = None

    model_config = {"from_attributes": True}


class EventSummary(BaseModel):
    event_id: str
    slug: str | None = None
    title: str | None = None
    parent_event_id: str | None = None
    start_time: datetime | None = None
    end_time: datetime | None = None

    model_config = {"from_attributes": True}


class MarketRow(BaseModel):
    id: str
    label: str
    closed: bool
    proposed: bool
    state_label: Literal["Open", "Closed", "Proposed"]
    slug: str | None = None
    uma_status: str | None = None

    model_config = {"from_attributes": True}


class EventWithMarkets(BaseModel):
    event: EventSummary
    markets: list[MarketRow] = Field(default_factory=list)

    @classmethod
    def from_group(cls, group: EventMarkets) -> "EventWithMarkets":
        return cls(
            event=EventSummary.model_validate(group.event),
            markets=[MarketRow.model_validate(market) for market in group.markets],
        )


class ProposalView(BaseModel):
    id: str | None = None
    state: str | None = None
    state_class: Literal["positive", "warning", "neutral"]
    proposer: str | None = None
    disputer: str | None = None
    proposed_price: str | None = None
    request_timestamp: str | None = None
    proposal_timestamp: str | None = None
    display_timestamp: str | None = None
    request_hash: str | None = None
    request_log_index: str | None = None
    portal_url: str | None = None

    @classmethod
    def from_proposal(cls, proposal: Proposal) -> "ProposalView":
        return cls(
            id=proposal.id,
            state=proposal.state,
            state_class=classify_state(proposal.state),
            proposer=proposal.proposer,
            disputer=proposal.disputer,
            proposed_price=proposal.proposed_price,
            request_timestamp=proposal.request_timestamp,
            proposal_timestamp=proposal.proposal_timestamp,
            display_timestamp=proposal_timestamp(proposal),
            request_hash=proposal.request_hash,
            request_log_index=proposal.request_log_index,
            portal_url=build_portal_url(proposal),
        )


def proposal_views(chunk: ResultChunk) -> dict[str, list[ProposalView]]:
    return {
        market_id: [ProposalView.from_proposal(proposal) for proposal in proposals]
        for market_id, proposals in chunk.items()
    }


class LookupResponse(BaseModel):
    target: TargetSchema
    events: list[EventWithMarkets]
    proposals: dict[str, list[ProposalView]]
    market_count: int
    warnings: list[str] = Field(default_factory=list)


class StatusRecord(BaseModel):
    type: Literal["status"] = "status"
    message: str


class EventsRecord(BaseModel):
    type: Literal["events"] = "events"
    events: list[EventWithMarkets]
    market_count: int
    warnings: list[str] = Field(default_factory=list)


class ProposalsRecord(BaseModel):
    type: Literal["proposals"] = "proposals"
    proposals: dict[str, list[ProposalView]]
    resolved: int
    total: int


class DoneRecord(BaseModel):
    type: Literal["done"] = "done"
    message: str
    market_count: int


class ErrorRecord(BaseModel):
    type: Literal["error"] = "error"
    kind: str
    message: str


def target_schema(target: Target) -> TargetSchema:
    return TargetSchema.model_validate(target)
