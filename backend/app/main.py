from __future__ import annotations

from typing import Annotated, Iterator

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse
from loguru import logger
from pydantic import BaseModel

from . import schemas
from .core.config import settings
from .core.errors import (
    EventNotFoundError,
    InvalidTargetError,
    OracleQueryError,
    ProposalLookupError,
    TargetConfigurationError,
    TransportError,
)
from .services.lookup_service import LookupRequest, LookupService, LookupUpdate

app = FastAPI(title="Oracle Proposal Lookup API", version="0.1.0", debug=settings.debug)

_ERROR_STATUS_CODES: dict[type[ProposalLookupError], int] = {
    InvalidTargetError: 400,
    TargetConfigurationError: 400,
    EventNotFoundError: 404,
    TransportError: 502,
    OracleQueryError: 502,
}


def _status_code_for(exc: ProposalLookupError) -> int:
    for error_type, status_code in _ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


@app.get("/healthz", tags=["system"])
def healthcheck() -> dict[str, str]:
    """Basic readiness probe consumed by infrastructure monitors."""

    return {"status": "ok"}


def _lookup_request(
    *,
    q: Annotated[
        str,
        Query(description="Event slug, Polymarket URL or numeric event id", example="will-x-happen"),
    ],
    include_closed: Annotated[bool, Query(description="Include closed markets")] = False,
    include_proposed: Annotated[
        bool, Query(description="Include markets whose resolution is already proposed")
    ] = True,
    batch_size: Annotated[
        int | None, Query(ge=1, le=100, description="Markets per oracle query")
    ] = None,
    chain: Annotated[str | None, Query(description="Oracle chain key", example="polygon")] = None,
) -> LookupRequest:
    """Normalize shared lookup query parameters."""

    return LookupRequest(
        raw_input=q,
        include_closed=include_closed,
        include_proposed=include_proposed,
        batch_size=batch_size,
        chain=chain,
    )


def _lookup_service() -> Iterator[LookupService]:
    """Provide a lookup service whose HTTP connections are released after the request."""

    service = LookupService(settings)
    try:
        yield service
    finally:
        service.close()


def _stream_service() -> LookupService:
    """Provide a lookup service owned by the streaming body, which closes it when done."""

    return LookupService(settings)


@app.get("/lookup", response_model=schemas.LookupResponse, tags=["lookup"])
def lookup(
    *,
    lookup_request: LookupRequest = Depends(_lookup_request),
    service: LookupService = Depends(_lookup_service),
):
    """Resolve events and markets for the input and return every oracle proposal found."""

    try:
        result = service.run(lookup_request)
    except ProposalLookupError as exc:
        raise HTTPException(status_code=_status_code_for(exc), detail=str(exc)) from exc

    return schemas.LookupResponse(
        target=schemas.target_schema(result.target),
        events=[schemas.EventWithMarkets.from_group(group) for group in result.groups],
        proposals=schemas.proposal_views(result.proposals),
        market_count=result.market_count,
        warnings=result.warnings,
    )


def _stream_record(update: LookupUpdate) -> BaseModel | None:
    if update.kind == "status":
        return schemas.StatusRecord(message=update.message or "")
    if update.kind == "events":
        return schemas.EventsRecord(
            events=[schemas.EventWithMarkets.from_group(group) for group in update.groups or []],
            market_count=update.total,
            warnings=update.warnings or [],
        )
    if update.kind == "proposals":
        return schemas.ProposalsRecord(
            proposals=schemas.proposal_views(update.chunk or {}),
            resolved=update.resolved,
            total=update.total,
        )
    if update.kind == "done" and update.result is not None:
        return schemas.DoneRecord(
            message=update.message or "",
            market_count=update.result.market_count,
        )
    return None


def _ndjson_lines(service: LookupService, request: LookupRequest) -> Iterator[str]:
    try:
        for update in service.iter_updates(request):
            record = _stream_record(update)
            if record is not None:
                yield record.model_dump_json() + "\n"
    except ProposalLookupError as exc:
        logger.error("Streaming lookup '{}' failed: {}", request.raw_input, exc)
        error = schemas.ErrorRecord(kind=type(exc).__name__, message=str(exc))
        yield error.model_dump_json() + "\n"
    finally:
        service.close()


@app.get("/lookup/stream", tags=["lookup"])
def lookup_stream(
    *,
    lookup_request: LookupRequest = Depends(_lookup_request),
    service: LookupService = Depends(_stream_service),
):
    """Stream the lookup as newline-delimited JSON, one proposals record per oracle batch."""

    return StreamingResponse(
        _ndjson_lines(service, lookup_request), media_type="application/x-ndjson"
    )
