"""Error taxonomy shared by the lookup pipeline and its hosts."""

from __future__ import annotations

from typing import Sequence


class ProposalLookupError(Exception):
    """Base class for every failure a lookup run can report."""


class InvalidTargetError(ProposalLookupError):
    """Raised when user input cannot be turned into a slug or event id."""


class TargetConfigurationError(ProposalLookupError):
    """Raised when a target carries neither a slug nor an event id."""


class EventNotFoundError(ProposalLookupError):
    """Raised when every event lookup strategy came back empty."""

    def __init__(self, message: str, *, reasons: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.reasons = tuple(reasons)


class TransportError(ProposalLookupError):
    """Raised when the direct request and every fallback failed."""

    def __init__(
        self,
        message: str,
        *,
        url: str | None = None,
        status_code: int | None = None,
        not_found: bool = False,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.not_found = not_found
        self.attempts = attempts


class PayloadDecodeError(ProposalLookupError):
    """Raised when an API payload does not have the expected shape."""


class OracleQueryError(ProposalLookupError):
    """Raised when the oracle subgraph rejects a batch query."""


__all__ = [
    "EventNotFoundError",
    "InvalidTargetError",
    "OracleQueryError",
    "PayloadDecodeError",
    "ProposalLookupError",
    "TargetConfigurationError",
    "TransportError",
]
