from __future__ import annotations

import re
from urllib.parse import urlparse

from app.domain import Target

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_DIGITS_PATTERN = re.compile(r"^[0-9]+$")


def _last_path_segment(url: str) -> str:
    try:
        path = urlparse(url).path
    except ValueError:
        return url
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else ""


def parse_target(raw: str | None) -> Target | None:
    """Turn a slug, event URL or numeric event id into a lookup target.

    Returns ``None`` when nothing usable was supplied.
    """

    if not raw:
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None

    candidate = trimmed
    if _URL_PATTERN.match(trimmed):
        candidate = _last_path_segment(trimmed)
    if not candidate:
        return None

    if _DIGITS_PATTERN.match(candidate):
        return Target(slug=None, event_id=candidate)
    return Target(slug=candidate, event_id=None)
