from __future__ import annotations

from typing import Any, Mapping, Sequence
from urllib.parse import quote

import httpx
from loguru import logger

from app.core.config import settings
from app.core.errors import TransportError

_MAX_DIAGNOSTIC_CHARS = 500


def rewrite_url(template: str, url: str) -> str:
    """Route ``url`` through a fallback service described by ``template``."""

    return template.replace("{url}", quote(url, safe=""))


class FallbackTransport:
    """Send a request directly, then through each configured fallback until one succeeds."""

    def __init__(
        self,
        *,
        fallbacks: Sequence[str] | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.fallbacks = tuple(settings.transport_fallbacks if fallbacks is None else fallbacks)
        self.timeout = timeout or settings.http_timeout_seconds
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=self.timeout, follow_redirects=True)

    def candidate_urls(self, url: str) -> list[str]:
        return [url, *(rewrite_url(template, url) for template in self.fallbacks)]

    def request(
        self,
        url: str,
        *,
        method: str = "GET",
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        json: Any = None,
    ) -> httpx.Response:
        full_url = str(httpx.URL(url, params=params)) if params else url
        candidates = self.candidate_urls(full_url)
        total_attempts = len(candidates)
        last_message = "no attempts were made"
        last_status: int | None = None
        saw_not_found = False

        for attempt_index, candidate in enumerate(candidates):
            try:
                response = self.client.request(
                    method, candidate, headers=headers, json=json
                )
            except httpx.HTTPError as exc:
                last_message = f"{method} {full_url} failed: {exc}"
                last_status = None
                logger.warning(
                    "Request failed (attempt {}/{}) url={} error={}",
                    attempt_index + 1,
                    total_attempts,
                    candidate,
                    exc,
                )
                continue

            if response.is_success:
                if attempt_index:
                    logger.info(
                        "Request succeeded through fallback {}/{} url={}",
                        attempt_index + 1,
                        total_attempts,
                        candidate,
                    )
                return response

            body = response.text[:_MAX_DIAGNOSTIC_CHARS].strip()
            last_status = response.status_code
            saw_not_found = saw_not_found or response.status_code == 404
            last_message = f"{method} {full_url} failed ({response.status_code})"
            if body:
                last_message = f"{last_message}: {body}"
            logger.warning(
                "Request returned {} (attempt {}/{}) url={}",
                response.status_code,
                attempt_index + 1,
                total_attempts,
                candidate,
            )

        raise TransportError(
            last_message,
            url=full_url,
            status_code=last_status,
            not_found=saw_not_found,
            attempts=total_attempts,
        )

    def get_json(
        self, url: str, *, params: Mapping[str, Any] | None = None
    ) -> Any:
        logger.info("GET {} params={}", url, dict(params or {}))
        response = self.request(url, params=params)
        return response.json()

    def post_json(self, url: str, payload: Any) -> Any:
        response = self.request(
            url,
            method="POST",
            headers={"content-type": "application/json"},
            json=payload,
        )
        return response.json()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "FallbackTransport":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
