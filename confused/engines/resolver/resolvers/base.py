"""Registry availability checks with bounded retry on HTTP 429."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from confused.engines.resolver.models import PackageReference
from confused.exceptions import NetworkError, RateLimited

log = structlog.get_logger("confused.engine")

MAX_ATTEMPTS = 3
RATE_LIMIT_BACKOFF = 10.0  # seconds


class RegistryResolver:
    """Checks whether a package name is claimed in a public registry.

    Subclasses provide :meth:`url_for` and may refine :meth:`_is_published`.
    Only HTTP 429 is retried; any other request error marks the package unavailable
    straight away.
    """

    ecosystem: str = ""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    def url_for(self, ref: PackageReference) -> str | None:
        """Metadata URL for *ref*, or None when there is nothing to look up."""
        raise NotImplementedError

    async def is_available(self, ref: PackageReference) -> bool:
        """True when *ref* is trusted or exists in the public registry."""
        if not ref.is_registry:
            return True
        url = self.url_for(ref)
        if url is None:
            return True

        for attempt in range(1, MAX_ATTEMPTS + 1):
            try:
                response = await self._fetch(url, attempt)
            except RateLimited:
                log.warning(
                    "registry.rate_limited",
                    ecosystem=self.ecosystem,
                    package=ref.identifier,
                    attempt=attempt,
                    max_attempts=MAX_ATTEMPTS,
                    backoff_seconds=RATE_LIMIT_BACKOFF,
                )
                await asyncio.sleep(RATE_LIMIT_BACKOFF)
                continue
            except NetworkError as exc:
                log.warning(
                    "registry.request_failed",
                    ecosystem=self.ecosystem,
                    package=ref.identifier,
                    url=url,
                    error=str(exc),
                )
                return False

            if response.status_code != 200:
                log.debug(
                    "registry.not_found",
                    ecosystem=self.ecosystem,
                    package=ref.identifier,
                    status=response.status_code,
                )
                return False
            return self._is_published(ref, response)

        log.warning(
            "registry.retries_exhausted",
            ecosystem=self.ecosystem,
            package=ref.identifier,
            attempts=MAX_ATTEMPTS,
        )
        return False

    async def _fetch(self, url: str, attempt: int) -> httpx.Response:
        try:
            response = await self._client.get(url)
        except httpx.RequestError as exc:
            raise NetworkError(f"{type(exc).__name__}: {exc}") from exc
        if response.status_code == 429:
            raise RateLimited(url, attempt)
        return response

    def _is_published(self, ref: PackageReference, response: httpx.Response) -> bool:
        return True
