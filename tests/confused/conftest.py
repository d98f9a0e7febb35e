"""Shared fixtures for confused tests (no network required)."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def route_client(
    routes: dict[str, int | httpx.Response | Callable[[httpx.Request], httpx.Response]],
    *,
    default: int = 404,
    calls: list[str] | None = None,
) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered from a URL -> response table."""

    def _handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        answer = routes.get(url, default)
        if callable(answer):
            return answer(request)
        if isinstance(answer, httpx.Response):
            return answer
        return httpx.Response(answer)

    return httpx.AsyncClient(transport=httpx.MockTransport(_handler))


@pytest.fixture
def make_client():
    return route_client
