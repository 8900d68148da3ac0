"""Tests for the stock-photo search providers.

All HTTP goes through ``httpx.MockTransport``; no real network calls.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import pytest

from richreply.core.settings import Settings
from richreply.media.providers import (
    HttpImageProvider,
    PexelsProvider,
    UnsplashProvider,
    providers_from_settings,
)

Handler = Callable[[httpx.Request], httpx.Response]


def _client(handler: Handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def test_unsplash_returns_first_regular_url() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"results": [{"urls": {"regular": "https://images.unsplash.com/p1"}}]},
        )

    async def run() -> str | None:
        async with _client(handler) as client:
            return await UnsplashProvider("key-1", client=client).search_image("hotel Ritz")

    assert asyncio.run(run()) == "https://images.unsplash.com/p1"
    request = seen[0]
    assert request.url.host == "api.unsplash.com"
    assert request.url.params["query"] == "hotel Ritz"
    assert request.url.params["per_page"] == "1"
    assert request.headers["Authorization"] == "Client-ID key-1"


def test_pexels_uses_raw_key_and_large_src() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200, json={"photos": [{"src": {"large": "https://images.pexels.com/p2"}}]}
        )

    async def run() -> str | None:
        async with _client(handler) as client:
            return await PexelsProvider("px-key", client=client).search_image("park")

    assert asyncio.run(run()) == "https://images.pexels.com/p2"
    assert seen[0].url.host == "api.pexels.com"
    assert seen[0].headers["Authorization"] == "px-key"


@pytest.mark.parametrize(  # type: ignore[misc]
    "response",
    [
        httpx.Response(500, json={"error": "boom"}),
        httpx.Response(403, text="forbidden"),
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json={"results": []}),
        httpx.Response(200, json={"results": [{"urls": {}}]}),
        httpx.Response(200, json=["unexpected"]),
    ],
)
def test_unsplash_no_result_yields_none(response: httpx.Response) -> None:
    async def run() -> str | None:
        async with _client(lambda _req: response) as client:
            return await UnsplashProvider("k", client=client).search_image("q")

    assert asyncio.run(run()) is None


def test_transport_errors_propagate() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    async def run() -> str | None:
        async with _client(handler) as client:
            return await PexelsProvider("k", client=client).search_image("q")

    with pytest.raises(httpx.ConnectError):
        asyncio.run(run())


def test_providers_from_settings_skips_missing_keys() -> None:
    none = providers_from_settings(
        Settings(_env_file=None, UNSPLASH_ACCESS_KEY=None, PEXELS_API_KEY=None)
    )
    assert none == []

    both = providers_from_settings(
        Settings(_env_file=None, UNSPLASH_ACCESS_KEY="u", PEXELS_API_KEY="p")
    )
    assert [p.name for p in both] == ["unsplash", "pexels"]

    only_pexels = providers_from_settings(
        Settings(_env_file=None, UNSPLASH_ACCESS_KEY="", PEXELS_API_KEY="p")
    )
    assert [p.name for p in only_pexels] == ["pexels"]


def test_provider_without_headers_cannot_be_constructed() -> None:
    class Incomplete(HttpImageProvider):
        name = "incomplete"
        endpoint = "https://search.example.com"

    with pytest.raises(TypeError):
        Incomplete("key")  # type: ignore[abstract]
