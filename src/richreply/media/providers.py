"""Stock-photo search providers used by the image resolution cascade.

Each provider exposes one capability, :meth:`ImageSearchProvider.search_image`,
which returns the first result's representative image URL or ``None``.

Provider support
----------------
- Unsplash (``UNSPLASH_ACCESS_KEY``): ``GET /search/photos``, header
  ``Authorization: Client-ID <key>``, image at ``results[0].urls.regular``.
- Pexels   (``PEXELS_API_KEY``): ``GET /v1/search``, header
  ``Authorization: <key>``, image at ``photos[0].src.large``.

A non-2xx status, an undecodable body or an unexpected shape all yield
``None``. Transport errors (``httpx.HTTPError``) are left to the caller, which
owns the deadline and the fall-through policy.

Tests inject an ``httpx.AsyncClient`` built on ``httpx.MockTransport`` so that
no real HTTP calls are made.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar, Protocol

import httpx

from richreply.core.settings import Settings, get_logger

logger = get_logger(__name__)


class ImageSearchProvider(Protocol):
    """Anything that can turn a search query into one image URL."""

    name: str

    async def search_image(self, query: str) -> str | None: ...


def _dig(data: object, *path: str | int) -> object:
    """Walk nested dicts/lists, returning ``None`` on the first mismatch."""
    node = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or len(node) <= step:
                return None
            node = node[step]
        else:
            if not isinstance(node, Mapping):
                return None
            node = node.get(step)
    return node


class HttpImageProvider(ABC):
    """Shared GET-and-extract logic for JSON search APIs."""

    name: str = "http"
    endpoint: ClassVar[str] = ""
    result_path: ClassVar[tuple[str | int, ...]] = ()

    def __init__(
        self,
        api_key: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = 4.0,
    ) -> None:
        self.api_key = api_key
        self._client = client
        self.timeout_seconds = timeout_seconds

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        """Authentication headers for the search API."""

    def _params(self, query: str) -> dict[str, str]:
        return {"query": query, "per_page": "1"}

    async def _get(self, query: str) -> httpx.Response:
        kwargs: dict[str, Any] = {"params": self._params(query), "headers": self._headers()}
        if self._client is not None:
            return await self._client.get(self.endpoint, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
            return await client.get(self.endpoint, **kwargs)

    async def search_image(self, query: str) -> str | None:
        """Return the first result's image URL for ``query``, or ``None``."""
        response = await self._get(query)
        if not response.is_success:
            logger.warning("%s search returned HTTP %s", self.name, response.status_code)
            return None
        try:
            data = response.json()
        except ValueError:
            logger.warning("%s search returned a non-JSON body", self.name)
            return None

        url = _dig(data, *self.result_path)
        return url if isinstance(url, str) and url else None


class UnsplashProvider(HttpImageProvider):
    name = "unsplash"
    endpoint = "https://api.unsplash.com/search/photos"
    result_path = ("results", 0, "urls", "regular")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Client-ID {self.api_key}", "Accept-Version": "v1"}

    def _params(self, query: str) -> dict[str, str]:
        return {"query": query, "per_page": "1", "orientation": "landscape"}


class PexelsProvider(HttpImageProvider):
    name = "pexels"
    endpoint = "https://api.pexels.com/v1/search"
    result_path = ("photos", 0, "src", "large")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": self.api_key}


def providers_from_settings(
    config: Settings, *, client: httpx.AsyncClient | None = None
) -> list[ImageSearchProvider]:
    """Build the configured providers in cascade order (Unsplash, then Pexels).

    A provider whose credential is unset is skipped entirely; that is not an
    error.
    """
    timeout = config.image_provider_timeout_seconds
    providers: list[ImageSearchProvider] = []
    if config.unsplash_access_key:
        providers.append(
            UnsplashProvider(config.unsplash_access_key, client=client, timeout_seconds=timeout)
        )
    if config.pexels_api_key:
        providers.append(
            PexelsProvider(config.pexels_api_key, client=client, timeout_seconds=timeout)
        )
    return providers


__all__ = [
    "ImageSearchProvider",
    "HttpImageProvider",
    "UnsplashProvider",
    "PexelsProvider",
    "providers_from_settings",
]
