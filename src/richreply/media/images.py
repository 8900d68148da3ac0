"""Image resolution cascade: one photographic URL per raw option.

Tiers, tried in order until one yields a usable URL:

1. **Media cache** keyed by ``option.action_url`` (page image of the venue or
   event itself).
2. **Provider A** (Unsplash) search for ``"{category} {title}"``.
3. **Provider B** (Pexels), same query.
4. **Placeholder**: a deterministic placehold.co URL labelled with the query.

Every network tier runs under its own cancellable deadline
(``asyncio.timeout``). A timeout, transport error or empty answer simply moves
on to the next tier; there are no retries. The placeholder makes no network
call, so :meth:`ImageResolver.resolve_image` always returns an absolute URL.
"""

from __future__ import annotations

import asyncio
import re
from collections.abc import Sequence
from urllib.parse import quote

import httpx

from richreply.chat.safety import is_valid_image_url
from richreply.core.contracts.payload import RawOption
from richreply.core.settings import Settings, get_logger

from .cache import MediaCache, PageImageCache
from .providers import ImageSearchProvider, providers_from_settings

logger = get_logger(__name__)

PLACEHOLDER_BASE = "https://placehold.co/600x360/0d1826/4a7fbd"
_PLACEHOLDER_LABEL_MAX = 30
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")

# Errors that mean "this tier has no answer".
_TIER_ERRORS = (httpx.HTTPError, TimeoutError, OSError, ValueError)


def make_placeholder(query: str) -> str:
    """Build a stable placeholder URL whose label is the truncated query.

    >>> make_placeholder("hotel The Ritz & Co.")
    'https://placehold.co/600x360/0d1826/4a7fbd?text=hotel%20The%20Ritz%20Co'
    """
    label = _NON_ALNUM.sub(" ", query[:_PLACEHOLDER_LABEL_MAX]).strip()
    return f"{PLACEHOLDER_BASE}?text={quote(label, safe='')}"


class ImageResolver:
    """Resolve a representative image URL for raw options.

    Parameters
    ----------
    providers:
        Search providers in cascade order; an empty sequence skips tiers 2-3.
    media_cache:
        Optional cache consulted first for options that carry an action URL.
    provider_timeout_seconds:
        Deadline for each provider search call.
    cache_timeout_seconds:
        Deadline for the media-cache lookup.
    """

    def __init__(
        self,
        *,
        providers: Sequence[ImageSearchProvider] = (),
        media_cache: MediaCache | None = None,
        provider_timeout_seconds: float = 4.0,
        cache_timeout_seconds: float = 15.0,
    ) -> None:
        self.providers = list(providers)
        self.media_cache = media_cache
        self.provider_timeout_seconds = provider_timeout_seconds
        self.cache_timeout_seconds = cache_timeout_seconds

    @classmethod
    def from_settings(
        cls, config: Settings, *, client: httpx.AsyncClient | None = None
    ) -> ImageResolver:
        """Wire the configured providers and the page-image cache."""
        return cls(
            providers=providers_from_settings(config, client=client),
            media_cache=PageImageCache.from_settings(config, client=client),
            provider_timeout_seconds=config.image_provider_timeout_seconds,
            cache_timeout_seconds=config.media_lookup_timeout_seconds,
        )

    async def _from_cache(self, action_url: str) -> str | None:
        if self.media_cache is None:
            return None
        try:
            async with asyncio.timeout(self.cache_timeout_seconds):
                hit = await self.media_cache.lookup(action_url)
        except _TIER_ERRORS as exc:
            logger.warning("Media cache lookup failed for %s: %r", action_url, exc)
            return None
        if hit is None or not is_valid_image_url(hit.image_url):
            return None
        return hit.image_url

    async def _from_provider(self, provider: ImageSearchProvider, query: str) -> str | None:
        try:
            async with asyncio.timeout(self.provider_timeout_seconds):
                url = await provider.search_image(query)
        except _TIER_ERRORS as exc:
            logger.warning("%s search failed for %r: %r", provider.name, query, exc)
            return None
        if url is None or not is_valid_image_url(url):
            return None
        return url

    async def resolve_image(self, option: RawOption) -> str:
        """Return an absolute image URL for ``option``; never raises on I/O."""
        if option.action_url:
            cached = await self._from_cache(option.action_url)
            if cached:
                return cached

        query = option.search_query()
        for provider in self.providers:
            url = await self._from_provider(provider, query)
            if url:
                return url

        logger.debug("No image found for %r; using placeholder", query)
        return make_placeholder(query)


__all__ = ["ImageResolver", "make_placeholder", "PLACEHOLDER_BASE"]
