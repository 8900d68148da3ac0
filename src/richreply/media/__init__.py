"""Image sourcing for option cards: providers, the page-image cache, the cascade."""

from __future__ import annotations

from .cache import CachedImage, MediaCache, PageImageCache
from .images import ImageResolver, make_placeholder
from .providers import ImageSearchProvider, PexelsProvider, UnsplashProvider

__all__ = [
    "CachedImage",
    "MediaCache",
    "PageImageCache",
    "ImageResolver",
    "make_placeholder",
    "ImageSearchProvider",
    "UnsplashProvider",
    "PexelsProvider",
]
