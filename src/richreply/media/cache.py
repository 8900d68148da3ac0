"""Content-addressed media cache keyed by an option's deep link.

Given an ``actionUrl`` (an event or venue page), :class:`PageImageCache`
finds the page's representative image and, when the deployment has a public
https origin, stores a copy on disk under ``<sha256>.<ext>`` so that renderers
load it from our own domain.

Discovery order
---------------
1. ``<meta property="og:image*">``
2. ``<meta name="twitter:image">`` / ``twitter:image:src``
3. JSON-LD ``Event.image`` (string, list, or ``{"url": ...}``; ``@graph`` and
   nested values are walked)
4. The first ``<img src>`` tags (``data:`` URIs and SVGs skipped)

Relative candidates are resolved against the page URL; the first candidate on
a public http(s) host wins.

Failure policy
--------------
The cache is an optional tier of the image cascade. Any network error,
timeout, non-HTML page, non-image body or oversized download yields ``None``
(or the uncached discovered URL); nothing is raised to the caller.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import re
from collections.abc import AsyncIterator, Mapping
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Protocol
from urllib.parse import quote, urljoin

import httpx
from bs4 import BeautifulSoup

from richreply.chat.safety import is_private_host, normalize_base_url, split_http_url
from richreply.core.settings import Settings, get_logger

logger = get_logger(__name__)

_USER_AGENT = "richreply/0.3 (image-enricher)"
_MAX_IMG_TAGS = 40
_MAX_JSON_LD_FANOUT = 30
_MAX_JSON_LD_DEPTH = 12
_CACHED_ID = re.compile(r"^[a-f0-9]{64}\.[a-z0-9]{2,5}$", re.IGNORECASE)

CONTENT_TYPE_TO_EXT: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/avif": "avif",
}
EXT_TO_CONTENT_TYPE: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
    "avif": "image/avif",
}


@dataclass(slots=True, frozen=True)
class CachedImage:
    """Best image found for a page; ``cached`` is True when served by us."""

    image_url: str
    cached: bool = False


class MediaCache(Protocol):
    """Lookup capability consulted first by the image cascade."""

    async def lookup(self, action_url: str) -> CachedImage | None: ...


# --------------------------------------------------------------------------- #
# URL safety
# --------------------------------------------------------------------------- #


def is_safe_remote_url(url: str, allow_http: bool = True) -> bool:
    """Return True if ``url`` may be fetched server-side.

    Rejects non-http(s) schemes, embedded credentials, private/loopback hosts
    and IPv6 literals (no DNS resolution is done here).
    """
    parts = split_http_url(url)
    if parts is None:
        return False
    if parts.scheme.lower() == "http" and not allow_http:
        return False
    if parts.username or parts.password:
        return False
    host = parts.hostname or ""
    if ":" in host:
        return False
    return not is_private_host(host)


# --------------------------------------------------------------------------- #
# HTML candidate extraction
# --------------------------------------------------------------------------- #


@dataclass(slots=True)
class ImageCandidates:
    """Image URLs found on a page, grouped by source and kept in page order."""

    og: list[str] = field(default_factory=list)
    twitter: list[str] = field(default_factory=list)
    json_ld: list[str] = field(default_factory=list)
    img_tags: list[str] = field(default_factory=list)

    def ranked(self) -> list[str]:
        return [*self.og, *self.twitter, *self.json_ld, *self.img_tags]


def _is_event(node: Mapping[str, object]) -> bool:
    type_value = node.get("@type")
    types = type_value if isinstance(type_value, list) else [type_value]
    return any(isinstance(t, str) and t.lower() == "event" for t in types)


def _collect_json_ld_event_images(node: object, out: list[str], depth: int = 0) -> None:
    if depth > _MAX_JSON_LD_DEPTH:
        return
    if isinstance(node, list):
        for item in node[:_MAX_JSON_LD_FANOUT]:
            _collect_json_ld_event_images(item, out, depth + 1)
        return
    if not isinstance(node, Mapping):
        return

    if _is_event(node) and node.get("image"):
        images = node["image"] if isinstance(node["image"], list) else [node["image"]]
        for img in images:
            if isinstance(img, str):
                out.append(img)
            elif isinstance(img, Mapping) and isinstance(img.get("url"), str):
                out.append(img["url"])

    for value in node.values():
        if isinstance(value, (list, Mapping)):
            _collect_json_ld_event_images(value, out, depth + 1)


def extract_image_candidates(html: str) -> ImageCandidates:
    """Collect og/twitter/JSON-LD/img image candidates from an HTML page."""
    soup = BeautifulSoup(html, "html.parser")
    found = ImageCandidates()

    for tag in soup.find_all("meta", attrs={"property": re.compile(r"^og:image")}):
        content = (tag.get("content") or "").strip()
        if content:
            found.og.append(content)

    for tag in soup.find_all("meta", attrs={"name": ["twitter:image", "twitter:image:src"]}):
        content = (tag.get("content") or "").strip()
        if content:
            found.twitter.append(content)

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        raw = script.get_text()
        if not raw.strip():
            continue
        try:
            parsed = json.loads(raw)
        except (ValueError, RecursionError):
            continue
        _collect_json_ld_event_images(parsed, found.json_ld)

    for img in soup.find_all("img", src=True, limit=_MAX_IMG_TAGS):
        src = str(img["src"]).strip()
        if not src or src.startswith("data:"):
            continue
        if src.endswith(".svg") or ".svg?" in src:
            continue
        found.img_tags.append(src)

    return found


# --------------------------------------------------------------------------- #
# Disk layout
# --------------------------------------------------------------------------- #


def ext_from_content_type(content_type: str, fallback_url: str | None = None) -> str:
    """Pick a file extension from a content type, then from the URL path."""
    ct = content_type.split(";")[0].strip().lower()
    if ct in CONTENT_TYPE_TO_EXT:
        return CONTENT_TYPE_TO_EXT[ct]
    if fallback_url:
        parts = split_http_url(fallback_url)
        if parts is not None:
            ext = PurePosixPath(parts.path).suffix.lstrip(".").lower()
            if ext in EXT_TO_CONTENT_TYPE:
                return ext
    return "jpg"


def resolve_cached_file_path(media_id: str, cache_dir: str | Path) -> Path | None:
    """Map a media id to its file, rejecting anything but ``<sha256>.<ext>``."""
    trimmed = media_id.strip()
    if not _CACHED_ID.match(trimmed):
        return None
    return Path(cache_dir) / trimmed.lower()


def read_cached_media(media_id: str, cache_dir: str | Path) -> tuple[bytes, str] | None:
    """Return ``(bytes, content_type)`` for a cached file, or ``None``."""
    path = resolve_cached_file_path(media_id, cache_dir)
    if path is None:
        return None
    try:
        data = path.read_bytes()
    except OSError:
        return None
    content_type = EXT_TO_CONTENT_TYPE.get(path.suffix.lstrip("."), "application/octet-stream")
    return data, content_type


# --------------------------------------------------------------------------- #
# Page image cache
# --------------------------------------------------------------------------- #


class PageImageCache:
    """Discover an event page's best image and optionally mirror it to disk."""

    def __init__(
        self,
        *,
        cache_dir: str | Path | None = None,
        public_base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        page_timeout_seconds: float = 10.0,
        image_timeout_seconds: float = 12.0,
        max_image_bytes: int = 6_000_000,
    ) -> None:
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.public_base_url = normalize_base_url(public_base_url, require_https=True)
        self._client = client
        self.page_timeout_seconds = page_timeout_seconds
        self.image_timeout_seconds = image_timeout_seconds
        self.max_image_bytes = max_image_bytes

    @classmethod
    def from_settings(
        cls, config: Settings, *, client: httpx.AsyncClient | None = None
    ) -> PageImageCache:
        return cls(
            cache_dir=config.media_cache_dir,
            public_base_url=config.public_base_url,
            client=client,
            page_timeout_seconds=config.page_fetch_timeout_seconds,
            image_timeout_seconds=config.image_fetch_timeout_seconds,
            max_image_bytes=config.media_max_bytes,
        )

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(follow_redirects=True) as client:
            yield client

    def public_media_url_for_id(self, media_id: str) -> str | None:
        if not self.public_base_url:
            return None
        return f"{self.public_base_url}/media/{quote(media_id, safe='')}"

    async def fetch_html(self, url: str) -> str | None:
        """Fetch a page's HTML, or ``None`` for unsafe URLs and any failure."""
        if not is_safe_remote_url(url, allow_http=True):
            return None
        headers = {
            "User-Agent": _USER_AGENT,
            "Accept": "text/html, application/xhtml+xml, */*",
        }
        try:
            async with asyncio.timeout(self.page_timeout_seconds), self._http() as client:
                response = await client.get(url, headers=headers, follow_redirects=True)
        except (httpx.HTTPError, TimeoutError) as exc:
            logger.debug("Page fetch failed for %s: %s", url, exc)
            return None

        if not response.is_success:
            return None
        content_type = response.headers.get("content-type", "")
        if "text/html" not in content_type and "application/xhtml" not in content_type:
            return None
        return response.text

    async def discover_image_url(self, page_url: str) -> str | None:
        """Return the first safe image candidate found on ``page_url``."""
        html = await self.fetch_html(page_url)
        if not html:
            return None

        for candidate in extract_image_candidates(html).ranked():
            resolved = urljoin(page_url, candidate.strip())
            # http is allowed here; the copy we serve is https.
            if is_safe_remote_url(resolved, allow_http=True):
                return resolved
        return None

    async def _download(self, image_url: str) -> tuple[bytes, str] | None:
        headers = {
            "User-Agent": _USER_AGENT,
            "Accept": "image/avif,image/webp,image/apng,image/*,*/*;q=0.8",
        }
        async with self._http() as client, client.stream(
            "GET", image_url, headers=headers, follow_redirects=True
        ) as response:
            if not response.is_success:
                return None
            content_type = response.headers.get("content-type", "").lower()
            if not content_type.startswith("image/"):
                return None
            declared = response.headers.get("content-length", "")
            if declared.isdigit() and int(declared) > self.max_image_bytes:
                return None

            body = bytearray()
            async for chunk in response.aiter_bytes():
                body.extend(chunk)
                if len(body) > self.max_image_bytes:
                    return None
        return (bytes(body), content_type) if body else None

    async def cache_remote_image(self, image_url: str) -> str | None:
        """Download ``image_url`` into the cache dir and return its media id."""
        if self.cache_dir is None or not is_safe_remote_url(image_url, allow_http=True):
            return None
        try:
            async with asyncio.timeout(self.image_timeout_seconds):
                downloaded = await self._download(image_url)
        except (httpx.HTTPError, TimeoutError) as exc:
            logger.debug("Image download failed for %s: %s", image_url, exc)
            return None
        if downloaded is None:
            return None

        data, content_type = downloaded
        digest = hashlib.sha256(data).hexdigest()
        media_id = f"{digest}.{ext_from_content_type(content_type, image_url)}"
        path = resolve_cached_file_path(media_id, self.cache_dir)
        if path is None:
            return None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if not path.exists():
                path.write_bytes(data)
        except OSError as exc:
            logger.warning("Could not write cached media %s: %s", path, exc)
            return None
        return media_id

    async def lookup(self, action_url: str) -> CachedImage | None:
        """Best image for ``action_url``: our cached copy, else the page's own URL."""
        discovered = await self.discover_image_url(action_url)
        if not discovered:
            return None
        if not self.public_base_url:
            return CachedImage(image_url=discovered)

        media_id = await self.cache_remote_image(discovered)
        url = self.public_media_url_for_id(media_id) if media_id else None
        if not url:
            return CachedImage(image_url=discovered)
        return CachedImage(image_url=url, cached=True)


__all__ = [
    "CachedImage",
    "MediaCache",
    "ImageCandidates",
    "PageImageCache",
    "is_safe_remote_url",
    "extract_image_candidates",
    "ext_from_content_type",
    "resolve_cached_file_path",
    "read_cached_media",
]
