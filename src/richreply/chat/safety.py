"""URL validation and block sanitisation.

Every block that reaches a renderer passes through :func:`sanitize_blocks`,
whether the model emitted it directly or it was read back from storage. The
sanitiser is a stable filter:

- candidates are classified by their ``type`` discriminator; unknown types are
  dropped silently (models experiment with shapes we do not render);
- a card without a non-empty ``title`` or with an unsafe ``imageUrl`` is
  dropped, at the smallest granularity (one gallery item, not the gallery);
- containers whose items all fail are dropped themselves;
- strings are truncated and lists capped so a single reply cannot produce an
  oversized payload.

Image URLs must be absolute ``http``/``https`` URLs that do not point at
loopback, private or link-local hosts and carry no credentials.
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import SplitResult, urlsplit

from richreply.core.contracts.blocks import (
    ImageCard,
    ImageGallery,
    OptionItem,
    OptionSet,
    RichBlock,
)

# --------------------------------------------------------------------------- #
# Limits
# --------------------------------------------------------------------------- #

MAX_URL_LENGTH = 2048
MAX_BLOCKS = 10
MAX_CARDS_PER_GALLERY = 5
MAX_META_ENTRIES = 8

_TITLE_MAX = 200
_SUBTITLE_MAX = 400
_ALT_MAX = 200
_SOURCE_NAME_MAX = 100
_PROMPT_MAX = 500
_META_KEY_MAX = 50
_META_VALUE_MAX = 100

_HTTP_SCHEMES = frozenset({"http", "https"})
# Whitespace, control characters and characters that are never legal unescaped.
_FORBIDDEN_URL_CHARS = re.compile(r'[\s\x00-\x1f\x7f<>"{}|\\^`]')
_LDH_LABEL = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")

# --------------------------------------------------------------------------- #
# URL validators
# --------------------------------------------------------------------------- #


def is_valid_hostname(host: str) -> bool:
    """IP literal, or dot-separated LDH labels (IDNA names are encoded first)."""
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    name = host.rstrip(".")
    if not name or ":" in name:
        return False
    try:
        ascii_name = name.encode("idna").decode("ascii")
    except UnicodeError:
        return False
    return all(_LDH_LABEL.match(label) for label in ascii_name.lower().split("."))


def split_http_url(url: object) -> SplitResult | None:
    """Return the split form of an absolute http(s) URL, or ``None``."""
    if not isinstance(url, str) or not url or len(url) > MAX_URL_LENGTH:
        return None
    # urlsplit silently drops tabs and newlines, so check the raw string.
    if _FORBIDDEN_URL_CHARS.search(url):
        return None
    try:
        parts = urlsplit(url)
        _ = parts.port  # raises ValueError on a malformed port
    except ValueError:
        return None
    if parts.scheme.lower() not in _HTTP_SCHEMES or not parts.hostname:
        return None
    if not is_valid_hostname(parts.hostname):
        return None
    return parts


def is_private_host(host: str) -> bool:
    """Return True for loopback, private, link-local and similar hosts."""
    host = host.strip("[]").lower()
    if host == "localhost" or host.endswith((".localhost", ".local")):
        return True
    try:
        ip = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_reserved
        or ip.is_multicast
    )


def is_valid_image_url(url: object) -> bool:
    """Absolute http(s) image URL on a public host without credentials."""
    parts = split_http_url(url)
    if parts is None:
        return False
    if parts.username or parts.password:
        return False
    return not is_private_host(parts.hostname or "")


def is_valid_action_url(url: object) -> bool:
    """Absolute http(s) deep link."""
    return split_http_url(url) is not None


def normalize_base_url(raw: str | None, *, require_https: bool = False) -> str | None:
    """Return a configured public origin without trailing slashes, or ``None``."""
    candidate = (raw or "").strip()
    parts = split_http_url(candidate)
    if parts is None:
        return None
    if require_https and parts.scheme.lower() != "https":
        return None
    return candidate.rstrip("/")


# --------------------------------------------------------------------------- #
# Field helpers
# --------------------------------------------------------------------------- #


def _clip(value: object, limit: int) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return None
    return value[:limit]


def _get(raw: Mapping[str, Any], camel: str, snake: str) -> object:
    return raw[camel] if camel in raw else raw.get(snake)


def _sanitize_meta(raw: object) -> dict[str, str] | None:
    if not isinstance(raw, Mapping) or not raw:
        return None
    present = [(k, v) for k, v in raw.items() if v is not None][:MAX_META_ENTRIES]
    meta = {str(k)[:_META_KEY_MAX]: str(v)[:_META_VALUE_MAX] for k, v in present}
    return meta or None


# --------------------------------------------------------------------------- #
# Per-variant sanitisers
# --------------------------------------------------------------------------- #


def sanitize_card(raw: object) -> ImageCard | None:
    """Validate one card-shaped mapping; ``None`` means "drop it"."""
    if not isinstance(raw, Mapping):
        return None

    title = raw.get("title")
    if not isinstance(title, str) or not title.strip():
        return None
    title = title[:_TITLE_MAX]

    image_url = _get(raw, "imageUrl", "image_url")
    if not is_valid_image_url(image_url):
        return None

    action_url = _get(raw, "actionUrl", "action_url")
    return ImageCard(
        title=title,
        subtitle=_clip(raw.get("subtitle"), _SUBTITLE_MAX),
        image_url=str(image_url),
        alt=_clip(raw.get("alt"), _ALT_MAX) or title,
        meta=_sanitize_meta(raw.get("meta")),
        action_url=str(action_url) if is_valid_action_url(action_url) else None,
        source_name=_clip(_get(raw, "sourceName", "source_name"), _SOURCE_NAME_MAX),
    )


def _sanitize_gallery(raw: Mapping[str, Any]) -> ImageGallery | None:
    items = raw.get("items")
    if not isinstance(items, list):
        return None
    cards = [c for c in (sanitize_card(i) for i in items[:MAX_CARDS_PER_GALLERY]) if c]
    return ImageGallery(items=cards) if cards else None


def _sanitize_option_set(raw: Mapping[str, Any]) -> OptionSet | None:
    items = raw.get("items")
    if not isinstance(items, list):
        return None

    cards: list[ImageCard] = []
    for item in items[:MAX_CARDS_PER_GALLERY]:
        # Items are normally {index, card}; a bare card is accepted too.
        candidate = item.get("card", item) if isinstance(item, Mapping) else item
        card = sanitize_card(candidate)
        if card is not None:
            cards.append(card)
    if not cards:
        return None

    # Stored indices are not trusted: renumber in presentation order.
    return OptionSet(
        prompt=_clip(raw.get("prompt"), _PROMPT_MAX) or "",
        items=[OptionItem(index=i, card=card) for i, card in enumerate(cards, start=1)],
    )


_SANITIZERS: dict[str, Callable[[Mapping[str, Any]], RichBlock | None]] = {
    "image_card": sanitize_card,
    "image_gallery": _sanitize_gallery,
    "option_set": _sanitize_option_set,
}


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #


def sanitize_blocks(candidates: object) -> list[RichBlock]:
    """Sanitise raw (possibly model-produced or legacy) block objects.

    Parameters
    ----------
    candidates:
        Usually a list of untyped mappings. Anything that is not a list or
        tuple yields an empty result.

    Returns
    -------
    list[RichBlock]
        Surviving blocks in their original relative order.
    """
    if not isinstance(candidates, (list, tuple)):
        return []

    safe: list[RichBlock] = []
    for raw in candidates[:MAX_BLOCKS]:
        if not isinstance(raw, Mapping):
            continue
        sanitizer = _SANITIZERS.get(str(raw.get("type")))
        if sanitizer is None:
            continue
        block = sanitizer(raw)
        if block is not None:
            safe.append(block)
    return safe


__all__ = [
    "MAX_URL_LENGTH",
    "MAX_BLOCKS",
    "MAX_CARDS_PER_GALLERY",
    "MAX_META_ENTRIES",
    "is_valid_hostname",
    "split_http_url",
    "is_private_host",
    "is_valid_image_url",
    "is_valid_action_url",
    "normalize_base_url",
    "sanitize_card",
    "sanitize_blocks",
]
