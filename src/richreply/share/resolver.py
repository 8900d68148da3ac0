"""Share-link resolution: one card out of a stored message.

A share link names a message and a 1-based card index. Resolution:

1. Decode the stored block JSON and re-sanitise it (persisted data may
   pre-date schema tightening).
2. Flatten blocks into cards in traversal order: an ``image_card`` is itself,
   an ``image_gallery`` contributes its items, an ``option_set`` contributes
   each item's card. Option-set indices are positional, never trusted.
3. Clamp the requested index into ``[1, len(cards)]``; junk indices map to 1.
   A share link should land on the first card rather than 404 whenever any
   card exists.
4. The selected card's ``action_url`` is the redirect target.

"Not found" (no cards, or the selected card has no link) is the only failure
and comes back as an ``Err`` rather than an exception.
"""

from __future__ import annotations

import json
import re
from collections.abc import Sequence
from urllib.parse import urljoin

from richreply.chat.rich_message import block_cards
from richreply.chat.safety import normalize_base_url, sanitize_blocks, split_http_url
from richreply.core.contracts.blocks import ImageCard, RichBlock
from richreply.core.contracts.share import SharePreview, ShareTarget, StoredMessage
from richreply.core.result import Result, err, ok
from richreply.core.settings import Settings, get_logger

logger = get_logger(__name__)

DEFAULT_SHARE_DESCRIPTION = "Open shared recommendation."

NO_CARDS = "no_cards"
NO_TARGET = "no_target"

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def parse_stored_blocks(blocks_json: str | list[object] | None) -> list[RichBlock]:
    """Decode and sanitise a persisted block list; bad input yields ``[]``."""
    if blocks_json is None:
        return []
    raw: object = blocks_json
    if isinstance(blocks_json, str):
        if not blocks_json.strip():
            return []
        try:
            raw = json.loads(blocks_json)
        except (ValueError, RecursionError):
            logger.warning("Stored blocks are not valid JSON; treating as empty")
            return []
    if not isinstance(raw, list):
        return []
    return sanitize_blocks(raw)


def flatten_cards(blocks: Sequence[RichBlock]) -> list[ImageCard]:
    """Expand nested containers into one ordered list of leaf cards."""
    cards: list[ImageCard] = []
    for block in blocks:
        cards.extend(block_cards(block))
    return cards


def coerce_index(raw: object) -> int:
    """Interpret a share-link index; anything non-numeric becomes 1.

    Strings use their leading integer (``"3abc"`` -> 3), like a URL path
    segment parsed leniently.
    """
    if isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        if match:
            return int(match.group(1))
    return 1


def resolve_share_target(message: StoredMessage | None, index: object) -> Result[ShareTarget, str]:
    """Select the card a share link points at.

    Returns
    -------
    Result[ShareTarget, str]
        ``Ok(ShareTarget)`` or ``Err("no_cards" | "no_target")``.
    """
    if message is None:
        return err(NO_CARDS)
    cards = flatten_cards(parse_stored_blocks(message.blocks_json))
    if not cards:
        return err(NO_CARDS)

    position = min(max(coerce_index(index), 1), len(cards))
    card = cards[position - 1]
    if not card.action_url:
        return err(NO_TARGET)
    return ok(ShareTarget(card=card, target_url=card.action_url))


# --------------------------------------------------------------------------- #
# Preview metadata
# --------------------------------------------------------------------------- #


def get_public_base_url(config: Settings) -> str | None:
    """Configured public origin without trailing slashes, or ``None``."""
    return normalize_base_url(config.public_base_url)


def to_absolute_url(url: str, base_url: str | None) -> str:
    """Absolutize ``url`` against ``base_url``; a no-op without a base."""
    if split_http_url(url) is not None or not base_url:
        return url
    return urljoin(f"{base_url}/", url)


def build_share_preview(
    message: StoredMessage | None,
    index: object,
    *,
    base_url: str | None = None,
    site_title: str = "RichReply",
) -> SharePreview:
    """Link-preview metadata for a share page (generic when nothing resolves)."""
    resolved = resolve_share_target(message, index)
    if resolved.is_err():
        return SharePreview(title=site_title, description=DEFAULT_SHARE_DESCRIPTION)

    target = resolved.unwrap()
    card = target.card
    description = (card.subtitle or "").strip() or DEFAULT_SHARE_DESCRIPTION
    image_url = to_absolute_url(card.image_url, base_url) if card.image_url else None
    return SharePreview(
        title=card.title or site_title,
        description=description,
        image_url=image_url,
        twitter_card="summary_large_image" if image_url else "summary",
        target_url=to_absolute_url(target.target_url, base_url),
    )


__all__ = [
    "DEFAULT_SHARE_DESCRIPTION",
    "NO_CARDS",
    "NO_TARGET",
    "parse_stored_blocks",
    "flatten_cards",
    "coerce_index",
    "resolve_share_target",
    "get_public_base_url",
    "to_absolute_url",
    "build_share_preview",
]
