"""Share-link resolution over stored canonical messages."""

from __future__ import annotations

from .resolver import (
    build_share_preview,
    coerce_index,
    flatten_cards,
    parse_stored_blocks,
    resolve_share_target,
    to_absolute_url,
)

__all__ = [
    "build_share_preview",
    "coerce_index",
    "flatten_cards",
    "parse_stored_blocks",
    "resolve_share_target",
    "to_absolute_url",
]
