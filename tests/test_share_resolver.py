"""Tests for share-link resolution and preview metadata."""

from __future__ import annotations

import json
from typing import Any

import pytest

from richreply.core.contracts.share import StoredMessage
from richreply.core.settings import Settings
from richreply.share.resolver import (
    DEFAULT_SHARE_DESCRIPTION,
    NO_CARDS,
    NO_TARGET,
    build_share_preview,
    coerce_index,
    flatten_cards,
    get_public_base_url,
    parse_stored_blocks,
    resolve_share_target,
    to_absolute_url,
)


def _card(n: int, *, link: bool = True, image_url: str | None = None) -> dict[str, Any]:
    card: dict[str, Any] = {
        "type": "image_card",
        "title": f"Card {n}",
        "subtitle": f"Subtitle {n}",
        "imageUrl": image_url or f"https://img.example.com/{n}.jpg",
        "alt": f"Card {n}",
    }
    if link:
        card["actionUrl"] = f"https://example.com/{n}"
    return card


def _stored(blocks: list[dict[str, Any]] | None) -> StoredMessage:
    return StoredMessage(
        id="m1",
        text="t",
        blocks_json=json.dumps(blocks) if blocks is not None else None,
    )


THREE_CARDS = _stored(
    [
        {
            "type": "option_set",
            "prompt": "Pick",
            "items": [{"index": i, "card": _card(i)} for i in (1, 2, 3)],
        }
    ]
)


@pytest.mark.parametrize(  # type: ignore[misc]
    ("index", "expected"),
    [
        (1, "https://example.com/1"),
        (2, "https://example.com/2"),
        (0, "https://example.com/1"),
        (-5, "https://example.com/1"),
        (99, "https://example.com/3"),
        ("2", "https://example.com/2"),
        ("3abc", "https://example.com/3"),
        ("abc", "https://example.com/1"),
        (None, "https://example.com/1"),
        (2.0, "https://example.com/2"),
    ],
)
def test_index_is_clamped(index: object, expected: str) -> None:
    result = resolve_share_target(THREE_CARDS, index)
    assert result.is_ok()
    assert result.unwrap().target_url == expected


def test_coerce_index() -> None:
    assert coerce_index(True) == 1
    assert coerce_index(" 7 ") == 7
    assert coerce_index(2.5) == 1
    assert coerce_index([3]) == 1


def test_flatten_order_across_block_types() -> None:
    blocks = parse_stored_blocks(
        [
            _card(1),
            {"type": "image_gallery", "items": [_card(2), _card(3)]},
            {"type": "option_set", "items": [{"index": 9, "card": _card(4)}]},
        ]
    )
    assert [c.title for c in flatten_cards(blocks)] == ["Card 1", "Card 2", "Card 3", "Card 4"]


@pytest.mark.parametrize(  # type: ignore[misc]
    "message",
    [
        None,
        _stored(None),
        _stored([]),
        StoredMessage(text="t", blocks_json="   "),
        StoredMessage(text="t", blocks_json="{broken"),
        StoredMessage(text="t", blocks_json='{"type": "image_card"}'),
        _stored([{"type": "image_card", "title": "x", "imageUrl": "javascript:x"}]),
    ],
)
def test_no_cards_is_not_found(message: StoredMessage | None) -> None:
    result = resolve_share_target(message, 1)
    assert result.is_err() and result.unwrap_err() == NO_CARDS


def test_card_without_action_url_is_not_found() -> None:
    message = _stored([_card(1), _card(2, link=False)])
    assert resolve_share_target(message, 1).is_ok()
    result = resolve_share_target(message, 2)
    assert result.is_err() and result.unwrap_err() == NO_TARGET


def test_to_absolute_url() -> None:
    base = "https://app.example.com"
    assert to_absolute_url("/media/abc.jpg", base) == "https://app.example.com/media/abc.jpg"
    assert to_absolute_url("https://cdn.example.com/x.jpg", base) == "https://cdn.example.com/x.jpg"
    assert to_absolute_url("/media/abc.jpg", None) == "/media/abc.jpg"


def test_get_public_base_url_strips_trailing_slashes() -> None:
    config = Settings(_env_file=None, RICHREPLY_BASE_URL="https://app.example.com//")
    assert get_public_base_url(config) == "https://app.example.com"
    assert get_public_base_url(Settings(_env_file=None, RICHREPLY_BASE_URL="not a url")) is None


def test_share_preview_for_resolved_card() -> None:
    preview = build_share_preview(THREE_CARDS, 2, base_url="https://app.example.com")

    assert preview.title == "Card 2"
    assert preview.description == "Subtitle 2"
    assert preview.image_url == "https://img.example.com/2.jpg"
    assert preview.twitter_card == "summary_large_image"
    assert preview.target_url == "https://example.com/2"


def test_share_preview_falls_back_to_generic() -> None:
    preview = build_share_preview(_stored([]), 1, site_title="MySite")

    assert preview.title == "MySite"
    assert preview.description == DEFAULT_SHARE_DESCRIPTION
    assert preview.image_url is None
    assert preview.twitter_card == "summary"
    assert preview.target_url is None
