"""Plain-text rendering of rich messages.

Every block must stay usable as "text + URL" so that the CLI and messaging
channels that cannot show images still work. These helpers produce that
fallback and the numbered option list behind "open option n" commands.
"""

from __future__ import annotations

from typing import NamedTuple

from richreply.core.contracts.blocks import (
    AssistantMessage,
    ImageCard,
    ImageGallery,
    OptionSet,
    RichBlock,
)


class NavigableOption(NamedTuple):
    """One numbered, openable entry extracted from a message."""

    index: int
    title: str
    url: str


def card_to_text(card: ImageCard) -> str:
    """Serialize a single card to readable text with its URL at the end."""
    lines: list[str] = [card.title]
    if card.subtitle:
        lines.append(card.subtitle)
    if card.meta:
        lines.append(" · ".join(f"{k}: {v}" for k, v in card.meta.items()))
    if card.action_url:
        lines.append(card.action_url)
    if card.source_name:
        lines.append(f"via {card.source_name}")
    return "\n".join(lines)


def block_cards(block: RichBlock) -> list[ImageCard]:
    """Return the cards a block contributes, in presentation order."""
    if isinstance(block, ImageCard):
        return [block]
    if isinstance(block, ImageGallery):
        return list(block.items)
    if isinstance(block, OptionSet):
        return [item.card for item in block.items]
    return []


def to_plain_text(message: AssistantMessage) -> str:
    """Render a message as text for channels without rich rendering."""
    if not message.blocks:
        return message.text

    parts: list[str] = [message.text]
    for block in message.blocks:
        if isinstance(block, ImageCard):
            parts.append(card_to_text(block))
        elif isinstance(block, ImageGallery):
            parts.extend(f"[{i}] {card_to_text(c)}" for i, c in enumerate(block.items, start=1))
        elif isinstance(block, OptionSet):
            if block.prompt:
                parts.append(block.prompt)
            parts.extend(f"[{item.index}] {card_to_text(item.card)}" for item in block.items)

    return "\n\n".join(p for p in parts if p)


def extract_options(message: AssistantMessage) -> list[NavigableOption]:
    """Number every card across all blocks, pointing at its link or image."""
    out: list[NavigableOption] = []
    for block in message.blocks or []:
        for card in block_cards(block):
            url = card.action_url or card.image_url
            if url:
                out.append(NavigableOption(len(out) + 1, card.title, url))
    return out


__all__ = [
    "NavigableOption",
    "card_to_text",
    "block_cards",
    "to_plain_text",
    "extract_options",
]
