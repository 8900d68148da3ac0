"""Share-link contracts: the stored message input and the resolved outputs."""

from __future__ import annotations

import json
from typing import Literal

from pydantic import Field

from .blocks import AssistantMessage, ImageCard, WireModel


class StoredMessage(WireModel):
    """A persisted assistant message as the storage collaborator returns it.

    ``blocks_json`` is the JSON-encoded block list exactly as persisted; it may
    pre-date schema tightening and is therefore re-sanitized on read.
    """

    id: str | None = None
    text: str = ""
    blocks_json: str | None = None

    @classmethod
    def from_message(cls, message: AssistantMessage, *, id: str | None = None) -> StoredMessage:
        """Build the stored form of a canonical message."""
        blocks_json = None
        if message.blocks is not None:
            wire_blocks = message.to_wire().get("blocks", [])
            blocks_json = json.dumps(wire_blocks)
        return cls(id=id, text=message.text, blocks_json=blocks_json)


class ShareTarget(WireModel):
    """The card selected by a share link and where the link redirects."""

    card: ImageCard
    target_url: str


class SharePreview(WireModel):
    """Link-preview metadata (Open Graph / Twitter card) for a share page."""

    title: str
    description: str
    image_url: str | None = None
    twitter_card: Literal["summary", "summary_large_image"] = "summary"
    target_url: str | None = Field(default=None, description="Absent when nothing resolved.")


__all__ = ["StoredMessage", "ShareTarget", "SharePreview"]
