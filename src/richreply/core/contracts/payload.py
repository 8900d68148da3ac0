"""Pre-enrichment contracts extracted from a raw model reply.

Both models are ephemeral: they are created and consumed within a single
enrichment call and never stored.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from .blocks import WireModel


class RawOption(WireModel):
    """An option as the model described it, before an image is attached."""

    title: str = Field(min_length=1)
    subtitle: str | None = None
    category: str | None = Field(default=None, description="e.g. 'hotel', 'restaurant', 'park'.")
    meta: dict[str, str] | None = None
    action_url: str | None = None
    source_name: str | None = None

    def search_query(self) -> str:
        """Return the image search query, ``"{category} {title}"`` trimmed."""
        return f"{self.category or ''} {self.title}".strip()


class RawLlmPayload(WireModel):
    """Structured view of a reply: text plus raw options or pre-built blocks.

    When both ``options`` and ``blocks`` are present, ``blocks`` wins: the
    model is asserting it already built the UI.
    """

    text: str
    options: list[RawOption] | None = None
    blocks: list[Any] | None = None


__all__ = ["RawOption", "RawLlmPayload"]
