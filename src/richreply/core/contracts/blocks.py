"""Canonical rich-message contracts.

These Pydantic v2 models are the only values that leave the reply pipeline:
they are handed to the storage collaborator and to renderers (web UI, CLI,
text-only messaging channels).

Wire format
-----------
Stored and rendered payloads use camelCase keys (``imageUrl``, ``actionUrl``,
``sourceName``). Python code uses snake_case attributes; both spellings are
accepted on input, and :meth:`WireModel.to_wire` emits camelCase with ``None``
fields omitted.

Variants
--------
``RichBlock`` is a tagged union discriminated by ``type``:

- ``image_card``    : one visual option (venue, stay, event).
- ``image_gallery`` : an ordered list of cards.
- ``option_set``    : an ordered list of ``{index, card}`` with a prompt; the
  indices are 1-based and follow presentation order.

Notes
-----
- The models only check shapes. URL safety and truncation are the job of
  :mod:`richreply.chat.safety`, which every untrusted block passes through.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for contracts persisted or rendered with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Return a JSON-safe dict with camelCase keys and no ``None`` fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ImageCard(WireModel):
    """A single visual option with an image and an optional deep link."""

    type: Literal["image_card"] = "image_card"
    title: str = Field(min_length=1, description="Card headline; never empty.")
    subtitle: str | None = None
    image_url: str = Field(description="Absolute http(s) image URL.")
    alt: str = Field(description="Accessible description of the image.")
    meta: dict[str, str] | None = Field(
        default=None, description="Metadata chips: price, rating, neighborhood, ..."
    )
    action_url: str | None = Field(default=None, description="Deep link to a booking/detail page.")
    source_name: str | None = Field(default=None, description="Attribution label.")


class ImageGallery(WireModel):
    """An ordered run of cards rendered side by side."""

    type: Literal["image_gallery"] = "image_gallery"
    items: list[ImageCard]


class OptionItem(WireModel):
    """One numbered entry of an :class:`OptionSet`."""

    index: int = Field(ge=1, description="1-based position in presentation order.")
    card: ImageCard


class OptionSet(WireModel):
    """Numbered options the user can pick from ("tap one to explore")."""

    type: Literal["option_set"] = "option_set"
    prompt: str = ""
    items: list[OptionItem]


RichBlock = Annotated[ImageCard | ImageGallery | OptionSet, Field(discriminator="type")]


class AssistantMessage(WireModel):
    """Canonical assistant message: plain text plus optional visual blocks.

    ``blocks`` is ``None`` when there is nothing to render beyond text, so
    that callers can tell "no visual content" apart from an empty list.
    """

    text: str
    blocks: list[RichBlock] | None = None


__all__ = [
    "WireModel",
    "ImageCard",
    "ImageGallery",
    "OptionItem",
    "OptionSet",
    "RichBlock",
    "AssistantMessage",
]
