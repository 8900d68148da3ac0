"""Pydantic contracts shared by the reply pipeline and the share resolver."""

from __future__ import annotations

from .blocks import (
    AssistantMessage,
    ImageCard,
    ImageGallery,
    OptionItem,
    OptionSet,
    RichBlock,
    WireModel,
)
from .payload import RawLlmPayload, RawOption
from .share import SharePreview, ShareTarget, StoredMessage

__all__ = [
    "WireModel",
    "ImageCard",
    "ImageGallery",
    "OptionItem",
    "OptionSet",
    "RichBlock",
    "AssistantMessage",
    "RawOption",
    "RawLlmPayload",
    "StoredMessage",
    "ShareTarget",
    "SharePreview",
]
