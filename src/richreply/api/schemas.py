"""
Request/response schemas for the HTTP API.

The pipeline contracts (:mod:`richreply.core.contracts`) are reused for the
payloads themselves; these models only wrap them for transport.
"""

from __future__ import annotations

from pydantic import Field

from richreply.core.contracts.blocks import ImageCard, WireModel
from richreply.core.contracts.share import SharePreview, StoredMessage


class EnrichRequest(WireModel):
    """Body of ``POST /enrich``."""

    reply: str = Field(description="Raw model reply (untrusted).")


class ShareResolveRequest(WireModel):
    """Body of ``POST /share/resolve``."""

    message: StoredMessage
    index: int | str | None = Field(
        default=1, description="1-based card index; clamped, junk maps to 1."
    )


class ShareResolveResponse(WireModel):
    target_url: str
    card: ImageCard
    preview: SharePreview


__all__ = ["EnrichRequest", "ShareResolveRequest", "ShareResolveResponse"]
