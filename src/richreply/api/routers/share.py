"""
API route for share-link resolution.

Endpoints
---------
- `POST /share/resolve`: Resolve a stored message + card index to the
  redirect target and link-preview metadata.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, status

from richreply.api.schemas import ShareResolveRequest, ShareResolveResponse
from richreply.core.settings import load_settings
from richreply.share.resolver import (
    build_share_preview,
    get_public_base_url,
    resolve_share_target,
)

router = APIRouter(prefix="/share", tags=["Share"])


@router.post("/resolve", summary="Resolve a share link")
async def resolve_share(request: ShareResolveRequest) -> dict[str, Any]:
    """
    Select the card a share link points at.

    Returns 404 when the message has no cards or the selected card has no
    action URL; any other index is clamped into range.
    """
    result = resolve_share_target(request.message, request.index)
    if result.is_err():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Share target not found ({result.unwrap_err()})",
        )

    config = load_settings()
    target = result.unwrap()
    preview = build_share_preview(
        request.message,
        request.index,
        base_url=get_public_base_url(config),
        site_title=config.share_title,
    )
    response = ShareResolveResponse(target_url=target.target_url, card=target.card, preview=preview)
    return response.to_wire()


__all__ = ["router"]
