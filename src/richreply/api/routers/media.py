"""
API route serving the on-disk media cache.

Endpoints
---------
- `GET /media/{media_id}`: Raw bytes of a cached page image.

Only ids of the form ``<sha256>.<ext>`` resolve; anything else is a 404.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Response, status

from richreply.core.settings import load_settings
from richreply.media.cache import read_cached_media

router = APIRouter(tags=["Media"])


@router.get("/media/{media_id}", summary="Serve a cached image")
async def get_media(media_id: str) -> Response:
    cached = read_cached_media(media_id, load_settings().media_cache_dir)
    if cached is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")

    data, content_type = cached
    # Content-addressed: the bytes behind an id never change.
    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=31536000, immutable"},
    )


__all__ = ["router"]
