"""
API route for reply enrichment.

Endpoints
---------
- `POST /enrich`: Turn a raw model reply into a canonical message.

The response is the message's wire form (camelCase keys, absent fields
omitted), i.e. exactly what the storage collaborator persists.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from richreply.api.schemas import EnrichRequest
from richreply.chat.enricher import enrich_llm_reply

router = APIRouter(tags=["Enrichment"])


@router.post("/enrich", summary="Enrich a raw model reply")
async def enrich_reply(request: EnrichRequest) -> dict[str, Any]:
    """
    Parse, sanitize and enrich one reply.

    Never fails on malformed replies: unparseable input degrades to a
    text-only message, and image lookups fall back to placeholders.
    """
    message = await enrich_llm_reply(request.reply)
    return message.to_wire()


__all__ = ["router"]
