"""Visual enrichment: from a raw model reply to a canonical AssistantMessage.

Flow
----
1. :func:`~richreply.chat.payload_parser.parse_llm_payload` extracts text plus
   either pre-built ``blocks`` or raw ``options``.
2. Pre-built blocks win. They are sanitised and returned as-is (a message
   without blocks if nothing survives).
3. Otherwise every option is resolved to an image concurrently. Resolution
   fans out through a bounded ``asyncio.TaskGroup`` and the message is built
   once all options are done, so total latency tracks the slowest option.
4. One option becomes a single ``image_card`` block; several become one
   ``option_set`` numbered from 1 in reply order.

Nothing here raises on bad input or provider failures: malformed replies
degrade to text, and the resolver always lands on at least a placeholder.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

import httpx

from richreply.chat.payload_parser import parse_llm_payload
from richreply.chat.safety import is_valid_action_url, sanitize_blocks
from richreply.core.contracts.blocks import (
    AssistantMessage,
    ImageCard,
    OptionItem,
    OptionSet,
    RichBlock,
)
from richreply.core.contracts.payload import RawOption
from richreply.core.settings import Settings, get_logger, load_settings
from richreply.media.images import ImageResolver

logger = get_logger(__name__)

OPTION_SET_PROMPT = "Here are your options — tap one to explore further:"


def build_card(option: RawOption, image_url: str) -> ImageCard:
    """Turn a raw option plus its resolved image into a canonical card."""
    return ImageCard(
        title=option.title,
        subtitle=option.subtitle,
        image_url=image_url,
        alt=option.title,
        meta=option.meta,
        action_url=option.action_url if is_valid_action_url(option.action_url) else None,
        source_name=option.source_name,
    )


class VisualEnricher:
    """Enrich replies using an injected :class:`ImageResolver`."""

    def __init__(self, resolver: ImageResolver, *, max_concurrency: int = 8) -> None:
        self.resolver = resolver
        self.max_concurrency = max(1, max_concurrency)

    @classmethod
    def from_settings(
        cls, config: Settings, *, client: httpx.AsyncClient | None = None
    ) -> VisualEnricher:
        return cls(
            ImageResolver.from_settings(config, client=client),
            max_concurrency=config.enrich_max_concurrency,
        )

    async def build_cards(self, options: Sequence[RawOption]) -> list[ImageCard]:
        """Resolve all options concurrently; output order follows input order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _one(option: RawOption) -> ImageCard:
            async with semaphore:
                image_url = await self.resolver.resolve_image(option)
            return build_card(option, image_url)

        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(_one(option)) for option in options]
        return [task.result() for task in tasks]

    async def enrich(self, raw: str) -> AssistantMessage:
        """Parse, sanitise or enrich, and assemble the canonical message."""
        payload = parse_llm_payload(raw)

        if payload.blocks:
            blocks = sanitize_blocks(payload.blocks)
            dropped = len(payload.blocks) - len(blocks)
            if dropped:
                logger.info("Dropped %d invalid pre-built block(s)", dropped)
            return AssistantMessage(text=payload.text, blocks=blocks or None)

        if not payload.options:
            return AssistantMessage(text=payload.text)

        cards = await self.build_cards(payload.options)
        built: list[RichBlock]
        if len(cards) == 1:
            built = [cards[0]]
        else:
            built = [
                OptionSet(
                    prompt=OPTION_SET_PROMPT,
                    items=[OptionItem(index=i, card=c) for i, c in enumerate(cards, start=1)],
                )
            ]
        return AssistantMessage(text=payload.text, blocks=built)


async def enrich_llm_reply(
    raw: str,
    *,
    resolver: ImageResolver | None = None,
    config: Settings | None = None,
) -> AssistantMessage:
    """Enrich one reply into a canonical :class:`AssistantMessage`.

    Parameters
    ----------
    raw:
        The model's reply string (untrusted).
    resolver:
        Optional pre-built resolver (tests inject fakes here). When omitted, a
        resolver is wired from settings around an HTTP client that lives for
        this call only.
    config:
        Settings to use; defaults to the cached process settings.
    """
    config = config or load_settings()
    if resolver is not None:
        enricher = VisualEnricher(resolver, max_concurrency=config.enrich_max_concurrency)
        return await enricher.enrich(raw)

    async with httpx.AsyncClient(
        timeout=config.image_fetch_timeout_seconds, follow_redirects=True
    ) as client:
        return await VisualEnricher.from_settings(config, client=client).enrich(raw)


__all__ = ["OPTION_SET_PROMPT", "VisualEnricher", "build_card", "enrich_llm_reply"]
