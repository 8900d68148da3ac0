"""Tests for the enrichment orchestrator.

Scenarios
---------
1. Fenced reply with two options and no credentials -> one option set with
   placeholder images.
2. Single option -> a bare image card.
3. Pre-built blocks -> sanitised, options ignored.
4. Plain text -> no blocks.
5. Concurrency: options resolve in parallel but keep reply order.
"""

from __future__ import annotations

import asyncio
import json

from richreply.chat.enricher import OPTION_SET_PROMPT, VisualEnricher, enrich_llm_reply
from richreply.core.contracts.blocks import AssistantMessage, ImageCard, OptionSet
from richreply.core.contracts.payload import RawOption
from richreply.core.settings import Settings
from richreply.media.images import ImageResolver, make_placeholder

NO_CREDENTIALS = Settings(_env_file=None, UNSPLASH_ACCESS_KEY=None, PEXELS_API_KEY=None)

FENCED_REPLY = """Here are two options for tonight:
```json
{
  "text": "Both are close to you.",
  "options": [
    {"title": "Cafe Nord", "category": "restaurant", "meta": {"price": "$$"}},
    {"title": "Harbor Bar", "category": "bar", "actionUrl": "javascript:alert(1)"}
  ]
}
```
Anything else?"""


class StaticResolver(ImageResolver):
    """Resolver answering from a dict after a per-title delay."""

    def __init__(self, urls: dict[str, str], delays: dict[str, float] | None = None) -> None:
        super().__init__()
        self.urls = urls
        self.delays = delays or {}
        self.in_flight = 0
        self.peak = 0

    async def resolve_image(self, option: RawOption) -> str:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(option.title, 0.0))
        finally:
            self.in_flight -= 1
        return self.urls[option.title]


def test_fenced_two_options_without_credentials() -> None:
    message = asyncio.run(enrich_llm_reply(FENCED_REPLY, config=NO_CREDENTIALS))

    assert message.text == "Here are two options for tonight:\n\nBoth are close to you."
    assert message.blocks is not None and len(message.blocks) == 1
    option_set = message.blocks[0]
    assert isinstance(option_set, OptionSet)
    assert option_set.prompt == OPTION_SET_PROMPT
    assert [item.index for item in option_set.items] == [1, 2]

    first, second = (item.card for item in option_set.items)
    assert first.image_url == make_placeholder("restaurant Cafe Nord")
    assert second.image_url == make_placeholder("bar Harbor Bar")
    assert first.alt == "Cafe Nord" and first.meta == {"price": "$$"}
    # An unsafe deep link is dropped from the card, the card itself stays.
    assert second.action_url is None


def test_single_option_becomes_image_card() -> None:
    raw = json.dumps(
        {
            "text": "Try this one.",
            "options": [
                {
                    "title": "Museum",
                    "category": "museum",
                    "actionUrl": "https://museum.example.com",
                    "sourceName": "CityGuide",
                }
            ],
        }
    )
    resolver = StaticResolver({"Museum": "https://img.example.com/museum.jpg"})
    message = asyncio.run(enrich_llm_reply(raw, resolver=resolver, config=NO_CREDENTIALS))

    assert message.blocks is not None and len(message.blocks) == 1
    card = message.blocks[0]
    assert isinstance(card, ImageCard)
    assert card.image_url == "https://img.example.com/museum.jpg"
    assert card.action_url == "https://museum.example.com"
    assert card.source_name == "CityGuide"


def test_prebuilt_blocks_are_sanitised_and_win_over_options() -> None:
    raw = json.dumps(
        {
            "text": "Gallery",
            "options": [{"title": "ignored"}],
            "blocks": [
                {"type": "image_card", "title": "ok", "imageUrl": "https://img.example.com/ok.jpg"},
                {"type": "image_card", "title": "bad", "imageUrl": "http://localhost/x.jpg"},
                {"type": "mystery"},
            ],
        }
    )
    resolver = StaticResolver({})
    message = asyncio.run(enrich_llm_reply(raw, resolver=resolver, config=NO_CREDENTIALS))

    assert message.blocks is not None
    assert [b.title for b in message.blocks if isinstance(b, ImageCard)] == ["ok"]
    assert len(message.blocks) == 1
    assert resolver.peak == 0


def test_prebuilt_blocks_all_invalid_means_no_blocks() -> None:
    raw = json.dumps({"text": "t", "blocks": [{"type": "image_card", "title": ""}]})
    message = asyncio.run(enrich_llm_reply(raw, resolver=StaticResolver({})))
    assert message == AssistantMessage(text="t")


def test_plain_text_reply() -> None:
    message = asyncio.run(enrich_llm_reply("  just chatting  ", resolver=StaticResolver({})))
    assert message.text == "just chatting"
    assert message.blocks is None


def test_options_resolve_concurrently_in_reply_order() -> None:
    titles = ["A", "B", "C"]
    resolver = StaticResolver(
        {t: f"https://img.example.com/{t}.jpg" for t in titles},
        delays={"A": 0.05, "B": 0.01, "C": 0.03},
    )
    enricher = VisualEnricher(resolver, max_concurrency=8)
    raw = json.dumps({"text": "x", "options": [{"title": t} for t in titles]})

    message = asyncio.run(enricher.enrich(raw))

    assert message.blocks is not None
    option_set = message.blocks[0]
    assert isinstance(option_set, OptionSet)
    assert [i.card.title for i in option_set.items] == titles
    assert [i.index for i in option_set.items] == [1, 2, 3]
    assert resolver.peak == 3


def test_concurrency_is_bounded() -> None:
    titles = [f"opt{i}" for i in range(6)]
    resolver = StaticResolver(
        {t: f"https://img.example.com/{t}.jpg" for t in titles},
        delays={t: 0.01 for t in titles},
    )
    enricher = VisualEnricher(resolver, max_concurrency=2)
    options = [RawOption(title=t) for t in titles]

    cards = asyncio.run(enricher.build_cards(options))

    assert [c.title for c in cards] == titles
    assert resolver.peak <= 2


def test_malformed_action_url_is_dropped_from_card() -> None:
    raw = json.dumps(
        {"text": "t", "options": [{"title": "Spa", "actionUrl": "https://exa mple.com/x"}]}
    )
    resolver = StaticResolver({"Spa": "https://img.example.com/spa.jpg"})
    message = asyncio.run(enrich_llm_reply(raw, resolver=resolver, config=NO_CREDENTIALS))

    assert message.blocks is not None
    card = message.blocks[0]
    assert isinstance(card, ImageCard)
    assert card.action_url is None
