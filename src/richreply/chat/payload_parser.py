"""Payload extractor: from a raw model reply to a :class:`RawLlmPayload`.

Models are prompted to answer with a JSON object shaped like::

    {"text": "...", "options": [{"title": "...", "category": "hotel", ...}]}

In practice the object arrives wrapped in prose, inside a ```json fence, or
followed by trailing commentary. A single ``json.loads`` would degrade all of
those replies to plain text, so extraction runs a short list of stages and the
first one that yields a payload wins:

1. **Direct**   : the whole trimmed reply is a JSON object.
2. **Fenced**   : the body of the first ```json fence.
3. **Embedded** : from the first ``{`` to the end of the reply, or, failing
   that, to its matching closing brace (drops trailing prose).
4. **Plain**    : the trimmed reply as text.

A stage "yields a payload" only when it decodes an object with a string
``text`` field. Prose found before the JSON (stages 2 and 3) is prepended to
``text`` unless ``text`` already starts with it. That merge is a heuristic: a
preamble the model paraphrased inside ``text`` will appear twice.

:func:`parse_llm_payload` is total. Nothing in here raises on bad input.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from typing import Any

from richreply.core.contracts.payload import RawLlmPayload, RawOption
from richreply.core.settings import get_logger

logger = get_logger(__name__)

_JSON_FENCE = re.compile(r"```json\s*([\s\S]+?)```")

# --------------------------------------------------------------------------- #
# Decoding helpers
# --------------------------------------------------------------------------- #


def _loads(candidate: str) -> object | None:
    """Decode JSON, returning ``None`` instead of raising."""
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return None


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _first_present(item: Mapping[str, Any], *keys: str) -> object:
    for key in keys:
        if key in item:
            return item[key]
    return None


def _coerce_meta(raw: object) -> dict[str, str] | None:
    if not isinstance(raw, Mapping) or not raw:
        return None
    return {str(k): str(v) for k, v in raw.items() if v is not None}


def _coerce_options(raw: object) -> list[RawOption]:
    """Keep the well-formed options, dropping the rest one by one."""
    if not isinstance(raw, list):
        return []

    options: list[RawOption] = []
    for item in raw:
        if not isinstance(item, Mapping):
            continue
        title = item.get("title")
        if not isinstance(title, str) or not title.strip():
            continue
        options.append(
            RawOption(
                title=title.strip(),
                subtitle=_optional_str(item.get("subtitle")),
                category=_optional_str(item.get("category")),
                meta=_coerce_meta(item.get("meta")),
                action_url=_optional_str(_first_present(item, "actionUrl", "action_url")),
                source_name=_optional_str(_first_present(item, "sourceName", "source_name")),
            )
        )
    return options


def _coerce_payload(data: object) -> RawLlmPayload | None:
    """Accept a decoded value only if it is an object with a string ``text``."""
    if not isinstance(data, Mapping):
        return None
    text = data.get("text")
    if not isinstance(text, str):
        return None

    blocks = data.get("blocks")
    return RawLlmPayload(
        text=text,
        options=_coerce_options(data.get("options")) or None,
        blocks=list(blocks) if isinstance(blocks, list) else None,
    )


def _merge_preamble(payload: RawLlmPayload, preamble: str) -> RawLlmPayload:
    if preamble and not payload.text.startswith(preamble):
        return payload.model_copy(update={"text": f"{preamble}\n\n{payload.text}"})
    return payload


def find_matching_brace(text: str, start: int) -> int | None:
    """Return the index of the brace closing the object opened at ``start``.

    Braces inside JSON string literals are ignored, so ``{"text": "a } b"}``
    is scanned correctly. Returns ``None`` when depth never returns to zero.
    """
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i
    return None


# --------------------------------------------------------------------------- #
# Stages
# --------------------------------------------------------------------------- #


def _parse_direct(trimmed: str) -> RawLlmPayload | None:
    if not trimmed.startswith("{"):
        return None
    return _coerce_payload(_loads(trimmed))


def _parse_fenced(trimmed: str) -> RawLlmPayload | None:
    match = _JSON_FENCE.search(trimmed)
    if match is None:
        return None
    payload = _coerce_payload(_loads(match.group(1)))
    if payload is None:
        return None
    return _merge_preamble(payload, trimmed[: match.start()].strip())


def _parse_embedded(trimmed: str) -> RawLlmPayload | None:
    brace = trimmed.find("{")
    if brace == -1:
        return None
    preamble = trimmed[:brace].strip()

    payload = _coerce_payload(_loads(trimmed[brace:]))
    if payload is None:
        end = find_matching_brace(trimmed, brace)
        if end is not None:
            payload = _coerce_payload(_loads(trimmed[brace : end + 1]))
    if payload is None:
        return None
    return _merge_preamble(payload, preamble)


_STAGES: tuple[tuple[str, Callable[[str], RawLlmPayload | None]], ...] = (
    ("direct", _parse_direct),
    ("fenced", _parse_fenced),
    ("embedded", _parse_embedded),
)


# --------------------------------------------------------------------------- #
# Public API
# --------------------------------------------------------------------------- #


def parse_llm_payload(raw: str) -> RawLlmPayload:
    """Extract a structured payload from a model reply, degrading to plain text.

    Parameters
    ----------
    raw:
        Untrusted reply string of arbitrary length.

    Returns
    -------
    RawLlmPayload
        Always at least ``RawLlmPayload(text=raw.strip())``.
    """
    trimmed = (raw or "").strip()
    for name, stage in _STAGES:
        payload = stage(trimmed)
        if payload is not None:
            logger.debug(
                "Reply parsed via %s stage (options=%d, blocks=%d)",
                name,
                len(payload.options or []),
                len(payload.blocks or []),
            )
            return payload
    return RawLlmPayload(text=trimmed)


__all__ = ["parse_llm_payload", "find_matching_brace"]
