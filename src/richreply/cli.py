# src/richreply/cli.py
"""
RichReply Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`. It is
a thin shell over the pipeline: every command reads its input from a file and
prints the pipeline's output.

Commands
--------
- **parse**  : show the structured payload extracted from a raw reply.
- **enrich** : turn a raw reply into a canonical message (JSON or plain text).
- **share**  : resolve a stored message + index to its share target and preview.

Usage
-----
    $ richreply parse reply.txt
    $ richreply enrich reply.txt --json
    $ richreply share message.json 2
"""

from __future__ import annotations

import asyncio
import json
import time
import traceback
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn

from richreply.chat.enricher import enrich_llm_reply
from richreply.chat.payload_parser import parse_llm_payload
from richreply.chat.rich_message import extract_options, to_plain_text
from richreply.core.contracts.share import StoredMessage
from richreply.core.settings import load_settings
from richreply.share.resolver import (
    build_share_preview,
    get_public_base_url,
    resolve_share_target,
)

# Ensure env vars (like UNSPLASH_ACCESS_KEY) are loaded before any logic runs
load_dotenv()

app = typer.Typer(
    help="RichReply: turn assistant replies into rich, shareable option cards.",
    rich_markup_mode="markdown",
)
console = Console()

# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _print_json(data: Any) -> None:
    console.print_json(json.dumps(data, ensure_ascii=False))


def _load_stored_message(path: Path) -> StoredMessage:
    """
    Helper: Read a stored message from JSON.

    Accepts the persisted shape (``{"text", "blocksJson"}``) as well as a
    canonical message (``{"text", "blocks": [...]}``) as written by
    ``richreply enrich --json``.
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Stored message must be a JSON object.")
    if "blocksJson" not in data and "blocks_json" not in data and "blocks" in data:
        return StoredMessage(
            id=data.get("id"),
            text=str(data.get("text", "")),
            blocks_json=json.dumps(data["blocks"]),
        )
    return StoredMessage.model_validate(data)


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def parse(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to the input file.",
        ),
    ],
) -> None:
    """Print the structured payload extracted from a raw model reply."""
    raw = file.read_text(encoding="utf-8")
    _print_json(parse_llm_payload(raw).to_wire())


@app.command()  # type: ignore[misc]
def enrich(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to the input file.",
        ),
    ],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the canonical message as JSON."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show full error tracebacks for debugging."),
    ] = False,
) -> None:
    """
    Enrich a raw model reply into a canonical message.

    Options in the reply get images from the configured providers (or a
    placeholder when none are configured).
    """
    raw = file.read_text(encoding="utf-8")
    start_time = time.time()

    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("[cyan]Resolving images...", total=None)
            message = asyncio.run(enrich_llm_reply(raw))
    except Exception as e:
        console.print(f"\n[bold red]Enrichment Error:[/bold red] {e}")
        if verbose:
            traceback.print_exc()
        raise typer.Exit(code=1) from e

    if as_json:
        _print_json(message.to_wire())
        return

    console.print(to_plain_text(message), soft_wrap=True, markup=False)
    options = extract_options(message)
    if options:
        console.print(
            f"\n[dim]{len(options)} option(s) · took {time.time() - start_time:.1f}s[/dim]"
        )


@app.command()  # type: ignore[misc]
def share(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            file_okay=True,
            dir_okay=False,
            readable=True,
            help="Path to the input file.",
        ),
    ],
    index: Annotated[str, typer.Argument(help="1-based card index (clamped).")] = "1",
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", help="Public origin used to absolutize preview URLs."),
    ] = None,
) -> None:
    """Resolve a stored message's card at INDEX to its share target."""
    try:
        message = _load_stored_message(file)
    except ValueError as e:
        console.print(f"[bold red]Invalid message file:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    result = resolve_share_target(message, index)
    if result.is_err():
        console.print(f"[bold red]Not found:[/bold red] {result.unwrap_err()}")
        raise typer.Exit(code=1)

    config = load_settings()
    preview = build_share_preview(
        message,
        index,
        base_url=base_url or get_public_base_url(config),
        site_title=config.share_title,
    )
    target = result.unwrap()
    console.print(target.card.title, style="bold", markup=False, soft_wrap=True)
    console.print(target.target_url, soft_wrap=True, markup=False)
    _print_json(preview.to_wire())


if __name__ == "__main__":
    app()
