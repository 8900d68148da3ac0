# tests/test_cli.py
"""
Tests for the RichReply command-line interface (CLI).

Scope
-----
1.  **Command Registration**: `parse`, `enrich`, `share` and `--help`.
2.  **Argument Validation**: Typer's `exists=True` checks for input files.
3.  **Pipeline Integration**: `enrich_llm_reply` is mocked so no image
    lookups happen.
4.  **Error Handling**: exit code 1 on failures and "not found" shares.

We use `typer.testing.CliRunner` to invoke the app in-process.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from richreply.cli import app
from richreply.core.contracts.blocks import AssistantMessage, ImageCard


@pytest.fixture  # type: ignore[misc]
def runner() -> CliRunner:
    """Create a fresh CliRunner for each test."""
    return CliRunner()


def _card(n: int, link: bool = True) -> dict[str, object]:
    card: dict[str, object] = {
        "type": "image_card",
        "title": f"Card {n}",
        "imageUrl": f"https://img.example.com/{n}.jpg",
    }
    if link:
        card["actionUrl"] = f"https://ex.com/{n}"
    return card


def test_cli_help_shows_usage(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0, f"Help failed: {result.output}"
    assert "RichReply" in result.output
    for command in ("parse", "enrich", "share"):
        assert command in result.output


def test_enrich_fails_on_missing_file(runner: CliRunner) -> None:
    """Typer should enforce `exists=True` for the input file argument."""
    result = runner.invoke(app, ["enrich", "ghost.txt"])
    assert result.exit_code != 0
    assert "does not exist" in result.output


def test_parse_prints_payload(runner: CliRunner, tmp_path: Path) -> None:
    reply = tmp_path / "reply.txt"
    reply.write_text(
        'Ideas:\n```json\n{"text": "Go", "options": [{"title": "Park"}]}\n```', encoding="utf-8"
    )

    result = runner.invoke(app, ["parse", str(reply)])

    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    data = json.loads(result.output)
    assert data["text"] == "Ideas:\n\nGo"
    assert data["options"] == [{"title": "Park"}]


def test_enrich_renders_plain_text(runner: CliRunner, tmp_path: Path) -> None:
    reply = tmp_path / "reply.txt"
    reply.write_text("raw reply", encoding="utf-8")
    message = AssistantMessage(
        text="Here you go",
        blocks=[
            ImageCard(
                title="Museum",
                image_url="https://img.example.com/m.jpg",
                alt="Museum",
                action_url="https://ex.com/m",
            )
        ],
    )

    with patch("richreply.cli.enrich_llm_reply", new=AsyncMock(return_value=message)) as mock:
        result = runner.invoke(app, ["enrich", str(reply)])

    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    assert "Here you go" in result.output
    assert "Museum" in result.output
    assert "1 option(s)" in result.output
    mock.assert_awaited_once_with("raw reply")


def test_enrich_json_output(runner: CliRunner, tmp_path: Path) -> None:
    reply = tmp_path / "reply.txt"
    reply.write_text("raw", encoding="utf-8")

    with patch(
        "richreply.cli.enrich_llm_reply", new=AsyncMock(return_value=AssistantMessage(text="hi"))
    ):
        result = runner.invoke(app, ["enrich", str(reply), "--json"])

    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    assert json.loads(result.output) == {"text": "hi"}


def test_enrich_handles_crash(runner: CliRunner, tmp_path: Path) -> None:
    """Exceptions in the pipeline are reported and map to exit code 1."""
    reply = tmp_path / "reply.txt"
    reply.write_text("raw", encoding="utf-8")

    with patch(
        "richreply.cli.enrich_llm_reply", new=AsyncMock(side_effect=RuntimeError("boom"))
    ):
        result = runner.invoke(app, ["enrich", str(reply)])

    assert result.exit_code == 1, f"Expected 1, got {result.exit_code}:\n{result.output}"
    assert "Enrichment Error" in result.output
    assert "boom" in result.output


def test_share_resolves_clamped_index(runner: CliRunner, tmp_path: Path) -> None:
    stored = tmp_path / "message.json"
    stored.write_text(
        json.dumps({"text": "t", "blocksJson": json.dumps([_card(1), _card(2)])}),
        encoding="utf-8",
    )

    result = runner.invoke(app, ["share", str(stored), "99"])

    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    assert "Card 2" in result.output
    assert "https://ex.com/2" in result.output


def test_share_accepts_enriched_message_shape(runner: CliRunner, tmp_path: Path) -> None:
    stored = tmp_path / "message.json"
    stored.write_text(json.dumps({"text": "t", "blocks": [_card(1)]}), encoding="utf-8")

    result = runner.invoke(app, ["share", str(stored)])

    assert result.exit_code == 0, f"CLI Failed with Output:\n{result.output}"
    assert "https://ex.com/1" in result.output


def test_share_not_found(runner: CliRunner, tmp_path: Path) -> None:
    stored = tmp_path / "message.json"
    stored.write_text(json.dumps({"text": "t", "blocks": [_card(1, link=False)]}))

    result = runner.invoke(app, ["share", str(stored), "1"])

    assert result.exit_code == 1
    assert "no_target" in result.output


def test_share_invalid_file(runner: CliRunner, tmp_path: Path) -> None:
    stored = tmp_path / "message.json"
    stored.write_text("[1, 2, 3]")

    result = runner.invoke(app, ["share", str(stored)])

    assert result.exit_code == 1
    assert "Invalid message file" in result.output
