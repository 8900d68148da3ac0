# scripts/smoke.py
"""
Smoke Test Script for the RichReply pipeline.

Usage
-----
1. Enrich the built-in sample reply:
    $ python scripts/smoke.py

2. Enrich a reply stored in a file:
    $ python scripts/smoke.py --file samples/reply.txt

Without UNSPLASH_ACCESS_KEY / PEXELS_API_KEY every card gets a placeholder
image, which is still a valid run.
"""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from pathlib import Path

from dotenv import load_dotenv

from richreply.chat.enricher import enrich_llm_reply
from richreply.chat.rich_message import to_plain_text
from richreply.core.contracts.share import StoredMessage
from richreply.share.resolver import build_share_preview

# --------------------------------------------------------------------------- #
# Environment Setup
# --------------------------------------------------------------------------- #
env_path = Path(".env")
if env_path.exists():
    load_dotenv(env_path)
    print("✅ Loaded .env file")
else:
    print("⚠️  Warning: No .env file found! Images will use placeholders.")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

# --------------------------------------------------------------------------- #
# Test Data
# --------------------------------------------------------------------------- #
DEFAULT_REPLY = """Here are two cozy places for tonight:
```json
{
  "text": "Both are walkable from the river.",
  "options": [
    {"title": "Cafe Nord", "category": "restaurant", "meta": {"price": "$$"},
     "actionUrl": "https://example.com/cafe-nord"},
    {"title": "Harbor Bar", "category": "bar", "subtitle": "Live jazz on Fridays"}
  ]
}
```"""


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run RichReply Smoke Test")
    parser.add_argument("--file", "-f", type=str, help="Path to a raw reply (.txt)")
    args = parser.parse_args()

    # 1. Prepare Input Data
    if args.file:
        input_path = Path(args.file)
        if not input_path.exists():
            print(f"❌ File not found: {input_path}")
            return
        print(f"\n📂 Using input file: {input_path}")
        raw = input_path.read_text(encoding="utf-8")
    else:
        print("\n📝 Using default sample reply (No --file provided)")
        raw = DEFAULT_REPLY

    # 2. Execution Phase
    try:
        print("... Invoking enrich_llm_reply() ...")
        message = asyncio.run(enrich_llm_reply(raw))
    except Exception as exc:
        print(f"\n❌ Enrichment Crashed: {exc}")
        traceback.print_exc()
        return

    # 3. Inspection Phase
    print("\n" + "=" * 60)
    print("✅ Enrichment Finished Successfully!")
    print("=" * 60)

    print("\n📄 Plain text rendering:")
    print(to_plain_text(message))

    print("\n🧱 Wire blocks:")
    print(json.dumps(message.to_wire().get("blocks", []), indent=2, ensure_ascii=False))

    # 4. Share round trip on the first card
    preview = build_share_preview(StoredMessage.from_message(message), 1)
    print("\n🔗 Share preview (card 1):")
    print(json.dumps(preview.to_wire(), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
