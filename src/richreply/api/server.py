"""
ASGI Entry Point for the RichReply API.

This module exposes the `app` object required by ASGI servers (Uvicorn/Gunicorn).
It loads `.env` before the application factory runs so cached settings see it.

Usage
-----
Run via the module entry point:
    $ python -m richreply.api.server

Or via uvicorn directly:
    $ uvicorn richreply.api.server:app --reload
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from richreply.api.app import create_app
from richreply.core.settings import Settings, load_settings

load_dotenv(dotenv_path=Path(".env"))

app = create_app()


def _mask(value: str | None) -> str:
    return f"✅ {value[:8]}..." if value else "❌ unset"


def config_report(config: Settings) -> list[str]:
    """
    Describe what the enrichment pipeline will use at runtime.

    Provider keys are masked. Missing keys are not fatal: the cascade skips
    the provider and cards fall back to placeholder images.
    """
    base_url = config.public_base_url or "❌ unset (no media mirroring)"
    return [
        f"{'UNSPLASH_ACCESS_KEY':<34} : {_mask(config.unsplash_access_key)}",
        f"{'PEXELS_API_KEY':<34} : {_mask(config.pexels_api_key)}",
        f"{'RICHREPLY_BASE_URL / PUBLIC_APP_URL':<34} : {base_url}",
        f"{'MEDIA_CACHE_DIR':<34} : {config.media_cache_dir}",
    ]


def main() -> None:
    """Run the API server locally for development."""
    config = load_settings()
    print(f"{'[ RichReply config (' + config.environment + ') ]':=^60}")
    for line in config_report(config):
        print(line)
    print("=" * 60 + "\n")

    uvicorn.run(
        "richreply.api.server:app",
        host="0.0.0.0",
        port=8000,
        reload=config.is_dev,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
