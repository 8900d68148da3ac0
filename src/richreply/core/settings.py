"""Centralized application configuration using Pydantic Settings (v2).

This module exposes a single, cached `settings` instance that reads from:
- Real environment variables (highest precedence)
- `.env` files at the repository root: .env, .env.local, .env.dev/.env.test/.env.prod

Image providers are opt-in: leaving `UNSPLASH_ACCESS_KEY` / `PEXELS_API_KEY`
unset skips that provider entirely, and the resolution cascade falls through to
a deterministic placeholder.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["dev", "test", "prod"]
LogLevelName = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Settings(BaseSettings):
    """Typed application configuration loaded from env and `.env` files.

    Attributes
    ----------
    environment : EnvName
        Runtime environment flag; maps from `RICHREPLY_ENV`.
    log_level : LogLevelName
        Global log level string; maps from `LOG_LEVEL`.
    unsplash_access_key : Optional[str]
        Credential for the primary image search provider (Unsplash).
    pexels_api_key : Optional[str]
        Credential for the secondary image search provider (Pexels).
    public_base_url : Optional[str]
        Public origin of the deployment, used to absolutize share-preview URLs
        and to publish cached media. Maps from `RICHREPLY_BASE_URL` or
        `PUBLIC_APP_URL`.
    media_cache_dir : str
        Directory holding content-addressed cached images.
    """

    environment: EnvName = Field(default="dev", alias="RICHREPLY_ENV")
    log_level: LogLevelName = Field(default="INFO", alias="LOG_LEVEL")

    unsplash_access_key: str | None = Field(default=None, alias="UNSPLASH_ACCESS_KEY")
    pexels_api_key: str | None = Field(default=None, alias="PEXELS_API_KEY")

    public_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("RICHREPLY_BASE_URL", "PUBLIC_APP_URL"),
    )

    media_cache_dir: str = Field(default="data/media", alias="MEDIA_CACHE_DIR")
    media_max_bytes: int = Field(default=6_000_000, ge=1, alias="MEDIA_MAX_BYTES")

    image_provider_timeout_seconds: float = Field(
        default=4.0, gt=0, alias="IMAGE_PROVIDER_TIMEOUT_SECONDS"
    )
    media_lookup_timeout_seconds: float = Field(
        default=15.0, gt=0, alias="MEDIA_LOOKUP_TIMEOUT_SECONDS"
    )
    page_fetch_timeout_seconds: float = Field(default=10.0, gt=0, alias="PAGE_FETCH_TIMEOUT_SECONDS")
    image_fetch_timeout_seconds: float = Field(
        default=12.0, gt=0, alias="IMAGE_FETCH_TIMEOUT_SECONDS"
    )
    enrich_max_concurrency: int = Field(default=8, ge=1, alias="ENRICH_MAX_CONCURRENCY")

    share_title: str = Field(default="RichReply", alias="SHARE_TITLE")

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local", ".env.dev", ".env.test", ".env.prod"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_dev(self) -> bool:
        """Return True if running in the development environment."""
        return self.environment == "dev"

    @property
    def is_test(self) -> bool:
        """Return True if running in the test environment."""
        return self.environment == "test"

    @property
    def is_prod(self) -> bool:
        """Return True if running in the production environment."""
        return self.environment == "prod"

    def log_level_numeric(self) -> int:
        """Return the numeric logging level corresponding to `self.log_level`."""
        return getattr(logging, self.log_level, logging.INFO)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Create and cache a `Settings` instance.

    We keep this behind an LRU cache so tests can force a rebuild via
    `load_settings.cache_clear()` after mutating `os.environ`.
    """
    os.environ.setdefault("RICHREPLY_ENV", "dev")
    return Settings()


# Export a ready-to-use singleton (import-time read of env / .env files).
settings: Settings = load_settings()


def get_logger(name: str = "richreply") -> logging.Logger:
    """Return a process-global logger configured to `settings.log_level`."""
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        )
        logger.addHandler(handler)
    logger.setLevel(load_settings().log_level_numeric())
    logger.propagate = False
    return logger
