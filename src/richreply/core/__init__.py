"""Core package initializer for RichReply.

Settings, the ``Result`` container and the pydantic contracts live here:
    from richreply.core.settings import settings, load_settings, Settings, get_logger
"""

from __future__ import annotations

__all__ = ["__doc__"]
