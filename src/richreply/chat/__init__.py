"""Reply-side pipeline: payload extraction, sanitisation, enrichment, rendering.

Import the submodules directly (``richreply.chat.enricher``,
``richreply.chat.safety`` ...); the media package depends on ``safety`` so this
initializer stays import-free.
"""

from __future__ import annotations
