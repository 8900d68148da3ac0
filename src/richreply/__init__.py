"""RichReply: turn assistant replies into safe, renderable rich messages.

The package is organised leaf-first:

- ``core``  : settings, the ``Result`` container, and pydantic contracts.
- ``chat``  : reply parsing, block sanitisation, enrichment, plain-text rendering.
- ``media`` : image providers, the page-image media cache, and the resolution cascade.
- ``share`` : resolving one shareable card out of a stored message.
- ``api`` / ``cli`` : thin FastAPI and Typer surfaces over the pipeline.
"""

from __future__ import annotations

__all__ = ["__version__"]
__version__ = "0.3.0"
