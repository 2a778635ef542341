"""Asset selection module.

This module handles:
- Chunk filtering and sorting
- Asset manifest generation and fingerprinting
- Favicon copying
"""

from html_pagegen.assets.chunks import filter_chunks, sort_chunks
from html_pagegen.assets.manifest import build_asset_manifest

__all__ = ["build_asset_manifest", "filter_chunks", "sort_chunks"]
