"""Copying extra files (the favicon) into the build output."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from html_pagegen.assets.manifest import append_hash, ensure_trailing_slash
from html_pagegen.build.compilation import Asset
from html_pagegen.errors import ResourceError

if TYPE_CHECKING:
    from html_pagegen.build.compilation import Compilation

logger = logging.getLogger(__name__)


async def add_file_to_assets(filename: str | Path, compilation: Compilation) -> str:
    """Register the content of a file as an output asset.

    The file is registered under its basename and recorded as a file
    dependency of the build.

    Args:
        filename: File path, relative to the build context.
        compilation: Current build pass.

    Returns:
        Basename the asset was registered under.

    Raises:
        ResourceError: If the file cannot be read.
    """
    path = (compilation.context / filename).resolve()
    try:
        source = await asyncio.to_thread(path.read_bytes)
    except OSError as e:
        raise ResourceError(f"could not load file {path}", path=path) from e

    compilation.file_dependencies.append(str(path))
    compilation.assets[path.name] = Asset(source)
    logger.debug("Added %s to assets (%d bytes)", path.name, len(source))
    return path.name


async def resolve_favicon(
    favicon: str | Path, compilation: Compilation, use_hash: bool = False
) -> str:
    """Copy the favicon into the output and return its public URL.

    Raises:
        ResourceError: If the favicon cannot be read.
    """
    basename = await add_file_to_assets(favicon, compilation)
    url = ensure_trailing_slash(compilation.get_public_path()) + basename
    if use_hash:
        return append_hash(url, compilation.hash) or url
    return url


__all__ = ["add_file_to_assets", "resolve_favicon"]
