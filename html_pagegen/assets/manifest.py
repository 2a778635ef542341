"""Asset manifest generation and fingerprinting.

This module handles:
- Resolving the public path assets are served under
- Building the asset manifest of a page from the selected chunks
- Cache-busting hash suffixes
- Hot update detection
- Fingerprints of the referenced asset files for result caching
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from collections.abc import Iterable, Sequence
from pathlib import PurePath
from typing import TYPE_CHECKING

from html_pagegen.types import AssetManifest, Chunk, ChunkAssets

if TYPE_CHECKING:
    from html_pagegen.build.compilation import Compilation

logger = logging.getLogger(__name__)

# Stylesheets may carry a query string, e.g. 'main.css?1e7cac4e'
CSS_PATTERN = re.compile(r"\.css($|\?)")
HOT_UPDATE_PATTERN = re.compile(r"\.hot-update\.js$")
APPCACHE_EXTENSION = ".appcache"


def _with_hash(url: str, hash: str) -> str:
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{hash}"


def append_hash(url: str | None, hash: str) -> str | None:
    """Append a cache-busting hash as a query string.

    Args:
        url: URL to extend; falsy values are returned unchanged.
        hash: Hash to append.

    Returns:
        ``url?hash``, or ``url&hash`` when url already has a query.
    """
    if not url:
        return url
    return _with_hash(url, hash)


def ensure_trailing_slash(path: str) -> str:
    """Add a trailing slash to non-empty paths."""
    if path and not path.endswith("/"):
        return path + "/"
    return path


def resolve_public_path(compilation: Compilation, output_name: str) -> str:
    """Return the URL prefix of build outputs as seen from the page.

    The configured public path wins. Otherwise the prefix is the relative
    path from the page's directory to the output root, with forward
    slashes.

    Args:
        compilation: Current build pass.
        output_name: Page filename relative to the output root.

    Returns:
        Public path, ending with '/' unless empty.
    """
    if compilation.public_path is not None:
        public_path = compilation.get_public_path()
    else:
        output_root = os.path.abspath(compilation.output_path)
        page_dir = os.path.dirname(os.path.join(output_root, output_name))
        relative = os.path.relpath(output_root, page_dir)
        public_path = "" if relative == os.curdir else PurePath(relative).as_posix()
    return ensure_trailing_slash(public_path)


def find_appcache_manifest(asset_names: Iterable[str]) -> str | None:
    """Return the first asset with the .appcache extension."""
    for name in asset_names:
        if os.path.splitext(name)[1] == APPCACHE_EXTENSION:
            return name
    return None


def build_asset_manifest(
    compilation: Compilation,
    chunks: Sequence[Chunk],
    output_name: str,
    use_hash: bool = False,
) -> AssetManifest:
    """Build the asset manifest of a page.

    Args:
        compilation: Current build pass.
        chunks: Selected chunks, already filtered and sorted.
        output_name: Page filename relative to the output root.
        use_hash: Append the build hash to every URL.

    Returns:
        AssetManifest with one js entry per chunk and deduplicated css.
    """
    public_path = resolve_public_path(compilation, output_name)
    manifest = find_appcache_manifest(compilation.assets)
    if use_hash:
        manifest = append_hash(manifest, compilation.hash)

    assets = AssetManifest(public_path=public_path, manifest=manifest)
    seen_css: set[str] = set()
    for chunk in chunks:
        name = chunk.name or str(chunk.id)
        if not chunk.files:
            logger.debug("Skipping chunk %s without output files", name)
            continue

        files = [public_path + f for f in chunk.files]
        if use_hash:
            files = [_with_hash(f, compilation.hash) for f in files]

        # The first file is the entry; the rest may be source maps or css
        entry = files[0]
        css = [f for f in files if CSS_PATTERN.search(f)]
        assets.chunks[name] = ChunkAssets(
            entry=entry, size=chunk.size, hash=chunk.hash, css=css
        )
        assets.js.append(entry)
        for stylesheet in css:
            if stylesheet not in seen_css:
                seen_css.add(stylesheet)
                assets.css.append(stylesheet)

    logger.debug(
        "Built asset manifest for %s: %d js, %d css",
        output_name,
        len(assets.js),
        len(assets.css),
    )
    return assets


def is_hot_update_compilation(assets: AssetManifest) -> bool:
    """Return True if every script is a hot update file."""
    return bool(assets.js) and all(HOT_UPDATE_PATTERN.search(js) for js in assets.js)


def get_asset_files(assets: AssetManifest) -> list[str]:
    """Return a sorted, unique list of every URL the manifest references.

    Per-chunk details are left out; the public path is included.
    """
    files: set[str] = set()
    for value in (assets.public_path, assets.js, assets.css, assets.manifest, assets.favicon):
        if not value:
            continue
        if isinstance(value, str):
            files.add(value)
        else:
            files.update(value)
    return sorted(files)


def compute_assets_fingerprint(assets: AssetManifest) -> str:
    """Compute a fingerprint of the manifest's asset files.

    Returns:
        Fingerprint as hex string (sha256:...).
    """
    canonical_json = json.dumps(get_asset_files(assets), separators=(",", ":"))
    return f"sha256:{hashlib.sha256(canonical_json.encode('utf-8')).hexdigest()}"


__all__ = [
    "APPCACHE_EXTENSION",
    "append_hash",
    "build_asset_manifest",
    "compute_assets_fingerprint",
    "ensure_trailing_slash",
    "find_appcache_manifest",
    "get_asset_files",
    "is_hot_update_compilation",
    "resolve_public_path",
]
