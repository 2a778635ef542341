"""Host build model: compilations, output assets and child compilers.

This module handles:
- The output asset table of one build pass
- Public path and [hash]-style placeholder resolution
- Build statistics snapshots
- Child compilers that turn a template request into a library asset

A Compilation is the state of one build pass. Chunk production is not
modelled: chunks are handed in by the caller.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import re
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from html_pagegen.types import Chunk

if TYPE_CHECKING:
    from html_pagegen.templates.loaders import LoaderRegistry

logger = logging.getLogger(__name__)

# Length of build and chunk hashes
HASH_LENGTH = 20

PLACEHOLDER_PATTERN = re.compile(r"\[(hash|chunkhash|name|id)(?::(\d+))?\]")


class ModuleBuildError(Exception):
    """Raised inside a child compilation when a module fails to build."""

    def __init__(self, resource: str, error: BaseException) -> None:
        super().__init__(f"Module build failed: {resource}")
        self.resource = resource
        self.error = error


@dataclass
class Asset:
    """An output asset held in memory."""

    source: str | bytes

    def data(self) -> bytes:
        """Asset content as bytes."""
        if isinstance(self.source, bytes):
            return self.source
        return self.source.encode("utf-8")

    def text(self) -> str:
        """Asset content as text."""
        if isinstance(self.source, str):
            return self.source
        return self.source.decode("utf-8")

    @property
    def size(self) -> int:
        return len(self.data())


@dataclass
class FileAsset(Asset):
    """An output asset already present in the output directory."""

    path: Path | None = None

    def data(self) -> bytes:
        if self.path is not None:
            return self.path.read_bytes()
        return super().data()

    def text(self) -> str:
        return self.data().decode("utf-8")

    @property
    def size(self) -> int:
        if self.path is not None:
            return self.path.stat().st_size
        return len(self.data())


@dataclass
class OutputOptions:
    """Output settings of a child compiler."""

    filename: str
    public_path: str | None = None


def compute_hash(data: str) -> str:
    """Compute a short content hash."""
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:HASH_LENGTH]


def compute_build_hash(chunks: list[Chunk]) -> str:
    """Derive the build hash from the chunk snapshot."""
    canonical = json.dumps(
        [[c.id, list(c.files), c.hash] for c in chunks],
        separators=(",", ":"),
    )
    return compute_hash(canonical)


def discover_output_assets(output_path: Path) -> dict[str, Asset]:
    """Register the files found under an output directory as assets.

    Args:
        output_path: Build output directory.

    Returns:
        Mapping of POSIX relative path to FileAsset.
    """
    if not output_path.is_dir():
        logger.debug("Output directory does not exist yet: %s", output_path)
        return {}
    assets: dict[str, Asset] = {}
    for path in sorted(output_path.rglob("*")):
        if not path.is_file():
            continue
        assets[path.relative_to(output_path).as_posix()] = FileAsset(
            source=b"", path=path
        )
    logger.debug("Discovered %d output assets in %s", len(assets), output_path)
    return assets


class Compilation:
    """State of one build pass.

    Attributes:
        context: Base directory requests are resolved against.
        output_path: Directory outputs are written to.
        public_path: Configured public path (None when unset).
        chunks: Chunk snapshot of this pass.
        hash: Build hash.
        assets: Output asset table, keyed by filename.
        errors: Build errors; a non-empty list does not abort the pass.
        warnings: Build warnings.
        file_dependencies: Files the pass read.
        cache: Intermediate cache shared across passes.
        loaders: Template loader registry.
        options: Build configuration snapshot.
        name: Compiler name for child compilations.
    """

    def __init__(
        self,
        context: Path | str,
        output_path: Path | str,
        chunks: list[Chunk] | None = None,
        public_path: str | None = None,
        hash: str | None = None,
        assets: dict[str, Asset] | None = None,
        cache: dict[str, Any] | None = None,
        loaders: LoaderRegistry | None = None,
        options: dict[str, Any] | None = None,
        name: str | None = None,
    ) -> None:
        if loaders is None:
            from html_pagegen.templates.loaders import default_registry

            loaders = default_registry()
        self.context = Path(context)
        self.output_path = Path(output_path)
        self.chunks: list[Chunk] = list(chunks or [])
        self.public_path = public_path
        self.hash = hash or compute_build_hash(self.chunks)
        self.assets: dict[str, Asset] = dict(assets or {})
        self.errors: list[BaseException | str] = []
        self.warnings: list[BaseException | str] = []
        self.file_dependencies: list[str] = []
        self.cache: dict[str, Any] = cache if cache is not None else {}
        self.loaders = loaders
        self.options: dict[str, Any] = options or {}
        self.name = name

    def get_public_path(self, hash: str | None = None) -> str:
        """Configured public path with placeholders resolved ('' if unset)."""
        if self.public_path is None:
            return ""
        return self.get_asset_path(self.public_path, hash=hash)

    def get_asset_path(
        self,
        filename: str,
        hash: str | None = None,
        chunk: Chunk | None = None,
    ) -> str:
        """Resolve [hash], [chunkhash], [name] and [id] placeholders.

        A ``:N`` suffix truncates hashes, e.g. ``[hash:8]``. Placeholders
        without a value are left as they are.
        """
        build_hash = hash or self.hash

        def replace(match: re.Match[str]) -> str:
            kind, length = match.group(1), match.group(2)
            if kind == "hash":
                value: str | None = build_hash
            elif kind == "chunkhash":
                value = chunk.hash if chunk else None
            elif kind == "name":
                value = chunk.name if chunk else None
            else:
                value = str(chunk.id) if chunk else None
            if value is None:
                return match.group(0)
            if length and kind in ("hash", "chunkhash"):
                value = value[: int(length)]
            return value

        return PLACEHOLDER_PATTERN.sub(replace, filename)

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of the pass as plain data."""
        return {
            "hash": self.hash,
            "public_path": self.public_path,
            "output_path": str(self.output_path),
            "chunks": [
                {
                    **asdict(chunk),
                    "names": list(chunk.names),
                    "files": list(chunk.files),
                    "parents": sorted(chunk.parents),
                }
                for chunk in self.chunks
            ],
            "assets": [
                {"name": name, "size": asset.size}
                for name, asset in sorted(self.assets.items())
            ],
            "errors": [str(e) for e in self.errors],
            "warnings": [str(w) for w in self.warnings],
        }

    def create_child_compiler(
        self, name: str, output_options: OutputOptions
    ) -> ChildCompiler:
        """Create a compiler that runs a nested build inside this pass."""
        return ChildCompiler(self, name, output_options)


class ChildCompiler:
    """Nested build compiling one request into a library asset.

    The child shares the parent's loader registry but gets its own
    intermediate cache, stored in the parent cache under its name. Its
    output asset is emitted as ``<library> = <expression>``.
    """

    def __init__(
        self, parent: Compilation, name: str, output_options: OutputOptions
    ) -> None:
        self.parent = parent
        self.name = name
        self.output_options = output_options
        self.context = parent.context

    def _child_cache(self) -> dict[str, Any]:
        cache = self.parent.cache.setdefault(self.name, {})
        if not isinstance(cache, dict):
            raise TypeError(f"Cache slot {self.name!r} is not a mapping")
        return cache

    async def run_as_child(
        self, entry: str, library: str
    ) -> tuple[list[Chunk], Compilation]:
        """Compile the entry request and merge the output into the parent.

        Args:
            entry: Loader-chained request for the entry module.
            library: Variable name the result is assigned to.

        Returns:
            Tuple of (entry chunks, child compilation). Failures are
            reported through the child compilation's errors.
        """
        from html_pagegen.templates.loaders import dependency_digest, run_loaders

        child = Compilation(
            context=self.context,
            output_path=self.parent.output_path,
            public_path=self.output_options.public_path,
            hash=None,
            cache=self._child_cache(),
            loaders=self.parent.loaders,
            options=self.parent.options,
            name=self.name,
        )
        logger.debug("Running child compiler %s for %s", self.name, entry)

        try:
            expression, dependencies = await run_loaders(
                entry, child.loaders, self.context, child.cache
            )
        except Exception as e:
            child.errors.append(ModuleBuildError(entry, e))
            return [], child

        child.file_dependencies.extend(dependencies)
        source = f"{library} = {expression}\n"
        # Included files change the result without changing the expression
        digest = await asyncio.to_thread(dependency_digest, dependencies)
        child.hash = compute_hash(self.name + source + digest)
        entry_chunk = Chunk(
            id=0,
            names=(library,),
            size=len(source),
            hash=compute_hash(source + digest),
            initial=True,
            entry=True,
        )
        output_name = child.get_asset_path(
            self.output_options.filename, hash=child.hash, chunk=entry_chunk
        )
        entry_chunk = replace(entry_chunk, files=(output_name,))
        child.chunks = [entry_chunk]
        child.assets[output_name] = Asset(source)

        for name, asset in child.assets.items():
            self.parent.assets[name] = asset
        self.parent.file_dependencies.extend(child.file_dependencies)
        return [entry_chunk], child


__all__ = [
    "HASH_LENGTH",
    "Asset",
    "ChildCompiler",
    "Compilation",
    "FileAsset",
    "ModuleBuildError",
    "OutputOptions",
    "compute_build_hash",
    "compute_hash",
    "discover_output_assets",
]
