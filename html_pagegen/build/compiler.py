"""Host build runner.

This module handles:
- Registering plugins and their make/emit phase callbacks
- Running build passes (make, then emit) over a chunk snapshot
- Writing generated assets to the output directory

The intermediate cache and the loader registry live on the Compiler and
are shared by every pass, so repeated runs behave like watch rebuilds.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from html_pagegen.build.compilation import (
    Compilation,
    FileAsset,
    discover_output_assets,
)
from html_pagegen.templates.loaders import LoaderRegistry, default_registry
from html_pagegen.types import Chunk

logger = logging.getLogger(__name__)

PhaseCallback = Callable[[Compilation], Awaitable[None] | None]


class Plugin(Protocol):
    """Anything that can hook into a Compiler."""

    def apply(self, compiler: Compiler) -> None: ...


@dataclass
class CompilerHooks:
    """Phase callbacks, called in registration order.

    Attributes:
        make: Prepare phase; callbacks may start background work.
        emit: Emit phase; callbacks add or replace output assets.
    """

    make: list[PhaseCallback] = field(default_factory=list)
    emit: list[PhaseCallback] = field(default_factory=list)

    async def call(self, phase: str, compilation: Compilation) -> None:
        """Run the callbacks of a phase sequentially."""
        for callback in getattr(self, phase):
            result = callback(compilation)
            if inspect.isawaitable(result):
                await result


class Compiler:
    """Runs build passes for a fixed output location.

    Attributes:
        context: Base directory requests are resolved against.
        output_path: Directory outputs are written to.
        chunks: Chunk snapshot used by the next pass.
        public_path: Configured public path (None for relative URLs).
        hash: Fixed build hash (derived from the chunks when None).
        hooks: Phase callbacks.
        cache: Intermediate cache shared across passes.
        loaders: Template loaders shared across passes.
        options: Build configuration exposed to templates.
    """

    def __init__(
        self,
        context: Path | str,
        output_path: Path | str,
        chunks: list[Chunk] | None = None,
        public_path: str | None = None,
        hash: str | None = None,
        loaders: LoaderRegistry | None = None,
        options: dict[str, Any] | None = None,
    ) -> None:
        self.context = Path(context).resolve()
        output = Path(output_path)
        self.output_path = output if output.is_absolute() else self.context / output
        self.chunks: list[Chunk] = list(chunks or [])
        self.public_path = public_path
        self.hash = hash
        self.hooks = CompilerHooks()
        self.cache: dict[str, Any] = {}
        self.loaders = loaders or default_registry()
        self.options: dict[str, Any] = options or {
            "context": str(self.context),
            "output_path": str(self.output_path),
            "public_path": public_path,
        }

    def apply(self, *plugins: Plugin) -> None:
        """Let plugins register their callbacks."""
        for plugin in plugins:
            plugin.apply(self)

    def new_compilation(self) -> Compilation:
        """Create the state of a new pass.

        Files already present in the output directory are registered as
        assets of the pass.
        """
        return Compilation(
            context=self.context,
            output_path=self.output_path,
            chunks=self.chunks,
            public_path=self.public_path,
            hash=self.hash,
            assets=discover_output_assets(self.output_path),
            cache=self.cache,
            loaders=self.loaders,
            options=self.options,
        )

    async def run(self) -> Compilation:
        """Run one build pass.

        Returns:
            The finished Compilation. Errors are reported through its
            ``errors`` list rather than raised.
        """
        compilation = self.new_compilation()
        logger.info(
            "Starting build pass (hash=%s, %d chunks)",
            compilation.hash,
            len(compilation.chunks),
        )
        await self.hooks.call("make", compilation)
        await self.hooks.call("emit", compilation)
        logger.info(
            "Build pass finished with %d error(s) and %d warning(s)",
            len(compilation.errors),
            len(compilation.warnings),
        )
        return compilation

    def emit_assets(self, compilation: Compilation) -> list[Path]:
        """Write the assets generated by a pass to the output directory.

        Files discovered in the output directory are not rewritten.

        Returns:
            Paths of the written files.
        """
        written: list[Path] = []
        for name, asset in sorted(compilation.assets.items()):
            if isinstance(asset, FileAsset):
                continue
            target = self.output_path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(asset.data())
            logger.info("Wrote %s (%d bytes)", target, asset.size)
            written.append(target)
        return written


__all__ = ["Compiler", "CompilerHooks", "PhaseCallback", "Plugin"]
