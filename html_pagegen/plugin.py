"""Page plugin: generates an HTML page referencing the build's assets.

Per build pass the plugin:
1. Starts compiling the template in a child build (make phase)
2. Selects and sorts the chunks, builds the asset manifest (emit phase)
3. Skips hot update passes and passes whose template and assets are
   unchanged
4. Copies the favicon, evaluates and executes the template
5. Generates the asset tags and injects them into the markup
6. Publishes the page as an output asset

Listeners tapped on ``plugin.hooks`` can rewrite the intermediate
results. Any failure is reported on the build and replaced by an error
page; the build itself always completes.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Mapping
from dataclasses import replace
from typing import TYPE_CHECKING, Any

from html_pagegen.assets.chunks import filter_chunks, sort_chunks
from html_pagegen.assets.favicon import resolve_favicon
from html_pagegen.assets.manifest import (
    build_asset_manifest,
    compute_assets_fingerprint,
    is_hot_update_compilation,
)
from html_pagegen.build.compilation import Asset
from html_pagegen.errors import format_error
from html_pagegen.hooks import PluginHooks
from html_pagegen.html.inject import post_process_html
from html_pagegen.html.tags import generate_asset_tags
from html_pagegen.options.schema import PluginOptions
from html_pagegen.templates.compiler import compile_template
from html_pagegen.templates.evaluator import (
    evaluate_compilation_result,
    execute_template,
)
from html_pagegen.templates.loaders import get_full_template_path
from html_pagegen.types import AssetTags, Chunk, CompilationResult, HookEvent

if TYPE_CHECKING:
    from pathlib import Path

    from html_pagegen.build.compilation import Compilation
    from html_pagegen.build.compiler import Compiler

logger = logging.getLogger(__name__)

ERROR_MARKER = "ERROR"


class HtmlPagePlugin:
    """Generates one HTML page per build pass.

    Attributes:
        options: Plugin options (template resolved once applied).
        hooks: Extension points for cooperating code.
        child_compiler_hash: Template hash of the last compilation.
        child_compilation_output_name: Resolved page filename.
        asset_json: Fingerprint of the assets of the last generated page.
        is_compilation_cached: The template hash did not change.
    """

    def __init__(
        self,
        options: PluginOptions | Mapping[str, Any] | None = None,
        hooks: PluginHooks | None = None,
    ) -> None:
        if isinstance(options, PluginOptions):
            self.options = options
        else:
            self.options = PluginOptions.model_validate(dict(options or {}))
        self.hooks = hooks or PluginHooks()
        self.context: Path | None = None
        self.child_compiler_hash: str | None = None
        self.child_compilation_output_name: str | None = None
        self.asset_json: str | None = None
        self.is_compilation_cached = False
        self._compilation_task: asyncio.Task[str] | None = None

    def apply(self, compiler: Compiler) -> None:
        """Resolve the template and filename, then tap the build phases."""
        self.context = compiler.context
        filename = self.options.filename
        # Absolute filenames become relative so the page lands in the output
        if os.path.isabs(filename):
            filename = os.path.relpath(filename, compiler.output_path)
        self.options = self.options.model_copy(
            update={
                "template": get_full_template_path(
                    self.options.template, compiler.context, self.options.compile
                ),
                "filename": filename,
            }
        )
        compiler.hooks.make.append(self.on_make)
        compiler.hooks.emit.append(self.on_emit)

    def on_make(self, compilation: Compilation) -> None:
        """Start compiling the template without blocking the build."""
        self._compilation_task = asyncio.create_task(self._compile(compilation))

    async def _compile(self, compilation: Compilation) -> str:
        try:
            result = await compile_template(
                self.options.template,
                compilation.context,
                self.options.filename,
                compilation,
            )
        except Exception as e:
            report = format_error(e, compilation.context)
            compilation.errors.append(report.to_string())
            logger.error("Template compilation failed for %s: %s", self.options.filename, e)
            result = CompilationResult(
                hash=None,
                output_name=self.options.filename,
                content=report.to_expression_html()
                if self.options.show_errors
                else repr(ERROR_MARKER),
            )

        self.is_compilation_cached = bool(result.hash) and (
            self.child_compiler_hash == result.hash
        )
        self.child_compiler_hash = result.hash
        self.child_compilation_output_name = result.output_name
        return result.content

    def select_chunks(self, compilation: Compilation) -> list[Chunk]:
        """Filter and sort the build's chunks for this page."""
        chunks = filter_chunks(
            compilation.chunks, self.options.chunks, self.options.exclude_chunks
        )
        chunks = sort_chunks(chunks, self.options.chunks_sort_mode, self.options.chunks)
        return self.hooks.run_sync_waterfall(HookEvent.ALTER_CHUNKS, chunks, plugin=self)

    async def on_emit(self, compilation: Compilation) -> None:
        """Generate the page and publish it as an output asset."""
        try:
            html = await self._emit_page(compilation)
        except Exception as e:
            report = format_error(e, compilation.context)
            compilation.errors.append(report.to_string())
            logger.error("Failed to generate %s: %s", self.options.filename, e)
            # Force a full run on the next pass
            self.asset_json = None
            html = report.to_html() if self.options.show_errors else ERROR_MARKER

        if html is None:
            return

        output_name = self.child_compilation_output_name or self.options.filename
        compilation.assets[output_name] = Asset(html)
        logger.info("Generated %s (%d bytes)", output_name, compilation.assets[output_name].size)

        try:
            await self.hooks.run_waterfall(
                HookEvent.AFTER_EMIT,
                False,
                {
                    "html": compilation.assets[output_name],
                    "output_name": output_name,
                    "plugin": self,
                },
                compilation,
            )
        except Exception:
            logger.exception("after_emit listener failed for %s", output_name)

    async def _emit_page(self, compilation: Compilation) -> str | None:
        """Run the emit pipeline; None means nothing to publish."""
        if self._compilation_task is None:
            raise RuntimeError("Template compilation was not started")
        compiled = await self._compilation_task
        output_name = self.child_compilation_output_name or self.options.filename

        chunks = self.select_chunks(compilation)
        assets = build_asset_manifest(compilation, chunks, output_name, self.options.hash)

        # Hot update passes emit the scripts ahead of the full bundle
        if is_hot_update_compilation(assets):
            logger.debug("Skipping %s for hot update pass", output_name)
            return None

        fingerprint = compute_assets_fingerprint(assets)
        if (
            self.is_compilation_cached
            and self.options.cache
            and fingerprint == self.asset_json
        ):
            logger.info("Template and assets unchanged, skipping %s", output_name)
            return None
        self.asset_json = fingerprint

        if self.options.favicon:
            favicon = await resolve_favicon(
                self.options.favicon, compilation, self.options.hash
            )
            assets = replace(assets, favicon=favicon)

        if self.options.template_content is not None:
            template = self.options.template_content
        else:
            template = evaluate_compilation_result(compiled, self.options.template)

        await self.hooks.run_waterfall(
            HookEvent.BEFORE_HTML_GENERATION,
            False,
            {"assets": assets, "output_name": output_name, "plugin": self},
            compilation,
        )

        html = (
            execute_template(template, assets, self.options, compilation)
            if callable(template)
            else template
        )

        result = await self.hooks.run_waterfall(
            HookEvent.BEFORE_HTML_PROCESSING,
            True,
            {"html": html, "assets": assets, "plugin": self, "output_name": output_name},
            compilation,
        )
        html, assets = result["html"], result["assets"]

        asset_tags = generate_asset_tags(assets, self.options.inject, self.options.xhtml)
        result = await self.hooks.run_waterfall(
            HookEvent.ALTER_ASSET_TAGS,
            True,
            {
                "head": asset_tags.head,
                "body": asset_tags.body,
                "plugin": self,
                "chunks": chunks,
                "output_name": output_name,
            },
            compilation,
        )
        html = post_process_html(
            html,
            assets,
            AssetTags(head=result["head"], body=result["body"]),
            self.options,
        )

        result = await self.hooks.run_waterfall(
            HookEvent.AFTER_HTML_PROCESSING,
            True,
            {"html": html, "assets": assets, "plugin": self, "output_name": output_name},
            compilation,
        )
        return result["html"]


__all__ = ["ERROR_MARKER", "HtmlPagePlugin"]
