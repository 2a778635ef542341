"""Template compilation with a child build.

[TEMPLATE] -> [PYTHON EXPRESSION]

The template is compiled by a child compiler of the current build pass,
so custom loaders registered on the build apply to templates as well.
The result is an expression producing the page markup or a template
function, assigned to a library variable.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

from html_pagegen.build.compilation import OutputOptions
from html_pagegen.errors import SubBuildError
from html_pagegen.templates.evaluator import LIBRARY_VARIABLE
from html_pagegen.types import CompilationResult

if TYPE_CHECKING:
    from html_pagegen.build.compilation import Asset, Compilation

logger = logging.getLogger(__name__)

COMPILER_NAME_PREFIX = "html-pagegen"


def get_compiler_name(context: Path | str, filename: str) -> str:
    """Return the child compiler name, e.g. 'html-pagegen for "index.html"'.

    Uses the shorter of the absolute and the context-relative path.
    """
    absolute_path = os.path.abspath(os.path.join(context, filename))
    relative_path = os.path.relpath(absolute_path, context)
    shorter = absolute_path if len(absolute_path) < len(relative_path) else relative_path
    return f'{COMPILER_NAME_PREFIX} for "{shorter}"'


def _describe_child_errors(errors: list[BaseException | str]) -> str:
    details = []
    for error in errors:
        cause = getattr(error, "error", None)
        details.append(f"{error}:\n{cause}" if cause is not None else str(error))
    return "\n".join(details)


async def compile_template(
    template: str,
    context: Path | str,
    output_filename: str,
    compilation: Compilation,
) -> CompilationResult:
    """Compile a template into an evaluable expression.

    The child output is merged into the parent asset table while the
    child runs; the slot under the output name is restored afterwards
    since the final page replaces it.

    Args:
        template: Loader-chained template request.
        context: Build context directory.
        output_filename: Page filename, may contain placeholders.
        compilation: Current (parent) build pass.

    Returns:
        CompilationResult with the entry hash, resolved output name and
        compiled source.

    Raises:
        SubBuildError: If the child compilation reported errors.
    """
    output_options = OutputOptions(
        filename=output_filename,
        public_path=compilation.public_path,
    )
    assets_before: dict[str, Asset] = dict(compilation.assets)
    compiler_name = get_compiler_name(context, output_filename)
    child_compiler = compilation.create_child_compiler(compiler_name, output_options)

    entries, child_compilation = await child_compiler.run_as_child(
        template, LIBRARY_VARIABLE
    )
    if child_compilation.errors or not entries:
        details = _describe_child_errors(child_compilation.errors)
        raise SubBuildError(f"Child compilation failed:\n{details}")

    output_name = compilation.get_asset_path(
        output_options.filename, hash=child_compilation.hash, chunk=entries[0]
    )
    content = child_compilation.assets[output_name].text()

    if output_name in assets_before:
        compilation.assets[output_name] = assets_before[output_name]
    else:
        compilation.assets.pop(output_name, None)

    logger.debug(
        "Compiled template %s to %s (hash=%s)", template, output_name, entries[0].hash
    )
    return CompilationResult(
        hash=entries[0].hash,
        output_name=output_name,
        content=content,
    )


__all__ = ["COMPILER_NAME_PREFIX", "compile_template", "get_compiler_name"]
