"""Evaluation and execution of compiled templates.

This module handles:
- Evaluating the child build output in an isolated namespace
- Enforcing that a template yields markup or a template function
- Invoking template functions with the page parameters
"""

from __future__ import annotations

import builtins
import importlib
import importlib.util
import logging
from collections.abc import Callable
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from html_pagegen.build.compilation import compute_hash
from html_pagegen.errors import (
    SubBuildError,
    TemplateContractError,
    TemplateExecutionError,
)
from html_pagegen.templates.loaders import template_filename

if TYPE_CHECKING:
    from html_pagegen.build.compilation import Compilation
    from html_pagegen.options.schema import PluginOptions
    from html_pagegen.types import AssetManifest

logger = logging.getLogger(__name__)

# Variable the child build assigns the template to
LIBRARY_VARIABLE = "HTML_PAGEGEN_RESULT"
# Flag visible to template code during evaluation
EVALUATION_FLAG = "HTML_PAGEGEN_PLUGIN"

TemplateResult = str | Callable[..., Any]


def require(request: str, digest: str = "") -> ModuleType:
    """Import a module by dotted name or load one from a file path.

    File modules are loaded fresh on every call and are not added to
    ``sys.modules``, so edited templates are picked up by the next pass.
    The content digest, when given, is part of the module name.

    Raises:
        ImportError: If the module cannot be found or loaded.
    """
    if request.endswith(".py") or "/" in request or "\\" in request:
        path = Path(request).resolve()
        spec = importlib.util.spec_from_file_location(
            f"html_pagegen_template_{compute_hash(str(path) + digest)}", path
        )
        if spec is None or spec.loader is None:
            raise ImportError(f"Cannot load template module: {path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(request)


def evaluate_compilation_result(source: str | None, template: str) -> TemplateResult:
    """Evaluate the compiled template source.

    Args:
        source: Child build output (``HTML_PAGEGEN_RESULT = <expression>``).
        template: Template request, used for error messages and filenames.

    Returns:
        Markup string or template function.

    Raises:
        SubBuildError: If no source was supplied.
        TemplateContractError: If the result is neither str nor callable.
        Exception: Any error raised while evaluating the source.
    """
    if not source:
        raise SubBuildError("The child compilation didn't provide a result")

    expression = source.replace(f"{LIBRARY_VARIABLE} =", "", 1).strip()
    filename = template_filename(template)
    sandbox: dict[str, Any] = {
        "__builtins__": builtins,
        EVALUATION_FLAG: True,
        "require": require,
    }
    code = compile(expression, filename, "eval")
    result = eval(code, sandbox)  # noqa: S307

    if isinstance(result, ModuleType) and getattr(result, "default", None):
        result = result.default

    if isinstance(result, str) or callable(result):
        return result
    raise TemplateContractError(
        f'The loader "{template}" didn\'t return html.', template=template
    )


def build_template_params(
    assets: AssetManifest,
    options: PluginOptions,
    compilation: Compilation,
) -> dict[str, Any]:
    """Assemble the parameters a template function is called with.

    Custom option keys are also exposed at the top level.
    """
    return {
        **options.custom,
        "compilation": compilation,
        "stats": compilation.get_stats(),
        "build_config": compilation.options,
        "html_pagegen": {
            "files": assets,
            "options": options,
        },
    }


def execute_template(
    template_function: Callable[..., Any],
    assets: AssetManifest,
    options: PluginOptions,
    compilation: Compilation,
) -> Any:
    """Invoke a template function once to obtain the page markup.

    Args:
        template_function: Function returned by the template.
        assets: Asset manifest of the page.
        options: Plugin options.
        compilation: Current build pass.

    Returns:
        Whatever the template returned (checked later for str).

    Raises:
        TemplateExecutionError: If the template raises.
    """
    params = build_template_params(assets, options, compilation)
    try:
        return template_function(params)
    except Exception as e:
        compilation.errors.append(f"Template execution failed: {e}")
        logger.error("Template execution failed: %s", e)
        raise TemplateExecutionError(f"Template execution failed: {e}") from e


__all__ = [
    "EVALUATION_FLAG",
    "LIBRARY_VARIABLE",
    "build_template_params",
    "evaluate_compilation_result",
    "execute_template",
    "require",
]
