"""Template loaders and request resolution.

A template request has the form ``loader[?query]!...!path[?query]``.
Loaders are applied right to left: the first one receives the file
content, each following one receives the previous output, and the last
one must produce a Python expression evaluating to markup (str), a
template function, or a module exposing one as ``default``.

Built-in loaders:
- ``jinja``: Jinja2 template, evaluates to a render function
- ``raw``: verbatim markup, evaluates to a string
- ``python``: Python module, evaluates to the loaded module
"""

from __future__ import annotations

import asyncio
import hashlib
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl

import jinja2
import jinja2.meta

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
JINJA_BOOL_OPTIONS = ("autoescape", "trim_blocks", "lstrip_blocks", "keep_trailing_newline")
MISSING_DEPENDENCY = "<missing>"


@dataclass
class LoaderContext:
    """Context handed to each loader.

    Attributes:
        resource_path: Absolute path of the requested file.
        resource_query: Query string of the resource (without '?').
        query: Query string of this loader (without '?').
        loaders: Names of all loaders in the chain, left to right.
        context: Build context directory.
        dependencies: Files the result depends on.
    """

    resource_path: Path
    resource_query: str
    query: str
    loaders: list[str]
    context: Path
    dependencies: list[str] = field(default_factory=list)

    @property
    def options(self) -> dict[str, str]:
        """Loader query parsed into a mapping."""
        return dict(parse_qsl(self.query, keep_blank_values=True))

    def add_dependency(self, path: Path | str) -> None:
        """Record an extra file the result depends on."""
        self.dependencies.append(str(path))


Loader = Callable[[str, LoaderContext], str]


@dataclass
class LoaderRequest:
    """A parsed template request."""

    loaders: list[tuple[str, str]]
    resource: str
    resource_query: str = ""

    def __str__(self) -> str:
        parts = [f"{name}?{query}" if query else name for name, query in self.loaders]
        resource = self.resource
        if self.resource_query:
            resource = f"{resource}?{self.resource_query}"
        return "!".join([*parts, resource])


def parse_request(request: str) -> LoaderRequest:
    """Split a request into its loader chain and resource.

    Args:
        request: Loader-chained request string.

    Returns:
        LoaderRequest instance.
    """
    parts = request.split("!")
    resource, _, resource_query = parts[-1].partition("?")
    loaders = []
    for part in parts[:-1]:
        if not part:
            continue
        name, _, query = part.partition("?")
        loaders.append((name, query))
    return LoaderRequest(loaders=loaders, resource=resource, resource_query=resource_query)


def get_full_template_path(template: str, context: Path | str, compile: bool = True) -> str:
    """Return the template request with a loader and an absolute path.

    Requests without a loader get the default one: ``python`` for .py
    files, otherwise ``jinja``, or ``raw`` when compilation is disabled.

    Args:
        template: Template locator from the options.
        context: Directory relative paths are resolved against.
        compile: Whether the template should be compiled.

    Returns:
        Normalized request string.
    """
    request = parse_request(template)
    if not request.loaders:
        if not compile:
            default = "raw"
        elif request.resource.endswith(".py"):
            default = "python"
        else:
            default = "jinja"
        request.loaders = [(default, "")]
    request.resource = str(Path(context, request.resource).resolve())
    return str(request)


def template_filename(template: str) -> str:
    """Return the file path of a request, without loaders and query."""
    return parse_request(template).resource


def _bool_options(options: dict[str, str]) -> dict[str, bool]:
    return {
        key: value.lower() in TRUE_VALUES
        for key, value in options.items()
        if key in JINJA_BOOL_OPTIONS
    }


def create_environment(search_path: Path | str, options: dict[str, bool]) -> jinja2.Environment:
    """Create the Jinja2 environment used for page templates."""
    return jinja2.Environment(
        loader=jinja2.FileSystemLoader(str(search_path)),
        **options,
    )


def jinja_template_function(
    source: str, filename: str, options: dict[str, bool] | None = None
) -> Callable[[dict[str, Any]], str]:
    """Build the render function of a Jinja2 page template.

    Includes and extends are resolved relative to the template directory.

    Args:
        source: Template source.
        filename: Template file path.
        options: Jinja2 environment flags.

    Returns:
        Function rendering the template with a parameter mapping.
    """
    env = create_environment(Path(filename).parent, options or {})
    template = env.from_string(source)

    def render(template_params: dict[str, Any]) -> str:
        return template.render(template_params)

    return render


def find_template_dependencies(env: jinja2.Environment, source: str, filename: str) -> list[str]:
    """Return the files a Jinja2 template includes, imports or extends.

    References are followed recursively. Dynamic references and targets
    the loader cannot find are skipped; rendering reports those.

    Args:
        env: Environment whose loader resolves the references.
        source: Template source.
        filename: Template file path.

    Returns:
        Absolute file paths in discovery order.
    """
    found: list[str] = []
    pending = [(source, filename)]
    seen = {filename}
    while pending:
        template_source, template_file = pending.pop(0)
        ast = env.parse(template_source, filename=template_file)
        for name in jinja2.meta.find_referenced_templates(ast):
            if name is None:
                continue
            try:
                partial_source, partial_file, _ = env.loader.get_source(env, name)
            except jinja2.TemplateNotFound:
                logger.debug("Template reference %r not found from %s", name, template_file)
                continue
            if partial_file is None or partial_file in seen:
                continue
            seen.add(partial_file)
            found.append(partial_file)
            pending.append((partial_source, partial_file))
    return found


def jinja_loader(source: str, ctx: LoaderContext) -> str:
    """Compile a Jinja2 template into a render function expression.

    The template is parsed here so that syntax errors fail the build.
    Referenced partials and layouts become dependencies.
    """
    options = _bool_options(ctx.options)
    env = create_environment(ctx.resource_path.parent, options)
    env.parse(source, name=ctx.resource_path.name, filename=str(ctx.resource_path))
    for dependency in find_template_dependencies(env, source, str(ctx.resource_path)):
        ctx.add_dependency(dependency)
    return (
        f"require({__name__!r}).jinja_template_function("
        f"{source!r}, {str(ctx.resource_path)!r}, {options!r})"
    )


def raw_loader(source: str, ctx: LoaderContext) -> str:
    """Emit the source as a markup string literal."""
    return repr(source)


def python_loader(source: str, ctx: LoaderContext) -> str:
    """Emit a require of the template module.

    The module digest is part of the expression, so an edited module
    compiles to a different result.
    """
    digest = hashlib.sha256(source.encode("utf-8")).hexdigest()
    return f"require({str(ctx.resource_path)!r}, digest={digest!r})"


class LoaderRegistry:
    """Named template loaders shared by a build and its child builds."""

    def __init__(self, loaders: dict[str, Loader] | None = None) -> None:
        self._loaders: dict[str, Loader] = dict(loaders or {})

    def register(self, name: str, loader: Loader) -> None:
        """Register (or replace) a loader."""
        if not name or "!" in name or "?" in name:
            raise ValueError(f"Invalid loader name: {name!r}")
        self._loaders[name] = loader

    def get(self, name: str) -> Loader:
        """Look up a loader by name.

        Raises:
            ValueError: If no loader is registered under the name.
        """
        try:
            return self._loaders[name]
        except KeyError:
            raise ValueError(
                f"Unknown loader '{name}'. Available: {', '.join(self.names())}"
            ) from None

    def names(self) -> list[str]:
        return sorted(self._loaders)


def default_registry() -> LoaderRegistry:
    """Create a registry holding the built-in loaders."""
    return LoaderRegistry(
        {
            "jinja": jinja_loader,
            "raw": raw_loader,
            "python": python_loader,
        }
    )


def dependency_digest(paths: list[str]) -> str:
    """Return a sha256 over the contents of the given files.

    Duplicates are hashed once; a missing file hashes as a marker so
    that deleting a dependency changes the digest.
    """
    digest = hashlib.sha256()
    for path in dict.fromkeys(paths):
        digest.update(path.encode("utf-8"))
        try:
            digest.update(Path(path).read_bytes())
        except FileNotFoundError:
            digest.update(MISSING_DEPENDENCY.encode("utf-8"))
    return digest.hexdigest()


async def run_loaders(
    request: str,
    registry: LoaderRegistry,
    context: Path,
    cache: dict[str, Any],
) -> tuple[str, list[str]]:
    """Read the requested file and run it through its loader chain.

    Results are cached per request in the given cache and reused while
    the contents of the file and of every recorded dependency are unchanged.

    Args:
        request: Loader-chained request.
        registry: Loaders to use.
        context: Build context directory.
        cache: Intermediate cache of the calling compilation.

    Returns:
        Tuple of (expression source, file dependencies).

    Raises:
        ValueError: If a loader is unknown or the chain is empty.
        OSError: If the resource cannot be read.
    """
    parsed = parse_request(request)
    if not parsed.loaders:
        raise ValueError(f"No loader configured for request: {request}")
    resource_path = Path(context, parsed.resource)

    modules: dict[str, tuple[str, str, list[str]]] = cache.setdefault("modules", {})
    cached = modules.get(request)
    if cached is not None:
        digest = await asyncio.to_thread(dependency_digest, cached[2])
        if digest == cached[0]:
            logger.debug("Reusing cached module for %s", request)
            return cached[1], list(cached[2])

    source = await asyncio.to_thread(resource_path.read_text, encoding="utf-8")
    names = [name for name, _ in parsed.loaders]
    dependencies = [str(resource_path)]
    for name, query in reversed(parsed.loaders):
        loader = registry.get(name)
        ctx = LoaderContext(
            resource_path=resource_path,
            resource_query=parsed.resource_query,
            query=query,
            loaders=names,
            context=context,
        )
        source = loader(source, ctx)
        dependencies.extend(ctx.dependencies)

    digest = await asyncio.to_thread(dependency_digest, dependencies)
    modules[request] = (digest, source, dependencies)
    return source, list(dependencies)


__all__ = [
    "Loader",
    "LoaderContext",
    "LoaderRegistry",
    "LoaderRequest",
    "default_registry",
    "dependency_digest",
    "find_template_dependencies",
    "get_full_template_path",
    "jinja_loader",
    "jinja_template_function",
    "parse_request",
    "python_loader",
    "raw_loader",
    "run_loaders",
    "template_filename",
]
