"""Tests for templates/loaders.py module.

Tests request parsing, template path resolution, the built-in loaders
and the loader runner with its cache.
"""

import asyncio
from pathlib import Path

import jinja2
import pytest

from html_pagegen.templates.loaders import (
    LoaderContext,
    LoaderRegistry,
    create_environment,
    default_registry,
    dependency_digest,
    find_template_dependencies,
    get_full_template_path,
    jinja_template_function,
    parse_request,
    python_loader,
    run_loaders,
    template_filename,
)


class TestParseRequest:
    """Tests for parse_request."""

    def test_loader_chain_and_queries(self) -> None:
        """Loaders, loader queries and the resource query are split."""
        request = parse_request("jinja?trim_blocks=true!/site/page.html?lang=en")
        assert request.loaders == [("jinja", "trim_blocks=true")]
        assert request.resource == "/site/page.html"
        assert request.resource_query == "lang=en"

    def test_plain_path(self) -> None:
        """A path without loaders has an empty chain."""
        request = parse_request("page.html")
        assert request.loaders == []
        assert request.resource == "page.html"

    def test_str_rebuilds_request(self) -> None:
        """str() gives back the request."""
        raw = "raw!jinja?autoescape=1!/site/page.html"
        assert str(parse_request(raw)) == raw


class TestGetFullTemplatePath:
    """Tests for get_full_template_path."""

    def test_default_jinja_loader(self, tmp_path: Path) -> None:
        """Markup templates default to the jinja loader."""
        expected = f"jinja!{(tmp_path / 'page.html').resolve()}"
        assert get_full_template_path("page.html", tmp_path) == expected

    def test_default_python_loader(self, tmp_path: Path) -> None:
        """Python templates default to the python loader."""
        result = get_full_template_path("page.py", tmp_path)
        assert result.startswith("python!")

    def test_raw_when_not_compiled(self, tmp_path: Path) -> None:
        """compile=False reads the template verbatim."""
        result = get_full_template_path("page.html", tmp_path, compile=False)
        assert result.startswith("raw!")

    def test_explicit_loader_kept(self, tmp_path: Path) -> None:
        """A configured loader chain is left alone."""
        result = get_full_template_path("raw!sub/page.html", tmp_path)
        assert result == f"raw!{(tmp_path / 'sub' / 'page.html').resolve()}"

    def test_absolute_resource_kept(self, tmp_path: Path) -> None:
        """Absolute resources are not re-rooted."""
        absolute = tmp_path / "page.html"
        result = get_full_template_path(str(absolute), "/elsewhere")
        assert template_filename(result) == str(absolute.resolve())


class TestJinjaTemplateFunction:
    """Tests for the jinja render function."""

    def test_renders_params(self, tmp_path: Path) -> None:
        """Template parameters are available as variables."""
        render = jinja_template_function("Hello {{ name }}", str(tmp_path / "t.html"))
        assert render({"name": "World"}) == "Hello World"

    def test_includes_relative_to_template(self, tmp_path: Path) -> None:
        """Includes resolve against the template directory."""
        (tmp_path / "partial.html").write_text("<p>partial</p>")
        render = jinja_template_function(
            '{% include "partial.html" %}', str(tmp_path / "page.html")
        )
        assert render({}) == "<p>partial</p>"


class TestLoaderRegistry:
    """Tests for LoaderRegistry."""

    def test_default_loaders(self) -> None:
        """The built-in loaders are registered."""
        assert default_registry().names() == ["jinja", "python", "raw"]

    def test_unknown_loader(self) -> None:
        """Looking up an unknown loader raises ValueError."""
        with pytest.raises(ValueError, match="Unknown loader 'pug'"):
            default_registry().get("pug")

    def test_invalid_name(self) -> None:
        """Names may not contain request separators."""
        with pytest.raises(ValueError, match="Invalid loader name"):
            LoaderRegistry().register("a!b", lambda source, ctx: source)


class TestLoaderContext:
    """Tests for LoaderContext."""

    def test_options_parsed_from_query(self, tmp_path: Path) -> None:
        """The loader query is exposed as a mapping."""
        ctx = LoaderContext(
            resource_path=tmp_path / "page.html",
            resource_query="",
            query="trim_blocks=true&x=",
            loaders=["jinja"],
            context=tmp_path,
        )
        assert ctx.options == {"trim_blocks": "true", "x": ""}


class TestRunLoaders:
    """Tests for run_loaders."""

    def test_raw_loader(self, tmp_path: Path) -> None:
        """The raw loader emits a string literal."""
        (tmp_path / "page.html").write_text("<p>hi</p>")
        request = get_full_template_path("raw!page.html", tmp_path)
        source, dependencies = asyncio.run(
            run_loaders(request, default_registry(), tmp_path, {})
        )
        assert source == repr("<p>hi</p>")
        assert str((tmp_path / "page.html").resolve()) in dependencies

    def test_loaders_applied_right_to_left(self, tmp_path: Path) -> None:
        """The rightmost loader sees the file content first."""
        (tmp_path / "page.html").write_text("<p>hi</p>")
        registry = default_registry()
        registry.register("shout", lambda source, ctx: source.upper())
        request = get_full_template_path("raw!shout!page.html", tmp_path)
        source, _ = asyncio.run(run_loaders(request, registry, tmp_path, {}))
        assert source == repr("<P>HI</P>")

    def test_jinja_syntax_error(self, tmp_path: Path) -> None:
        """Template syntax errors fail the loader run."""
        (tmp_path / "page.html").write_text("{% if %}")
        request = get_full_template_path("page.html", tmp_path)
        with pytest.raises(jinja2.TemplateSyntaxError):
            asyncio.run(run_loaders(request, default_registry(), tmp_path, {}))

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing resource raises OSError."""
        request = get_full_template_path("missing.html", tmp_path)
        with pytest.raises(OSError):
            asyncio.run(run_loaders(request, default_registry(), tmp_path, {}))

    def test_cache_reused_until_content_changes(self, tmp_path: Path) -> None:
        """Unchanged files reuse the cached result."""
        page = tmp_path / "page.html"
        page.write_text("one")
        calls: list[str] = []
        registry = default_registry()

        def counting(source: str, ctx: LoaderContext) -> str:
            calls.append(source)
            return repr(source)

        registry.register("counting", counting)
        request = get_full_template_path("counting!page.html", tmp_path)
        cache: dict = {}

        asyncio.run(run_loaders(request, registry, tmp_path, cache))
        asyncio.run(run_loaders(request, registry, tmp_path, cache))
        assert calls == ["one"]

        page.write_text("two")
        source, _ = asyncio.run(run_loaders(request, registry, tmp_path, cache))
        assert calls == ["one", "two"]
        assert source == repr("two")

    def test_cache_invalidated_by_included_file(self, tmp_path: Path) -> None:
        """Editing an included partial reruns the loaders."""
        (tmp_path / "page.html").write_text("{% include 'part.html' %}")
        (tmp_path / "part.html").write_text("one")
        request = get_full_template_path("page.html", tmp_path)
        cache: dict = {}

        _, dependencies = asyncio.run(
            run_loaders(request, default_registry(), tmp_path, cache)
        )
        assert str((tmp_path / "part.html").resolve()) in dependencies
        first_digest = cache["modules"][request][0]

        (tmp_path / "part.html").write_text("two")
        asyncio.run(run_loaders(request, default_registry(), tmp_path, cache))
        assert cache["modules"][request][0] != first_digest


class TestFindTemplateDependencies:
    """Tests for find_template_dependencies."""

    def test_nested_references(self, tmp_path: Path) -> None:
        """Includes, imports and extends are followed recursively."""
        (tmp_path / "layout.html").write_text("{% include 'footer.html' %}")
        (tmp_path / "footer.html").write_text("{% import 'macros.html' as m %}")
        (tmp_path / "macros.html").write_text("{% macro x() %}{% endmacro %}")
        source = "{% extends 'layout.html' %}"
        env = create_environment(tmp_path, {})
        found = find_template_dependencies(env, source, str(tmp_path / "page.html"))
        assert [Path(f).name for f in found] == ["layout.html", "footer.html", "macros.html"]

    def test_missing_and_dynamic_references_skipped(self, tmp_path: Path) -> None:
        """Unresolvable references are left to rendering."""
        source = "{% include 'gone.html' ignore missing %}{% include name %}"
        env = create_environment(tmp_path, {})
        assert find_template_dependencies(env, source, str(tmp_path / "page.html")) == []

    def test_self_reference_recorded_once(self, tmp_path: Path) -> None:
        """Partials including each other do not loop."""
        (tmp_path / "a.html").write_text("{% include 'b.html' %}")
        (tmp_path / "b.html").write_text("{% include 'a.html' %}")
        env = create_environment(tmp_path, {})
        found = find_template_dependencies(
            env, "{% include 'a.html' %}", str(tmp_path / "page.html")
        )
        assert [Path(f).name for f in found] == ["a.html", "b.html"]


class TestDependencyDigest:
    """Tests for dependency_digest."""

    def test_changes_with_content(self, tmp_path: Path) -> None:
        """The digest follows the file contents."""
        path = tmp_path / "a.html"
        path.write_text("one")
        first = dependency_digest([str(path)])
        assert dependency_digest([str(path), str(path)]) == first
        path.write_text("two")
        assert dependency_digest([str(path)]) != first

    def test_missing_file(self, tmp_path: Path) -> None:
        """A deleted dependency changes the digest instead of failing."""
        path = tmp_path / "a.html"
        path.write_text("one")
        first = dependency_digest([str(path)])
        path.unlink()
        assert dependency_digest([str(path)]) != first


class TestPythonLoader:
    """Tests for python_loader."""

    def test_expression_carries_module_digest(self, tmp_path: Path) -> None:
        """Edited modules compile to a different expression."""
        ctx = LoaderContext(
            resource_path=tmp_path / "page.py",
            resource_query="",
            query="",
            loaders=["python"],
            context=tmp_path,
        )
        first = python_loader("VALUE = 1\n", ctx)
        assert first.startswith(f"require({str(tmp_path / 'page.py')!r}, digest=")
        assert python_loader("VALUE = 2\n", ctx) != first
