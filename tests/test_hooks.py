"""Tests for hooks.py module.

Tests listener registration and waterfall semantics.
"""

import asyncio
from pathlib import Path

import pytest

from html_pagegen.build.compilation import Compilation
from html_pagegen.hooks import PluginHooks
from html_pagegen.types import HookEvent


@pytest.fixture
def compilation(tmp_path: Path) -> Compilation:
    """An empty build pass."""
    return Compilation(context=tmp_path, output_path=tmp_path / "dist")


class TestTap:
    """Tests for PluginHooks.tap."""

    def test_tap_by_name(self) -> None:
        """Events can be named by their string value."""
        hooks = PluginHooks()
        hooks.tap("after_emit", print)
        assert hooks.listeners[HookEvent.AFTER_EMIT] == [print]

    def test_unknown_event(self) -> None:
        """Unknown events are rejected."""
        with pytest.raises(ValueError):
            PluginHooks().tap("before_everything", print)


class TestRunSyncWaterfall:
    """Tests for PluginHooks.run_sync_waterfall."""

    def test_value_passed_through(self) -> None:
        """Each listener receives the previous result."""
        hooks = PluginHooks()
        hooks.tap(HookEvent.ALTER_CHUNKS, lambda chunks, **_: chunks + [2])
        hooks.tap(HookEvent.ALTER_CHUNKS, lambda chunks, **_: chunks + [3])
        assert hooks.run_sync_waterfall(HookEvent.ALTER_CHUNKS, [1]) == [1, 2, 3]

    def test_none_keeps_value(self) -> None:
        """A listener returning None leaves the value alone."""
        hooks = PluginHooks()
        hooks.tap(HookEvent.ALTER_CHUNKS, lambda chunks, **_: None)
        assert hooks.run_sync_waterfall(HookEvent.ALTER_CHUNKS, [1]) == [1]

    def test_extra_arguments(self) -> None:
        """Extra keyword arguments reach every listener."""
        seen = []
        hooks = PluginHooks()
        hooks.tap(HookEvent.ALTER_CHUNKS, lambda chunks, plugin: seen.append(plugin))
        hooks.run_sync_waterfall(HookEvent.ALTER_CHUNKS, [], plugin="p")
        assert seen == ["p"]


class TestRunWaterfall:
    """Tests for PluginHooks.run_waterfall."""

    def test_partial_results_merged(self, compilation: Compilation) -> None:
        """Partial results are merged over the current arguments."""
        hooks = PluginHooks()
        hooks.tap(HookEvent.BEFORE_HTML_PROCESSING, lambda args: {"html": args["html"] + "!"})
        hooks.tap(HookEvent.BEFORE_HTML_PROCESSING, lambda args: {"html": args["html"] + "?"})
        result = asyncio.run(
            hooks.run_waterfall(
                HookEvent.BEFORE_HTML_PROCESSING,
                True,
                {"html": "<p>", "output_name": "index.html"},
                compilation,
            )
        )
        assert result == {"html": "<p>!?", "output_name": "index.html"}
        assert compilation.warnings == []

    def test_async_listener(self, compilation: Compilation) -> None:
        """Coroutine listeners are awaited."""

        async def listener(args: dict) -> dict:
            await asyncio.sleep(0)
            return {"html": "async"}

        hooks = PluginHooks()
        hooks.tap(HookEvent.AFTER_HTML_PROCESSING, listener)
        result = asyncio.run(
            hooks.run_waterfall(
                HookEvent.AFTER_HTML_PROCESSING, True, {"html": "sync"}, compilation
            )
        )
        assert result["html"] == "async"

    def test_required_result_missing(self, compilation: Compilation) -> None:
        """A required event without a result records a deprecation warning."""
        hooks = PluginHooks()
        hooks.tap(HookEvent.ALTER_ASSET_TAGS, lambda args: None)
        result = asyncio.run(
            hooks.run_waterfall(
                HookEvent.ALTER_ASSET_TAGS, True, {"head": [], "body": []}, compilation
            )
        )
        assert result == {"head": [], "body": []}
        assert compilation.warnings == [
            "Using alter_asset_tags without returning a result is deprecated."
        ]

    def test_optional_result_missing(self, compilation: Compilation) -> None:
        """Optional events accept listeners without a result."""
        hooks = PluginHooks()
        hooks.tap(HookEvent.AFTER_EMIT, lambda args: None)
        asyncio.run(
            hooks.run_waterfall(HookEvent.AFTER_EMIT, False, {"html": "x"}, compilation)
        )
        assert compilation.warnings == []

    def test_listener_errors_propagate(self, compilation: Compilation) -> None:
        """Listener errors reach the caller."""

        def listener(args: dict) -> dict:
            raise RuntimeError("listener failed")

        hooks = PluginHooks()
        hooks.tap(HookEvent.BEFORE_HTML_GENERATION, listener)
        with pytest.raises(RuntimeError, match="listener failed"):
            asyncio.run(
                hooks.run_waterfall(
                    HookEvent.BEFORE_HTML_GENERATION, False, {}, compilation
                )
            )
