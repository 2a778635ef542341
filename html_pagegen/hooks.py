"""Extension points of the page plugin.

Cooperating code taps an event with a listener. Listeners of an event
run in registration order, each receiving the argument bundle returned
by the previous one (a waterfall). A listener may be a plain function
or a coroutine function and may return a partial bundle, which is merged
over the original arguments, or None to leave them as they are.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from html_pagegen.types import HookArgs, HookEvent

if TYPE_CHECKING:
    from html_pagegen.build.compilation import Compilation

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


@dataclass
class PluginHooks:
    """Ordered listener lists, one per extension point."""

    listeners: dict[HookEvent, list[Listener]] = field(
        default_factory=lambda: {event: [] for event in HookEvent}
    )

    def tap(self, event: HookEvent | str, listener: Listener) -> None:
        """Register a listener for an event.

        Raises:
            ValueError: If the event is unknown.
        """
        self.listeners[HookEvent(event)].append(listener)

    def run_sync_waterfall(self, event: HookEvent | str, value: Any, **extra: Any) -> Any:
        """Pass a value through synchronous listeners.

        Each listener is called as ``listener(value, **extra)``; a None
        result keeps the current value.
        """
        for listener in self.listeners[HookEvent(event)]:
            result = listener(value, **extra)
            if result is not None:
                value = result
        return value

    async def run_waterfall(
        self,
        event: HookEvent | str,
        requires_result: bool,
        plugin_args: HookArgs,
        compilation: Compilation,
    ) -> HookArgs:
        """Pass the argument bundle through the event's listeners.

        Args:
            event: Extension point.
            requires_result: Record a deprecation warning on the build when
                a listener returns nothing.
            plugin_args: Argument bundle.
            compilation: Current build pass (receives warnings).

        Returns:
            The original arguments updated with the final listener result.
        """
        event = HookEvent(event)
        current: HookArgs = {**plugin_args}
        for listener in self.listeners[event]:
            result = listener(current)
            if inspect.isawaitable(result):
                result = await result
            if not result:
                if requires_result:
                    message = (
                        f"Using {event.value} without returning a result is deprecated."
                    )
                    logger.warning(message)
                    compilation.warnings.append(message)
                continue
            current = {**current, **result}
        return {**plugin_args, **current}


__all__ = ["Listener", "PluginHooks"]
