"""
Plugin registry owning the plugin list and its execution order.

The order is computed lazily, the first time a route handler is built or
the order is requested. Once computed, every further registration re-sorts
immediately so the cached order never goes stale.
"""

import logging
import threading
from typing import Any, Awaitable, Callable

from plugin_system.lib.errors import PluginSystemError
from plugin_system.lib.plugins.chain import ChainExecutor
from plugin_system.lib.plugins.plugin_base import Plugin, PluginIds
from plugin_system.lib.plugins.plugin_sort import sort_plugins

logger = logging.getLogger(__name__)

RouteHandler = Callable[[Any, Callable[[], Any]], None]
AsyncRouteHandler = Callable[..., Awaitable[None]]


class PluginSystem:
    """
    Registry and execution entry point for one plugin pipeline.

    Registration and sorting are serialized by a lock. Every sort publishes
    a new immutable ``ChainExecutor``; handlers pick up the current one at
    the start of each invocation, so a request in flight keeps running on
    the order it started with.
    """

    def __init__(self, strict: bool = False):
        """
        Initialize an empty plugin system.

        Args:
            strict: Raise UnknownNodeError for constraints naming plugins
                    that are not registered instead of ignoring them
        """
        self.strict = strict
        self._plugins: list[Plugin] = []
        self._sorted = False
        self._executor = ChainExecutor(())
        self._lock = threading.RLock()

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        """Registered plugins; in execution order once sorted."""
        return tuple(self._plugins)

    @property
    def is_sorted(self) -> bool:
        return self._sorted

    def register(
        self,
        plugin: Plugin,
        before: PluginIds | None = None,
        after: PluginIds | None = None,
    ) -> None:
        """
        Register a plugin.

        If ``before`` or ``after`` are given they replace the values declared
        on the plugin. If the plugins have already been sorted, the order is
        recomputed right away.

        Args:
            plugin: The plugin to register
            before: Id(s) of plugins this plugin must run before
            after: Id(s) of plugins this plugin must run after

        Raises:
            PluginSystemError: If re-sorting fails; the registry and the plugin
                are left unchanged
        """
        declared = (plugin.before, plugin.after)
        if after:
            plugin.after = after
        if before:
            plugin.before = before

        with self._lock:
            candidates = self._plugins + [plugin]
            if self._sorted:
                try:
                    ordered = sort_plugins(candidates, strict=self.strict)
                except PluginSystemError:
                    plugin.before, plugin.after = declared
                    raise
                self._publish(ordered)
            else:
                self._plugins = candidates
        logger.debug(f"Registered plugin: {plugin.id}")

    def _sort(self) -> None:
        """Sort the plugins and mark them as sorted."""
        with self._lock:
            self._publish(sort_plugins(self._plugins, strict=self.strict))

    def _publish(self, ordered: list[Plugin]) -> None:
        self._plugins = ordered
        self._executor = ChainExecutor(ordered)
        self._sorted = True
        logger.info(f"Plugin execution order: {', '.join(p.id for p in ordered) or '(empty)'}")

    def get_execution_order(self) -> list[Plugin]:
        """
        Get the plugins in execution order, sorting them on first use.

        Returns:
            Ordered list of plugins
        """
        with self._lock:
            if not self._sorted:
                self._sort()
            return list(self._plugins)

    def get_executor(self) -> ChainExecutor:
        """Get the executor for the current order, sorting on first use."""
        with self._lock:
            if not self._sorted:
                self._sort()
            return self._executor

    def get_route_handler(self) -> RouteHandler:
        """
        Build a handler that runs all registered plugins in order.

        The plugins are sorted when the handler is built, so ordering errors
        surface here rather than on the first request.

        Returns:
            Function taking (context, next_) that walks the chain; ``next_``
            is called if every plugin continues
        """
        self._sort()

        def handler(context: Any, next_: Callable[[], Any]) -> None:
            self._executor.run(context, next_)

        return handler

    def get_async_route_handler(self) -> AsyncRouteHandler:
        """
        Build an async handler that runs all registered plugins in order.

        Plugins may be coroutine functions; they are awaited in turn. ``next_``
        may be sync or async. ``on_error`` receives exceptions raised after a
        late continuation moved the rest of the chain into a task.

        Returns:
            Coroutine function taking (context, next_, on_error=None)
        """
        self._sort()

        async def handler(
            context: Any,
            next_: Callable[[], Any],
            on_error: Callable[[BaseException], Any] | None = None,
        ) -> None:
            await self._executor.run_async(context, next_, on_error)

        return handler
