"""
Execution of an ordered plugin chain.

Each plugin gets a single-shot continuation. The chain is walked in a loop
(a trampoline): a continuation called while its plugin is still running
only flags the step as done and the loop moves on, so long chains do not
grow the call stack. A continuation called after the plugin returned
resumes the walk from the next plugin.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Sequence

from plugin_system.lib.plugins.plugin_base import Plugin

logger = logging.getLogger(__name__)


class Continuation:
    """
    Single-shot "advance" capability handed to one plugin invocation.

    Invoking it more than once is a plugin bug; it is caught by an assertion
    when Python runs without ``-O``.
    """

    __slots__ = ("plugin_id", "_index", "_resume", "_inline", "_called", "_advanced")

    def __init__(self, plugin_id: str, index: int, resume: Callable[[int], Any]):
        self.plugin_id = plugin_id
        self._index = index
        self._resume = resume
        self._inline = True
        self._called = False
        self._advanced = False

    @property
    def called(self) -> bool:
        return self._called

    def __call__(self) -> None:
        assert not self._called, f"continuation of plugin '{self.plugin_id}' invoked more than once"
        self._called = True
        if self._inline:
            self._advanced = True
        else:
            logger.debug(f"Plugin '{self.plugin_id}' continued after returning, resuming chain")
            self._resume(self._index + 1)

    def release(self) -> bool:
        """
        Mark the plugin's process step as finished.

        Returns:
            True if the continuation was invoked while the step was running
        """
        self._inline = False
        return self._advanced


class ChainExecutor:
    """
    Runs an immutable, already ordered sequence of plugins.

    One executor is shared by all requests; it keeps no per-request state
    apart from the tasks resuming async chains.
    """

    def __init__(self, plugins: Sequence[Plugin]):
        self._plugins: tuple[Plugin, ...] = tuple(plugins)
        self._resumed_tasks: set[asyncio.Task] = set()

    @property
    def plugins(self) -> tuple[Plugin, ...]:
        return self._plugins

    def __len__(self) -> int:
        return len(self._plugins)

    def run(self, context: Any, final: Callable[[], Any]) -> None:
        """
        Walk the chain synchronously.

        Args:
            context: Per-request context passed to every plugin
            final: Terminal continuation, invoked when every plugin continued

        Raises:
            TypeError: If a plugin's process step returns an awaitable
        """
        self._walk(context, final, 0)

    def _walk(self, context: Any, final: Callable[[], Any], index: int) -> None:
        plugins = self._plugins
        while index < len(plugins):
            plugin = plugins[index]
            next_ = Continuation(plugin.id, index, lambda i: self._walk(context, final, i))
            result = plugin.process(context, next_)
            if inspect.isawaitable(result):
                if inspect.iscoroutine(result):
                    result.close()
                raise TypeError(
                    f"Plugin '{plugin.id}' returned an awaitable; use the async route handler"
                )
            if not next_.release():
                return
            index += 1
        final()

    async def run_async(
        self,
        context: Any,
        final: Callable[[], Any | Awaitable[Any]],
        on_error: Callable[[BaseException], Any] | None = None,
    ) -> None:
        """
        Walk the chain, awaiting plugins whose process step is a coroutine.

        Exceptions raised while the caller awaits this method propagate to it.
        Once a late continuation moved the rest of the chain into a task,
        nobody awaits it any more; exceptions raised there go to ``on_error``.

        Args:
            context: Per-request context passed to every plugin
            final: Terminal continuation; awaited if it returns an awaitable
            on_error: Called with exceptions raised in a resumed chain
        """
        await self._walk_async(context, final, 0, on_error)

    async def _walk_async(self, context: Any, final: Callable[[], Any], index: int, on_error) -> None:
        plugins = self._plugins
        while index < len(plugins):
            plugin = plugins[index]
            next_ = Continuation(plugin.id, index, lambda i: self._resume_later(context, final, i, on_error))
            result = plugin.process(context, next_)
            if inspect.isawaitable(result):
                await result
            if not next_.release():
                return
            index += 1
        result = final()
        if inspect.isawaitable(result):
            await result

    def _resume_later(self, context: Any, final: Callable[[], Any], index: int, on_error) -> None:
        task = asyncio.get_running_loop().create_task(self._resume(context, final, index, on_error))
        self._resumed_tasks.add(task)
        task.add_done_callback(self._resumed_tasks.discard)

    async def _resume(self, context: Any, final: Callable[[], Any], index: int, on_error) -> None:
        try:
            await self._walk_async(context, final, index, on_error)
        except Exception as e:
            if on_error is None:
                raise
            logger.debug(f"Resumed chain failed at or after index {index}: {e}")
            on_error(e)
