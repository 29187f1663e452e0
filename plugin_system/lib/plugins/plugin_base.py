"""
Base classes for pipeline plugins.

A plugin is a named processing step that receives the per-request context
and a continuation. Calling the continuation hands control to the next
plugin in the chain; not calling it ends the chain for that request.
"""

from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Sequence, Union

# A single plugin id or an ordered sequence of ids
PluginIds = Union[str, Sequence[str]]

# Signature of a plugin's processing step
ProcessFunc = Callable[[Any, Callable[[], None]], Union[None, Awaitable[None]]]


def as_id_list(ids: PluginIds | None) -> list[str]:
    """
    Normalize a before/after declaration to a list of ids.

    Args:
        ids: None, a single id, or a sequence of ids

    Returns:
        List of ids, in declaration order
    """
    if not ids:
        return []
    if isinstance(ids, str):
        return [ids]
    return list(ids)


class Plugin(ABC):
    """
    Abstract base class for all pipeline plugins.

    Subclasses set ``id`` and may set ``before`` / ``after`` as class or
    instance attributes. ``before`` and ``after`` can be overwritten when the
    plugin is registered.
    """

    id: str = ""
    before: PluginIds | None = None
    after: PluginIds | None = None

    @abstractmethod
    def process(self, context: Any, next_: Callable[[], None]) -> None | Awaitable[None]:
        """
        Handle one unit of work.

        Call ``next_()`` once to continue with the next plugin, or return
        without calling it to stop the chain. May be a coroutine function
        when the plugin runs in an async pipeline.

        Args:
            context: Per-request context shared by all plugins of the chain
            next_: Continuation that advances the chain
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id!r}>"


class FunctionPlugin(Plugin):
    """Plugin wrapping a plain (sync or async) process function."""

    def __init__(
        self,
        plugin_id: str,
        process: ProcessFunc,
        before: PluginIds | None = None,
        after: PluginIds | None = None,
    ):
        self.id = plugin_id
        self.before = before
        self.after = after
        self._process = process

    def process(self, context: Any, next_: Callable[[], None]) -> None | Awaitable[None]:
        return self._process(context, next_)
