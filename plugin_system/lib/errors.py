"""
Exceptions raised while building the plugin execution order.

All of them are construction-time failures: they surface from
registration or from building a route handler and are meant to abort
pipeline setup, not to be handled per request.
"""

from typing import Any


class PluginSystemError(Exception):
    """Base class for plugin ordering errors."""


class DuplicateIdError(PluginSystemError):
    """
    Two registered plugins share the same id.

    Attributes:
        plugin_id -- the id that occurs more than once
    """
    def __init__(self, plugin_id: str):
        super().__init__(f'Duplicate plugin id: "{plugin_id}"')
        self.plugin_id = plugin_id


class CyclicDependencyError(PluginSystemError):
    """
    The before/after constraints form a cycle.

    Attributes:
        node -- a node that is part of the cycle
    """
    def __init__(self, node: Any):
        super().__init__(f"Cyclic dependency, node was: {node!r}")
        self.node = node


class UnknownNodeError(PluginSystemError):
    """
    An edge references a node that is not part of the node set.

    Attributes:
        node -- the unknown node
        referenced_by -- id of the plugin declaring the constraint, if known
    """
    def __init__(self, node: Any, referenced_by: str | None = None):
        message = f"Unknown node. Make sure to provide all involved nodes. Unknown node: {node!r}"
        if referenced_by is not None:
            message += f" (referenced by plugin {referenced_by!r})"
        super().__init__(message)
        self.node = node
        self.referenced_by = referenced_by
