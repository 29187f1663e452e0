"""
Plugin system for ordering and running request-processing plugins.

Provides plugin base classes, constraint-based ordering and chain execution.
"""

from plugin_system.lib.plugins.chain import ChainExecutor, Continuation
from plugin_system.lib.plugins.plugin_base import FunctionPlugin, Plugin
from plugin_system.lib.plugins.plugin_registry import PluginSystem
from plugin_system.lib.plugins.plugin_sort import build_graph, sort_plugins
from plugin_system.lib.plugins.toposort import sort

__all__ = [
    "ChainExecutor",
    "Continuation",
    "FunctionPlugin",
    "Plugin",
    "PluginSystem",
    "build_graph",
    "sort",
    "sort_plugins",
]
