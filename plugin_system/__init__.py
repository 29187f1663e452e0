"""
Ordered plugin pipeline for FastAPI applications.

Plugins declare which other plugins they must run before or after; the
plugin system sorts them into one execution order and runs them as a
chain for every request.
"""

from plugin_system.lib.errors import (
    CyclicDependencyError,
    DuplicateIdError,
    PluginSystemError,
    UnknownNodeError,
)
from plugin_system.lib.plugins import FunctionPlugin, Plugin, PluginSystem

__version__ = "1.0.0"

__all__ = [
    "CyclicDependencyError",
    "DuplicateIdError",
    "FunctionPlugin",
    "Plugin",
    "PluginSystem",
    "PluginSystemError",
    "UnknownNodeError",
]
