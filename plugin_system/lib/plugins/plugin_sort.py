"""
Ordering of plugins from their before/after declarations.

Turns the plugins' constraints into graph edges and hands them to the
topological sort.
"""

import logging
from typing import Sequence

from plugin_system.lib.errors import DuplicateIdError, UnknownNodeError
from plugin_system.lib.plugins.plugin_base import Plugin, as_id_list
from plugin_system.lib.plugins.toposort import sort

logger = logging.getLogger(__name__)


def build_graph(
    plugins: Sequence[Plugin], strict: bool = False
) -> tuple[list[str], list[tuple[str, str]]]:
    """
    Derive the node ids and "runs before" edges of a plugin set.

    Edges are emitted in registration order; for each plugin its ``before``
    edges come first, then its ``after`` edges. Self references are
    dropped, and so are references to ids that are not registered unless
    ``strict`` is set.

    Args:
        plugins: Plugins in registration order
        strict: Raise on constraints that name unregistered plugins

    Returns:
        Tuple of (ids, edges)

    Raises:
        DuplicateIdError: If two plugins share an id
        UnknownNodeError: In strict mode, if a constraint names an unknown id
    """
    ids: list[str] = []
    known: set[str] = set()
    for plugin in plugins:
        if plugin.id in known:
            raise DuplicateIdError(plugin.id)
        known.add(plugin.id)
        ids.append(plugin.id)

    edges: list[tuple[str, str]] = []

    def add_edge(source: str, target: str, declared_by: str) -> None:
        if source == target:
            return
        if source in known and target in known:
            edges.append((source, target))
            return
        missing = source if source not in known else target
        if strict:
            raise UnknownNodeError(missing, referenced_by=declared_by)
        logger.debug(f"Ignoring constraint of plugin '{declared_by}' on unregistered plugin '{missing}'")

    for plugin in plugins:
        for target in as_id_list(plugin.before):
            add_edge(plugin.id, target, plugin.id)
        for source in as_id_list(plugin.after):
            add_edge(source, plugin.id, plugin.id)

    return ids, edges


def sort_plugins(plugins: Sequence[Plugin], strict: bool = False) -> list[Plugin]:
    """
    Return the plugins in an order that satisfies all their constraints.

    Args:
        plugins: Plugins in registration order
        strict: Raise on constraints that name unregistered plugins

    Returns:
        Ordered list of the same plugin objects
    """
    ids, edges = build_graph(plugins, strict=strict)
    sorted_ids = sort(ids, edges)

    by_id = {plugin.id: plugin for plugin in plugins}
    return [by_id[plugin_id] for plugin_id in sorted_ids]
