"""
Topological sort of a directed graph given as nodes and edges.

Nodes are visited depth-first, starting from the last node of the input,
and written into the result back to front (reverse postorder). The result
only depends on the order of ``nodes`` and ``edges``: nodes that are not
constrained relative to each other do not necessarily keep their input
order.

Example:
    ```python
    sort(["a", "b", "c"], [("c", "a"), ("a", "b")])
    # -> ["c", "a", "b"]
    ```
"""

from typing import Hashable, Iterable, Sequence, TypeVar

from plugin_system.lib.errors import CyclicDependencyError, UnknownNodeError

T = TypeVar("T", bound=Hashable)

_EXHAUSTED = object()


def make_outgoing_edges(edges: Iterable[tuple[T, T]]) -> dict[T, dict[T, None]]:
    """
    Build the adjacency map of a graph.

    Every node mentioned in an edge gets an entry. Targets are kept in a dict
    used as an insertion-ordered set, so repeated edges collapse.

    Args:
        edges: (source, target) pairs

    Returns:
        Mapping of node to its ordered set of direct successors
    """
    outgoing: dict[T, dict[T, None]] = {}
    for source, target in edges:
        outgoing.setdefault(source, {})
        outgoing.setdefault(target, {})
        outgoing[source][target] = None
    return outgoing


def sort(nodes: Sequence[T], edges: Iterable[tuple[T, T]]) -> list[T]:
    """
    Return the nodes in an order where every edge's source precedes its target.

    Args:
        nodes: All nodes of the graph
        edges: (source, target) pairs meaning "source must come before target"

    Returns:
        The sorted nodes

    Raises:
        UnknownNodeError: If an edge mentions a node missing from ``nodes``
        CyclicDependencyError: If the edges form a cycle
    """
    edges = list(edges)
    cursor = len(nodes)
    sorted_nodes: list = [None] * cursor
    visited: set[int] = set()
    outgoing = make_outgoing_edges(edges)
    node_index = {node: index for index, node in enumerate(nodes)}

    for source, target in edges:
        if source not in node_index:
            raise UnknownNodeError(source)
        if target not in node_index:
            raise UnknownNodeError(target)

    def place(node: T) -> None:
        nonlocal cursor
        cursor -= 1
        sorted_nodes[cursor] = node

    def visit(root: T, root_index: int) -> None:
        # Explicit stack instead of recursion; each frame is a node whose
        # successors are still being walked.
        predecessors: set = set()
        stack: list[tuple[T, Iterable[T]]] = []

        def enter(node: T, index: int) -> None:
            if node in predecessors:
                raise CyclicDependencyError(node)
            if index in visited:
                return
            visited.add(index)

            successors = outgoing.get(node)
            if successors:
                predecessors.add(node)
                stack.append((node, iter(successors)))
            else:
                place(node)

        enter(root, root_index)
        while stack:
            node, successors = stack[-1]
            child = next(successors, _EXHAUSTED)
            if child is _EXHAUSTED:
                stack.pop()
                predecessors.discard(node)
                place(node)
            else:
                enter(child, node_index[child])

    for index in range(len(nodes) - 1, -1, -1):
        if index not in visited:
            visit(nodes[index], index)

    return sorted_nodes
