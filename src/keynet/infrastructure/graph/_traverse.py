"""
Breadth-first traversal over a layer graph.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Optional, Set

from ._node import Edge, Node


def graph_traverse(
    root: Node,
    node_callback: Callable[[Node], None],
    edge_callback: Optional[Callable[[Edge], None]] = None,
) -> None:
    """
    Visit every node reachable from `root` through predecessors or successors.

    Each node is visited exactly once, even in diamond topologies; a node is
    marked when it is queued. `edge_callback` receives each output edge of a
    visited node, once.

    Parameters
    ----------
    root : Node
        Starting node.
    node_callback : Callable[[Node], None]
        Called once per reachable node, in breadth-first order.
    edge_callback : Callable[[Edge], None], optional
        Called once per output edge of the visited nodes.
    """
    visited: Set[int] = {id(root)}
    seen_edges: Set[int] = set()
    queue = deque([root])

    while queue:
        node = queue.popleft()
        node_callback(node)

        if edge_callback is not None:
            for e in node.next():
                if e is not None and id(e) not in seen_edges:
                    seen_edges.add(id(e))
                    edge_callback(e)

        for neighbor in node.prev_nodes() + node.next_nodes():
            if id(neighbor) not in visited:
                visited.add(id(neighbor))
                queue.append(neighbor)
