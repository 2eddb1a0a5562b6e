"""
Computation graph primitives.

A `Node` has ordered input and output slots. Each slot may be bound to an
`Edge`. An edge carries the data flowing between two nodes, plus the gradient
flowing back, both as ``(batch, shape.size())`` tensors.

Design notes
------------
- An edge has at most one producer (`prev`) and any number of consumers
  (`next`).
- Nodes reference edges and edges reference nodes; these are plain Python
  references; no ownership hierarchy is implied.
"""

from __future__ import annotations

from typing import List, Optional

import numpy as np

from ...domain._shape import Shape3D
from ...domain._types import VectorType
from ..tensor._tensor import Tensor


class Edge:
    """
    Data/gradient carrier between two nodes.

    Parameters
    ----------
    prev : Node or None
        Producing node.
    shape : Shape3D
        Per-sample shape of the carried vector.
    vtype : VectorType
        Role of the slot.
    dtype : numpy dtype, optional
        Element type of the data and gradient tensors.
    """

    __slots__ = ("_prev", "_next", "_shape", "_vtype", "_data", "_grad")

    def __init__(
        self,
        prev: Optional["Node"],
        shape: Shape3D,
        vtype: VectorType,
        dtype=np.float32,
    ) -> None:
        self._prev = prev
        self._next: List["Node"] = []
        self._shape = shape
        self._vtype = vtype
        self._data = Tensor((1, shape.size()), dtype=dtype)
        self._grad = Tensor((1, shape.size()), dtype=dtype)

    def get_data(self) -> Tensor:
        return self._data

    def get_gradient(self) -> Tensor:
        return self._grad

    def clear_grads(self) -> None:
        self._grad.fill(0.0)

    def shape(self) -> Shape3D:
        return self._shape

    def vtype(self) -> VectorType:
        return self._vtype

    def prev(self) -> Optional["Node"]:
        return self._prev

    def next(self) -> List["Node"]:
        return self._next

    def add_next_node(self, node: "Node") -> None:
        self._next.append(node)

    def __repr__(self) -> str:
        return f"Edge(shape={self._shape}, vtype={self._vtype.value})"


class Node:
    """
    Graph vertex with `in_size` input slots and `out_size` output slots.
    """

    def __init__(self, in_size: int, out_size: int) -> None:
        self._prev: List[Optional[Edge]] = [None] * int(in_size)
        self._next: List[Optional[Edge]] = [None] * int(out_size)

    def prev(self) -> List[Optional[Edge]]:
        return self._prev

    def next(self) -> List[Optional[Edge]]:
        return self._next

    def in_edge_count(self) -> int:
        return sum(1 for e in self._prev if e is not None)

    def out_edge_count(self) -> int:
        return sum(1 for e in self._next if e is not None)

    def prev_nodes(self) -> List["Node"]:
        """Producers of every bound input edge."""
        nodes: List[Node] = []
        for e in self._prev:
            if e is not None and e.prev() is not None:
                nodes.append(e.prev())
        return nodes

    def next_nodes(self) -> List["Node"]:
        """Consumers of every bound output edge."""
        nodes: List[Node] = []
        for e in self._next:
            if e is not None:
                nodes.extend(e.next())
        return nodes
