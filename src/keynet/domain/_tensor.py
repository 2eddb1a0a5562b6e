"""
Domain-level tensor contract.

`ITensor` is the minimal structural interface the graph, parameters and
optimizers rely on. Concrete storage (NumPy) lives in the infrastructure
layer.
"""

from __future__ import annotations

from typing import Any, Protocol, Tuple, runtime_checkable


@runtime_checkable
class ITensor(Protocol):
    """
    Structural tensor interface.

    Notes
    -----
    - `shape` is the logical shape; storage capacity may be larger after a
      shrinking `resize_axis`.
    - `data` exposes the logical region as a writable array view.
    """

    @property
    def shape(self) -> Tuple[int, ...]: ...

    @property
    def dtype(self) -> Any: ...

    @property
    def data(self) -> Any: ...

    def size(self) -> int: ...

    def fill(self, value: float) -> None: ...

    def to_numpy(self) -> Any: ...

    def copy_from_numpy(self, arr: Any) -> None: ...
