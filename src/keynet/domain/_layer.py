"""
Domain-level layer contract.

`ILayer` lists what graph utilities, devices and containers need from a layer
without tying them to the infrastructure base class.
"""

from __future__ import annotations

from typing import List, Protocol, Tuple, runtime_checkable

from ._shape import Shape3D
from ._types import BackendType, VectorType


@runtime_checkable
class ILayer(Protocol):
    """
    Structural layer interface.

    Notes
    -----
    Shapes and slot types are positional: ``in_shape()[i]`` describes the
    i-th input slot whose role is ``in_types[i]``.
    """

    @property
    def in_types(self) -> Tuple[VectorType, ...]: ...

    @property
    def out_types(self) -> Tuple[VectorType, ...]: ...

    @property
    def engine(self) -> BackendType: ...

    def layer_type(self) -> str: ...

    def in_shape(self) -> List[Shape3D]: ...

    def out_shape(self) -> List[Shape3D]: ...

    def fan_in_size(self, i: int = 0) -> int: ...

    def fan_out_size(self, i: int = 0) -> int: ...

    def setup(self, reset_weights: bool = False) -> None: ...

    def forward_propagation(self, in_data, out_data) -> None: ...

    def back_propagation(self, in_data, out_data, out_grad, in_grad) -> None: ...

    def kernel_signature(self) -> tuple: ...
