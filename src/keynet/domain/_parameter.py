"""
Trainable parameter interface definitions.

This module defines the domain-level interface for weights and biases owned
by layers. A parameter keeps its values in a flat data tensor and one
gradient row per in-flight sample; optimizers consume the merged gradient.
"""

from __future__ import annotations

from typing import Callable, Protocol, runtime_checkable

from ._tensor import ITensor
from ._types import ParameterType


@runtime_checkable
class IParameter(Protocol):
    """
    Domain-level interface for trainable parameters.

    Notes
    -----
    - `data` has shape ``(size,)``; `grad` has shape ``(batch, size)``.
    - Gradient rows are written independently per sample and reduced by
      `merge_grads` before an optimizer step.
    """

    @property
    def type(self) -> ParameterType: ...

    @property
    def trainable(self) -> bool: ...

    @property
    def initialized(self) -> bool: ...

    @property
    def data(self) -> ITensor: ...

    @property
    def grad(self) -> ITensor: ...

    def size(self) -> int: ...

    def initialize(
        self, init: Callable[..., object], fan_in: int, fan_out: int
    ) -> None: ...

    def merge_grads(self, dst: ITensor) -> None: ...

    def clear_grads(self) -> None: ...

    def resize_grad(self, batch: int) -> None: ...
