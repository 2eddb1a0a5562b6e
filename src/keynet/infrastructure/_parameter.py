"""
Infrastructure implementation of trainable parameters.

A `Parameter` is a weight or bias owned by a layer. Its values live in a flat
data tensor of ``width * height * depth * n_fmaps`` elements, and its
gradient is a ``(batch, size)`` tensor holding one row per sample so that
per-sample backward passes can run concurrently without sharing an
accumulator.

Design notes
------------
- Gradient rows are *accumulated* by kernels; `clear_grads` must run between
  optimizer steps.
- `merge_grads` is the single reduction point from per-sample rows to the
  gradient consumed by an optimizer.
- The gradient tensor only grows its storage; its logical row count always
  equals the last requested batch size.
"""

from __future__ import annotations

from typing import Any, Callable, Tuple

import numpy as np

from ..domain._errors import ContractViolationError
from ..domain._types import ParameterType
from .tensor._tensor import Tensor


class Parameter:
    """
    Weight or bias of a layer.

    Parameters
    ----------
    width, height, depth, n_fmaps : int
        Logical dimensions; only their product matters for storage.
    param_type : ParameterType
        WEIGHT or BIAS.
    trainable : bool, optional
        Whether optimizers may update this parameter. Defaults to True.
    dtype : numpy dtype, optional
        Element type. Defaults to float32.
    """

    def __init__(
        self,
        width: int,
        height: int,
        depth: int,
        n_fmaps: int,
        param_type: ParameterType,
        trainable: bool = True,
        dtype: Any = np.float32,
    ) -> None:
        self._dims = (int(width), int(height), int(depth), int(n_fmaps))
        self._type = ParameterType(param_type)
        self._trainable = bool(trainable)
        self._initialized = False
        self._data = Tensor((self.size(),), dtype=dtype)
        self._grad = Tensor((1, self.size()), dtype=dtype)

    # ---- shape ----
    @property
    def shape(self) -> Tuple[int, int, int, int]:
        """``(width, height, depth, n_fmaps)``."""
        return self._dims

    @property
    def width(self) -> int:
        return self._dims[0]

    @property
    def height(self) -> int:
        return self._dims[1]

    @property
    def depth(self) -> int:
        return self._dims[2]

    @property
    def n_fmaps(self) -> int:
        return self._dims[3]

    def size(self) -> int:
        w, h, d, n = self._dims
        return w * h * d * n

    def set_dims(self, width: int, height: int, depth: int, n_fmaps: int) -> None:
        """
        Redefine the dimensions. Storage is reallocated when the size changes
        and the parameter becomes uninitialized.
        """
        self._dims = (int(width), int(height), int(depth), int(n_fmaps))
        if self._data.size() != self.size():
            self._data.reshape((self.size(),))
            self._grad.reshape((self._grad.shape[0], self.size()))
            self._initialized = False

    # ---- flags ----
    @property
    def type(self) -> ParameterType:
        return self._type

    @property
    def trainable(self) -> bool:
        return self._trainable

    def set_trainable(self, trainable: bool) -> None:
        self._trainable = bool(trainable)

    def freeze_trainable(self) -> None:
        self._trainable = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    def set_initialized(self, value: bool = True) -> None:
        self._initialized = bool(value)

    # ---- storage ----
    @property
    def data(self) -> Tensor:
        return self._data

    @property
    def grad(self) -> Tensor:
        return self._grad

    def data_at(self, i: int) -> float:
        return self._data.at(i)

    def grad_at(self, sample: int, i: int) -> float:
        return self._grad.at(sample, i)

    def initialize(
        self, init: Callable[..., object], fan_in: int, fan_out: int
    ) -> None:
        """
        Fill the data tensor with ``init(data, fan_in, fan_out)``.

        Parameters
        ----------
        init : Callable
            Initializer callable (usually a `WeightInitializer`).
        fan_in, fan_out : int
            Fan values of the owning layer.
        """
        init(self._data, int(fan_in), int(fan_out))
        self._initialized = True

    def set_data(self, values: Any) -> None:
        """
        Overwrite the values. Marks the parameter initialized.

        Raises
        ------
        ContractViolationError
            If the element count differs from `size()`.
        """
        src = values.data if isinstance(values, Tensor) else np.asarray(values)
        if src.size != self.size():
            raise ContractViolationError(
                f"set_data: expected {self.size()} elements, got {src.size}"
            )
        self._data.copy_from_numpy(src)
        self._initialized = True

    def set_grad(self, values: Any) -> None:
        """
        Overwrite the per-sample gradient.

        The total element count must match the current gradient tensor; the
        row layout is kept.

        Raises
        ------
        ContractViolationError
            If the element count differs.
        """
        src = values.data if isinstance(values, Tensor) else np.asarray(values)
        if src.size != self._grad.size():
            raise ContractViolationError(
                f"set_grad: expected {self._grad.size()} elements, got {src.size}"
            )
        self._grad.copy_from_numpy(src)

    def resize_grad(self, batch: int) -> None:
        """Expose exactly `batch` gradient rows; storage never shrinks."""
        self._grad.resize_axis(batch)

    def clear_grads(self) -> None:
        self._grad.fill(0.0)

    def merge_grads(self, dst: Tensor) -> None:
        """
        Sum the per-sample gradient rows into `dst`.

        `dst` is reshaped to ``(size(),)`` and overwritten. The reduction is
        sequential over rows.
        """
        dst.reshape((self.size(),))
        rows = self._grad.data
        acc = dst.data
        acc[...] = 0
        for r in range(rows.shape[0]):
            acc += rows[r]

    def __repr__(self) -> str:
        return (
            f"Parameter(type={self._type.value}, shape={self._dims}, "
            f"trainable={self._trainable})"
        )
