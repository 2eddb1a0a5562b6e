"""
NumPy-backed tensor storage.

A `Tensor` owns a flat, contiguous NumPy buffer plus a logical shape. The
buffer capacity may exceed the logical size: shrinking the leading axis keeps
the allocation so that a later regrow is free. `TensorView` aliases a
sub-range of a tensor without copying.

Design notes
------------
- `data` always returns a writable view of the logical region, never a copy.
- Every reallocation bumps a storage *generation* counter. Views remember the
  generation they were created at and refuse to touch storage afterwards, so a
  view can never silently read a dead buffer.
- Multi-dimensional indices are row-major: the first index is outermost.
"""

from __future__ import annotations

from typing import Any, Iterable, Sequence, Tuple, Union

import numpy as np

from ...domain._errors import ContractViolationError

ALL = slice(None)

Range = Union[int, slice, Tuple[int, int]]


def _prod(shape: Iterable[int]) -> int:
    n = 1
    for d in shape:
        n *= int(d)
    return n


def _normalize_shape(shape: Union[int, Sequence[int]]) -> Tuple[int, ...]:
    if isinstance(shape, (int, np.integer)):
        shape = (int(shape),)
    out = tuple(int(d) for d in shape)
    for d in out:
        if d < 0:
            raise ContractViolationError(f"negative dimension in shape {out}")
    return out


def _check_index(shape: Tuple[int, ...], idx: Tuple[int, ...]) -> None:
    if len(idx) != len(shape):
        raise ContractViolationError(
            f"expected {len(shape)} indices for shape {shape}, got {len(idx)}"
        )
    for axis, (i, d) in enumerate(zip(idx, shape)):
        if not (0 <= int(i) < d):
            raise ContractViolationError(
                f"index {i} out of range for axis {axis} with size {d}"
            )


def _to_slices(shape: Tuple[int, ...], ranges: Sequence[Range]) -> tuple:
    if len(ranges) > len(shape):
        raise ContractViolationError(
            f"too many ranges ({len(ranges)}) for shape {shape}"
        )
    out = []
    for axis, r in enumerate(ranges):
        d = shape[axis]
        if isinstance(r, slice):
            start, stop, step = r.indices(d)
            if step != 1:
                raise ContractViolationError("views support unit step only")
            out.append(slice(start, stop))
        elif isinstance(r, tuple):
            start, stop = int(r[0]), int(r[1])
            if not (0 <= start <= stop <= d):
                raise ContractViolationError(
                    f"range {r} out of bounds for axis {axis} with size {d}"
                )
            out.append(slice(start, stop))
        else:
            i = int(r)
            if not (0 <= i < d):
                raise ContractViolationError(
                    f"index {i} out of range for axis {axis} with size {d}"
                )
            out.append(i)
    return tuple(out)


class _TensorOps:
    """Element access and bulk helpers shared by tensors and views."""

    __slots__ = ()

    @property
    def data(self) -> np.ndarray:  # pragma: no cover - overridden
        raise NotImplementedError

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def dtype(self) -> np.dtype:
        return self.data.dtype

    def size(self) -> int:
        return _prod(self.shape)

    def host_offset(self, *idx: int) -> int:
        """Row-major flat offset of `idx` inside the logical shape."""
        shape = self.shape
        _check_index(shape, idx)
        off = 0
        for i, d in zip(idx, shape):
            off = off * d + int(i)
        return off

    def at(self, *idx: int) -> float:
        _check_index(self.shape, idx)
        return self.data[idx].item()

    def set_at(self, value: float, *idx: int) -> None:
        _check_index(self.shape, idx)
        self.data[idx] = value

    def fill(self, value: float) -> None:
        self.data[...] = value

    def to_numpy(self) -> np.ndarray:
        """Return a copy of the logical contents."""
        return np.array(self.data, copy=True)

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Overwrite contents from an array with the same number of elements.

        Raises
        ------
        ContractViolationError
            If element counts differ.
        """
        a = np.asarray(arr)
        if a.size != self.size():
            raise ContractViolationError(
                f"cannot copy {a.size} elements into tensor of size {self.size()}"
            )
        self.data[...] = a.reshape(self.shape)

    def subview(self, *ranges: Range) -> "TensorView":
        """
        Return a non-owning view over a sub-range.

        Each range is an int (selects one index and drops the axis), a
        ``(start, stop)`` pair, or `ALL`. Missing trailing ranges mean `ALL`.
        """
        return TensorView(self, _to_slices(self.shape, ranges))


class Tensor(_TensorOps):
    """
    Owning, contiguous tensor.

    Parameters
    ----------
    shape : int or Sequence[int]
        Logical shape. Storage is zero-initialized.
    dtype : numpy dtype, optional
        Element type. Defaults to float32.
    """

    __slots__ = ("_buf", "_shape", "_generation")

    def __init__(
        self, shape: Union[int, Sequence[int]] = (0,), dtype: Any = np.float32
    ) -> None:
        self._shape = _normalize_shape(shape)
        self._buf = np.zeros(_prod(self._shape), dtype=np.dtype(dtype))
        self._generation = 0

    @classmethod
    def from_numpy(cls, arr: Any, dtype: Any = None) -> "Tensor":
        a = np.asarray(arr)
        t = cls(a.shape, dtype=a.dtype if dtype is None else dtype)
        t.copy_from_numpy(a)
        return t

    @classmethod
    def from_nested(cls, seq: Any, dtype: Any = np.float32) -> "Tensor":
        """Build a tensor from nested sequences (row-major)."""
        return cls.from_numpy(np.asarray(seq, dtype=dtype))

    @property
    def data(self) -> np.ndarray:
        return self._buf[: _prod(self._shape)].reshape(self._shape)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self._shape

    @property
    def dtype(self) -> np.dtype:
        return self._buf.dtype

    @property
    def generation(self) -> int:
        return self._generation

    def capacity(self) -> int:
        return int(self._buf.size)

    def size(self) -> int:
        return _prod(self._shape)

    def reshape(self, new_shape: Union[int, Sequence[int]]) -> None:
        """
        Change the logical shape.

        Same element count keeps the contents. A different count
        reinitializes the tensor with fresh zeroed storage.
        """
        new_shape = _normalize_shape(new_shape)
        if _prod(new_shape) == self.size():
            self._shape = new_shape
            return
        self._shape = new_shape
        self._buf = np.zeros(_prod(new_shape), dtype=self._buf.dtype)
        self._generation += 1

    def resize_axis(self, n: int) -> None:
        """
        Set the length of the leading axis to exactly `n`.

        Storage grows only when the capacity is insufficient and is never
        released on shrink. Rows exposed by growing are zero.
        """
        if not self._shape:
            raise ContractViolationError("cannot resize the axis of a 0-d tensor")
        n = int(n)
        if n < 0:
            raise ContractViolationError(f"axis length must be >= 0, got {n}")
        old_size = self.size()
        new_shape = (n,) + self._shape[1:]
        new_size = _prod(new_shape)
        if new_size > self._buf.size:
            buf = np.zeros(new_size, dtype=self._buf.dtype)
            buf[:old_size] = self._buf[:old_size]
            self._buf = buf
            self._generation += 1
        elif new_size > old_size:
            self._buf[old_size:new_size] = 0
        self._shape = new_shape

    def __repr__(self) -> str:
        return f"Tensor(shape={self._shape}, dtype={self._buf.dtype})"


class TensorView(_TensorOps):
    """
    Non-owning window into a `Tensor` (or another view).

    Mutations go straight to the owner's storage. Any access after the owner
    reallocated raises `ContractViolationError`.
    """

    __slots__ = ("_base", "_index", "_owner", "_generation")

    def __init__(self, base: _TensorOps, index: tuple) -> None:
        self._base = base
        self._index = index
        self._owner: Tensor = base._owner if isinstance(base, TensorView) else base
        self._generation = (
            base._generation if isinstance(base, TensorView) else base.generation
        )

    def is_stale(self) -> bool:
        return self._generation != self._owner.generation

    @property
    def data(self) -> np.ndarray:
        if self.is_stale():
            raise ContractViolationError(
                "tensor view is stale: the owning tensor was reallocated"
            )
        return self._base.data[self._index]

    @property
    def owner(self) -> Tensor:
        return self._owner

    def __repr__(self) -> str:
        return f"TensorView(shape={self.shape}, stale={self.is_stale()})"
