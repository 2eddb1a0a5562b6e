"""
Shared plumbing for in-place optimizers.

Optimizers receive the merged, batch-averaged gradient ``dW`` and the weight
tensor ``W`` of one parameter at a time. Stateful optimizers keep their
per-weight buffers in ``self._state``, keyed by ``id(W)`` and created lazily
on the first update of that weight.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

import numpy as np

from ...domain._errors import ContractViolationError
from ..utils._parallel import PARALLEL_THRESHOLD, for_


def as_flat(t: Any) -> np.ndarray:
    """Flat writable view of a tensor (or ndarray)."""
    arr = t.data if hasattr(t, "data") and not isinstance(t, np.ndarray) else t
    return arr.reshape(-1)


def check_sizes(dW: np.ndarray, W: np.ndarray) -> None:
    if dW.size != W.size:
        raise ContractViolationError(
            f"gradient has {dW.size} elements, weight has {W.size}"
        )


def for_blocks(parallelize: bool, size: int, fn: Callable[[int, int], None]) -> None:
    """Run an element-wise update over ``[0, size)`` in contiguous blocks."""
    for_(parallelize, 0, size, fn, grainsize=PARALLEL_THRESHOLD)


class StatefulMixin:
    """Lazily created per-weight state buffers."""

    _state: Dict[int, Dict[str, object]]

    def _slot(self, W: np.ndarray, key: int, name: str) -> np.ndarray:
        st = self._state.setdefault(key, {})
        buf = st.get(name)
        if buf is None or buf.size != W.size:  # type: ignore[union-attr]
            buf = np.zeros(W.size, dtype=W.dtype)
            st[name] = buf
        return buf  # type: ignore[return-value]

    def reset(self) -> None:
        """Forget every per-weight state entry."""
        self._state.clear()
