"""
Domain-level optimizer contracts for KeyNet.

This module defines the `IOptimizer` protocol, which specifies the minimal
interface required for optimizer implementations (e.g., SGD, Adam).

Notes
-----
- Optimizers do not own parameters. A layer hands each trainable weight
  tensor together with its merged, batch-averaged gradient to `update`.
- Stateful optimizers key their per-weight state by the identity of the
  weight tensor, so one optimizer instance can serve a whole network.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from ._tensor import ITensor


@runtime_checkable
class IOptimizer(Protocol):
    """
    Optimizer interface contract.

    Required methods
    ----------------
    - `update(dW, W, parallelize)` mutates `W` in place from gradient `dW`.
    - `reset()` discards all accumulated state.
    """

    def update(self, dW: ITensor, W: ITensor, parallelize: bool = False) -> None:
        """
        Apply one update to `W` using gradient `dW`.

        Parameters
        ----------
        dW : ITensor
            Gradient with the same number of elements as `W`.
        W : ITensor
            Weight tensor updated in place.
        parallelize : bool
            Whether the element-wise update may be split across workers.
        """
        ...

    def reset(self) -> None:
        """Forget every per-weight state entry."""
        ...
