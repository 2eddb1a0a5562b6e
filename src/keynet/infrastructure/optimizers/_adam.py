"""
Adam optimizer.

Bias-correction powers ``b1_t`` / ``b2_t`` belong to the optimizer instance,
not to individual weights: they start at ``beta1`` / ``beta2`` and are
multiplied by the betas after every `update` call. A network with several
parameters therefore advances them once per parameter per step.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import numpy as np

from ._base import StatefulMixin, as_flat, check_sizes, for_blocks


@dataclass
class Adam(StatefulMixin):
    """
    Adam optimizer.

    Update rule
    -----------
        m <- b1 * m + (1 - b1) * dW
        v <- b2 * v + (1 - b2) * dW ** 2
        W <- W - lr * (m / (1 - b1_t)) / sqrt(v / (1 - b2_t) + eps)
        b1_t <- b1_t * b1;  b2_t <- b2_t * b2

    Parameters
    ----------
    lr : float, optional
        Learning rate. Must be positive. Defaults to 1e-3.
    betas : tuple[float, float], optional
        Decay rates, each in (0, 1). Defaults to (0.9, 0.999).
    eps : float, optional
        Stabilizer inside the square root. Defaults to 1e-8.
    """

    lr: float = 1e-3
    betas: Tuple[float, float] = (0.9, 0.999)
    eps: float = 1e-8

    def __init__(
        self,
        lr: float = 1e-3,
        betas: Tuple[float, float] = (0.9, 0.999),
        eps: float = 1e-8,
    ) -> None:
        self.lr = float(lr)
        self.betas = (float(betas[0]), float(betas[1]))
        self.eps = float(eps)

        b1, b2 = self.betas
        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if not (0.0 < b1 < 1.0) or not (0.0 < b2 < 1.0):
            raise ValueError(f"betas must be in (0,1), got {self.betas}")
        if self.eps <= 0.0:
            raise ValueError(f"eps must be > 0, got {self.eps}")

        # id(W) -> {"m": ndarray, "v": ndarray}
        self._state: Dict[int, Dict[str, object]] = {}
        self.b1_t, self.b2_t = b1, b2

    def update(self, dW: Any, W: Any, parallelize: bool = False) -> None:
        g, w = as_flat(dW), as_flat(W)
        check_sizes(g, w)
        b1, b2 = self.betas
        m = self._slot(w, id(W), "m")
        v = self._slot(w, id(W), "v")
        c1, c2 = 1.0 - self.b1_t, 1.0 - self.b2_t

        def block(lo: int, hi: int) -> None:
            gs = g[lo:hi]
            m[lo:hi] = b1 * m[lo:hi] + (1.0 - b1) * gs
            v[lo:hi] = b2 * v[lo:hi] + (1.0 - b2) * gs * gs
            w[lo:hi] -= self.lr * (m[lo:hi] / c1) / np.sqrt(v[lo:hi] / c2 + self.eps)

        for_blocks(parallelize, w.size, block)
        self.b1_t *= b1
        self.b2_t *= b2

    def reset(self) -> None:
        """Forget moments and restart the bias-correction powers."""
        super().reset()
        self.b1_t, self.b2_t = self.betas
