"""
Adaptive learning-rate optimizers: Adagrad and RMSprop.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from ._base import StatefulMixin, as_flat, check_sizes, for_blocks


@dataclass
class Adagrad(StatefulMixin):
    """
    Adagrad.

    Update rule
    -----------
        G <- G + dW ** 2
        W <- W - lr * dW / (sqrt(G) + eps)
    """

    lr: float = 0.01
    eps: float = 1e-8

    def __init__(self, lr: float = 0.01, eps: float = 1e-8) -> None:
        self.lr = float(lr)
        self.eps = float(eps)
        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if self.eps <= 0.0:
            raise ValueError(f"eps must be > 0, got {self.eps}")
        self._state: Dict[int, Dict[str, object]] = {}

    def update(self, dW: Any, W: Any, parallelize: bool = False) -> None:
        g, w = as_flat(dW), as_flat(W)
        check_sizes(g, w)
        acc = self._slot(w, id(W), "g")

        def block(lo: int, hi: int) -> None:
            acc[lo:hi] += g[lo:hi] * g[lo:hi]
            w[lo:hi] -= self.lr * g[lo:hi] / (np.sqrt(acc[lo:hi]) + self.eps)

        for_blocks(parallelize, w.size, block)


@dataclass
class RMSprop(StatefulMixin):
    """
    RMSprop.

    Update rule
    -----------
        G <- mu * G + (1 - mu) * dW ** 2
        W <- W - lr * dW / sqrt(G + eps)

    Parameters
    ----------
    lr : float, optional
        Learning rate. Defaults to 1e-4.
    mu : float, optional
        Decay factor in (0, 1). Defaults to 0.99.
    eps : float, optional
        Stabilizer inside the square root. Defaults to 1e-8.
    """

    lr: float = 1e-4
    mu: float = 0.99
    eps: float = 1e-8

    def __init__(self, lr: float = 1e-4, mu: float = 0.99, eps: float = 1e-8) -> None:
        self.lr = float(lr)
        self.mu = float(mu)
        self.eps = float(eps)
        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if not (0.0 < self.mu < 1.0):
            raise ValueError(f"mu must be in (0,1), got {self.mu}")
        if self.eps <= 0.0:
            raise ValueError(f"eps must be > 0, got {self.eps}")
        self._state: Dict[int, Dict[str, object]] = {}

    def update(self, dW: Any, W: Any, parallelize: bool = False) -> None:
        g, w = as_flat(dW), as_flat(W)
        check_sizes(g, w)
        acc = self._slot(w, id(W), "g")

        def block(lo: int, hi: int) -> None:
            acc[lo:hi] = self.mu * acc[lo:hi] + (1.0 - self.mu) * g[lo:hi] * g[lo:hi]
            w[lo:hi] -= self.lr * g[lo:hi] / np.sqrt(acc[lo:hi] + self.eps)

        for_blocks(parallelize, w.size, block)
