"""
Plain and momentum stochastic gradient descent.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from ._base import StatefulMixin, as_flat, check_sizes, for_blocks


@dataclass
class SGD:
    """
    Stochastic gradient descent with optional L2 weight decay.

    Update rule
    -----------
        W <- W - lr * (dW + weight_decay * W)

    Parameters
    ----------
    lr : float, optional
        Learning rate. Must be positive. Defaults to 0.01.
    weight_decay : float, optional
        L2 coefficient. Must be non-negative. Defaults to 0.0.
    """

    lr: float = 0.01
    weight_decay: float = 0.0

    def __init__(self, lr: float = 0.01, weight_decay: float = 0.0) -> None:
        self.lr = float(lr)
        self.weight_decay = float(weight_decay)
        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")

    def update(self, dW: Any, W: Any, parallelize: bool = False) -> None:
        g, w = as_flat(dW), as_flat(W)
        check_sizes(g, w)

        def block(lo: int, hi: int) -> None:
            w[lo:hi] -= self.lr * (g[lo:hi] + self.weight_decay * w[lo:hi])

        for_blocks(parallelize, w.size, block)

    def reset(self) -> None:
        """SGD is stateless."""


@dataclass
class Momentum(StatefulMixin):
    """
    SGD with classical momentum.

    Update rule
    -----------
        V <- mu * V - lr * (dW + weight_decay * W)
        W <- W + V

    Parameters
    ----------
    lr : float, optional
        Learning rate. Defaults to 0.01.
    weight_decay : float, optional
        L2 coefficient. Defaults to 0.0.
    mu : float, optional
        Momentum factor in [0, 1). Defaults to 0.9.
    """

    lr: float = 0.01
    weight_decay: float = 0.0
    mu: float = 0.9

    def __init__(
        self, lr: float = 0.01, weight_decay: float = 0.0, mu: float = 0.9
    ) -> None:
        self.lr = float(lr)
        self.weight_decay = float(weight_decay)
        self.mu = float(mu)
        if self.lr <= 0.0:
            raise ValueError(f"lr must be > 0, got {self.lr}")
        if self.weight_decay < 0.0:
            raise ValueError(f"weight_decay must be >= 0, got {self.weight_decay}")
        if not (0.0 <= self.mu < 1.0):
            raise ValueError(f"mu must be in [0,1), got {self.mu}")

        # id(W) -> {"v": ndarray}
        self._state: Dict[int, Dict[str, object]] = {}

    def update(self, dW: Any, W: Any, parallelize: bool = False) -> None:
        g, w = as_flat(dW), as_flat(W)
        check_sizes(g, w)
        v = self._slot(w, id(W), "v")

        def block(lo: int, hi: int) -> None:
            v[lo:hi] = self.mu * v[lo:hi] - self.lr * (
                g[lo:hi] + self.weight_decay * w[lo:hi]
            )
            w[lo:hi] += v[lo:hi]

        for_blocks(parallelize, w.size, block)
