"""
Built-in activation strategies.

Each strategy maps a ``(batch, n)`` pre-activation array to its activated
value and back-propagates an output gradient given both the input and the
cached output. Derivatives are expressed through the output where that is
cheaper (sigmoid, tanh, ELU, SELU).
"""

from __future__ import annotations

from typing import Any, Dict, Tuple

import numpy as np

from ...domain.model._stateless_mixin import StatelessConfigMixin
from ._base import Activation, register_activation


@register_activation("identity")
class Identity(StatelessConfigMixin, Activation):
    def forward(self, x: np.ndarray) -> np.ndarray:
        return x.copy()

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        return dy.copy()


@register_activation("sigmoid")
class Sigmoid(StatelessConfigMixin, Activation):
    """Logistic sigmoid ``1 / (1 + exp(-x))``."""

    def forward(self, x: np.ndarray) -> np.ndarray:
        return 1.0 / (1.0 + np.exp(-x))

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        return dy * y * (1.0 - y)


@register_activation("tanh")
class Tanh(StatelessConfigMixin, Activation):
    def forward(self, x: np.ndarray) -> np.ndarray:
        return np.tanh(x)

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        return dy * (1.0 - y * y)

    def scale(self) -> Tuple[float, float]:
        return (-0.8, 0.8)


@register_activation("relu")
class ReLU(StatelessConfigMixin, Activation):
    def forward(self, x: np.ndarray) -> np.ndarray:
        return np.maximum(x, 0.0).astype(x.dtype, copy=False)

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        return np.where(y > 0.0, dy, 0.0).astype(dy.dtype, copy=False)


@register_activation("leaky_relu")
class LeakyReLU(Activation):
    """
    Leaky ReLU, ``x`` for positive inputs and ``epsilon * x`` otherwise.

    Parameters
    ----------
    epsilon : float
        Negative slope. Must be >= 0. Defaults to 0.01.
    """

    def __init__(self, epsilon: float = 0.01) -> None:
        if epsilon < 0.0:
            raise ValueError(f"epsilon must be >= 0, got {epsilon}")
        self.epsilon = float(epsilon)

    def forward(self, x: np.ndarray) -> np.ndarray:
        return np.where(x > 0.0, x, self.epsilon * x).astype(x.dtype, copy=False)

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        return np.where(y > 0.0, dy, self.epsilon * dy).astype(dy.dtype, copy=False)

    def get_config(self) -> Dict[str, Any]:
        return {"epsilon": self.epsilon}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "LeakyReLU":
        return cls(**cfg)


@register_activation("elu")
class ELU(Activation):
    """Exponential linear unit with scale `alpha` (default 1)."""

    def __init__(self, alpha: float = 1.0) -> None:
        self.alpha = float(alpha)

    def forward(self, x: np.ndarray) -> np.ndarray:
        neg = self.alpha * (np.exp(np.minimum(x, 0.0)) - 1.0)
        return np.where(x > 0.0, x, neg).astype(x.dtype, copy=False)

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        return np.where(y > 0.0, dy, dy * (y + self.alpha)).astype(dy.dtype, copy=False)

    def get_config(self) -> Dict[str, Any]:
        return {"alpha": self.alpha}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "ELU":
        return cls(**cfg)


@register_activation("selu")
class SELU(Activation):
    """
    Scaled exponential linear unit.

    ``lambda * x`` for positive inputs, ``lambda * alpha * (exp(x) - 1)``
    otherwise. The derivative is ``lambda`` on the positive side and
    ``y + lambda * alpha`` on the negative side.
    """

    def __init__(self, lambda_: float = 1.05070, alpha: float = 1.67326) -> None:
        self.lambda_ = float(lambda_)
        self.alpha = float(alpha)

    def forward(self, x: np.ndarray) -> np.ndarray:
        neg = self.lambda_ * self.alpha * (np.exp(np.minimum(x, 0.0)) - 1.0)
        return np.where(x > 0.0, self.lambda_ * x, neg).astype(x.dtype, copy=False)

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        d = np.where(y > 0.0, self.lambda_, y + self.lambda_ * self.alpha)
        return (dy * d).astype(dy.dtype, copy=False)

    def get_config(self) -> Dict[str, Any]:
        return {"lambda_": self.lambda_, "alpha": self.alpha}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "SELU":
        return cls(**cfg)


@register_activation("softmax")
class Softmax(StatelessConfigMixin, Activation):
    """Per-sample softmax over the feature axis."""

    def forward(self, x: np.ndarray) -> np.ndarray:
        shifted = x - np.max(x, axis=-1, keepdims=True)
        e = np.exp(shifted)
        return e / np.sum(e, axis=-1, keepdims=True)

    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray:
        dot = np.sum(dy * y, axis=-1, keepdims=True)
        return y * (dy - dot)

    def scale(self) -> Tuple[float, float]:
        return (0.0, 1.0)
