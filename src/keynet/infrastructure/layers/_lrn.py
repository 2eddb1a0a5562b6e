"""
Local response normalization.

    y = x * (1 + k * S(x^2)) ** -beta

where ``S`` sums over a window of `local_size` neighbours. Across channels
the window of channel ``c`` is ``[c - (size - 1 - size // 2), c + size // 2]``
and ``k = alpha / size``; within a channel the same window is applied along
both spatial axes and ``k = alpha / size**2``.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Sequence, Union

import numpy as np

from ...domain._errors import ConfigurationError
from ...domain._shape import Shape3D
from ...domain._types import VectorType
from ..serialization._config import register_layer
from ..tensor._tensor import Tensor
from ._layer import Layer


class NormRegion(str, Enum):
    ACROSS_CHANNELS = "across"
    WITHIN_CHANNELS = "within"


def _window_sum(a: np.ndarray, axis: int, before: int, after: int) -> np.ndarray:
    """``out[c] = sum(a[c - before : c + after + 1])`` along `axis`, zero-padded."""
    n = a.shape[axis]
    w = before + after + 1
    pad = [(0, 0)] * a.ndim
    pad[axis] = (before + 1, after)
    cs = np.cumsum(np.pad(a.astype(np.float64), pad), axis=axis)
    upper = np.take(cs, np.arange(w, w + n), axis=axis)
    lower = np.take(cs, np.arange(0, n), axis=axis)
    return upper - lower


def _as_shape(shape: Union[Shape3D, Sequence[int]]) -> Shape3D:
    if isinstance(shape, Shape3D):
        return shape
    w, h, d = shape
    return Shape3D(w, h, d)


@register_layer()
class LRNLayer(Layer):
    """
    Local response normalization layer.

    Parameters
    ----------
    in_shape : Shape3D or (int, int, int)
        Input geometry ``(width, height, channels)``.
    local_size : int
        Window length.
    alpha : float
        Scaling constant.
    beta : float
        Exponent.
    region : NormRegion or str
        "across" (default) or "within".
    """

    def __init__(
        self,
        in_shape: Union[Shape3D, Sequence[int]],
        local_size: int,
        alpha: float = 1.0,
        beta: float = 5.0,
        region: Union[NormRegion, str] = NormRegion.ACROSS_CHANNELS,
        engine: Any = None,
    ) -> None:
        if local_size < 1:
            raise ConfigurationError(f"lrn: local_size must be >= 1, got {local_size}")
        super().__init__([VectorType.DATA], [VectorType.DATA], engine=engine)
        self._in = _as_shape(in_shape)
        self._size = int(local_size)
        self._alpha = float(alpha)
        self._beta = float(beta)
        self._region = NormRegion(region)
        if self._region is NormRegion.WITHIN_CHANNELS:
            self._k = self._alpha / (self._size * self._size)
        else:
            self._k = self._alpha / self._size

    @property
    def region(self) -> NormRegion:
        return self._region

    def in_shape(self) -> List[Shape3D]:
        return [self._in]

    def out_shape(self) -> List[Shape3D]:
        return [self._in]

    def fan_in_size(self, i: int = 0) -> int:
        return self._size

    def fan_out_size(self, i: int = 0) -> int:
        return self._size

    def layer_type(self) -> str:
        return "lrn"

    def _grid(self, rows: np.ndarray) -> np.ndarray:
        s = self._in
        return rows.reshape(rows.shape[0], s.depth, s.height, s.width)

    def _windowed(self, a: np.ndarray, reverse: bool = False) -> np.ndarray:
        before, after = self._size - 1 - self._size // 2, self._size // 2
        if reverse:
            before, after = after, before
        if self._region is NormRegion.ACROSS_CHANNELS:
            return _window_sum(a, 1, before, after)
        return _window_sum(_window_sum(a, 2, before, after), 3, before, after)

    def _denominator(self, x: np.ndarray) -> np.ndarray:
        return 1.0 + self._k * self._windowed(x * x)

    def forward_propagation(self, in_data: List[Tensor], out_data: List[Tensor]) -> None:
        x = self._grid(in_data[0].data).astype(np.float64)
        y = x * self._denominator(x) ** -self._beta
        out_data[0].data[...] = y.reshape(y.shape[0], -1)

    def back_propagation(
        self,
        in_data: List[Tensor],
        out_data: List[Tensor],
        out_grad: List[Tensor],
        in_grad: List[Tensor],
    ) -> None:
        x = self._grid(in_data[0].data).astype(np.float64)
        dy = self._grid(out_grad[0].data).astype(np.float64)
        den = self._denominator(x)
        spread = self._windowed(dy * x * den ** (-self._beta - 1.0), reverse=True)
        dx = dy * den**-self._beta - 2.0 * self._beta * self._k * x * spread
        in_grad[0].data[...] += dx.reshape(dx.shape[0], -1)

    def get_config(self) -> Dict[str, Any]:
        return {
            "in_shape": list(self._in.as_tuple()),
            "local_size": self._size,
            "alpha": self._alpha,
            "beta": self._beta,
            "region": self._region.value,
            "engine": self.engine.value,
        }
