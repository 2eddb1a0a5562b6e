"""
Fully-connected layer.
"""

from __future__ import annotations

from typing import Any, Dict, List

from ...domain._shape import Shape3D
from ...domain._types import ParameterType, VectorType
from ..ops._params import FullyParams
from ..serialization._config import register_layer
from ._feedforward import FeedForwardLayer


@register_layer()
class FullyConnectedLayer(FeedForwardLayer):
    """
    Dense layer ``y = activation(x @ W + b)``.

    Parameters
    ----------
    in_size : int
        Input features per sample.
    out_size : int
        Output features per sample.
    has_bias : bool, optional
        Whether to learn a bias. Defaults to True.
    activation : str, dict or Activation, optional
        Activation strategy; identity when omitted.
    engine : BackendType or str, optional
        Numeric engine.

    Notes
    -----
    The weight is stored flat as ``W[c * out_size + i]`` (input-major), and
    its parameter shape is ``(in_size, out_size, 1, 1)``.
    """

    def __init__(
        self,
        in_size: int,
        out_size: int,
        has_bias: bool = True,
        activation: Any = None,
        engine: Any = None,
    ) -> None:
        if in_size <= 0 or out_size <= 0:
            raise ValueError(
                f"in_size and out_size must be > 0, got ({in_size}, {out_size})"
            )
        in_types = [VectorType.DATA, VectorType.WEIGHT]
        if has_bias:
            in_types.append(VectorType.BIAS)
        super().__init__(
            "fully",
            FullyParams(int(in_size), int(out_size), bool(has_bias)),
            in_types,
            activation=activation,
            engine=engine,
        )
        self.add_parameter(in_size, out_size, 1, 1, ParameterType.WEIGHT)
        if has_bias:
            self.add_parameter(out_size, 1, 1, 1, ParameterType.BIAS)

    def in_shape(self) -> List[Shape3D]:
        p = self.params
        shapes = [Shape3D(p.in_size, 1, 1), Shape3D(p.in_size, p.out_size, 1)]
        if p.has_bias:
            shapes.append(Shape3D(p.out_size, 1, 1))
        return shapes

    def out_shape(self) -> List[Shape3D]:
        return [Shape3D(self.params.out_size, 1, 1)]

    def fan_in_size(self, i: int = 0) -> int:
        return self.params.in_size

    def fan_out_size(self, i: int = 0) -> int:
        return self.params.out_size

    def layer_type(self) -> str:
        return "fully-connected"

    def get_config(self) -> Dict[str, Any]:
        p = self.params
        return {
            "in_size": p.in_size,
            "out_size": p.out_size,
            "has_bias": p.has_bias,
            "activation": self._activation_config(),
            "engine": self.engine.value,
        }
