"""
Max-pooling layer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from ...domain._shape import Padding, Shape3D
from ...domain._types import VectorType
from ..ops._params import MaxPoolParams, _pair
from ..serialization._config import register_layer
from ._feedforward import FeedForwardLayer

Size = Union[int, Tuple[int, int]]


@register_layer()
class MaxPoolingLayer(FeedForwardLayer):
    """
    Per-channel max pooling over (possibly overlapping) windows.

    Parameters
    ----------
    in_width, in_height, in_channels : int
        Input geometry.
    pooling_size : int or (int, int)
        Window width (and height).
    stride : int or (int, int), optional
        Defaults to the pooling size (non-overlapping windows).
    padding : Padding or str
        "valid" or "same"; windows are clipped at the input border.
    activation : str, dict or Activation, optional
        Applied to the pooled values; identity when omitted.
    engine : BackendType or str, optional
        Numeric engine.

    Notes
    -----
    Backward routes each output gradient only to the input that won the
    forward pass for that sample, so a backward pass must follow a forward
    pass on the same batch.
    """

    def __init__(
        self,
        in_width: int,
        in_height: int,
        in_channels: int,
        pooling_size: Size,
        stride: Optional[Size] = None,
        padding: Union[Padding, str] = Padding.VALID,
        activation: Any = None,
        engine: Any = None,
    ) -> None:
        pool_x, pool_y = _pair(pooling_size, "pooling_size")
        stride_x, stride_y = _pair(stride if stride is not None else (pool_x, pool_y), "stride")
        params = MaxPoolParams.build(
            in_width,
            in_height,
            in_channels,
            pool_x,
            pool_y,
            stride_x,
            stride_y,
            Padding.parse(padding),
        )
        super().__init__(
            "maxpool",
            params,
            [VectorType.DATA],
            activation=activation,
            engine=engine,
            strides=(stride_x, stride_y),
        )

    def in_shape(self) -> List[Shape3D]:
        return [self.params.in_shape]

    def out_shape(self) -> List[Shape3D]:
        return [self.params.out_shape]

    def fan_in_size(self, i: int = 0) -> int:
        return len(self.params.out2in[0])

    def fan_out_size(self, i: int = 0) -> int:
        return 1

    def layer_type(self) -> str:
        return "max-pool"

    def get_config(self) -> Dict[str, Any]:
        p = self.params
        return {
            "in_width": p.in_shape.width,
            "in_height": p.in_shape.height,
            "in_channels": p.in_shape.depth,
            "pooling_size": [p.pool_x, p.pool_y],
            "stride": [p.stride_x, p.stride_y],
            "padding": p.padding.value,
            "activation": self._activation_config(),
            "engine": self.engine.value,
        }
