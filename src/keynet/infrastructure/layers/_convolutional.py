"""
2D convolution and transposed convolution layers.

Both layers take a ``(width, height, channels)`` input laid out channel-major
and keep their weight as an ``(kw, kh, in_channels, out_channels)``
parameter whose flat order is ``((in_c * o + inc) * kh + wy) * kw + wx``.
An optional `ConnectionTable` restricts which input channels feed which
output channel.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple, Union

from ...domain._connection_table import ConnectionTable
from ...domain._shape import Padding, Shape3D
from ...domain._types import ParameterType, VectorType
from ..ops._params import ConvParams, DeconvParams
from ..serialization._config import register_layer
from ._feedforward import FeedForwardLayer

Window = Union[int, Tuple[int, int]]


def _table_config(table: ConnectionTable) -> Optional[Dict[str, Any]]:
    if table.is_empty():
        return None
    return {"table": table.to_list(), "rows": table.rows, "cols": table.cols}


def _table_from(cfg: Union[None, ConnectionTable, Dict[str, Any]]) -> Optional[ConnectionTable]:
    if cfg is None or isinstance(cfg, ConnectionTable):
        return cfg
    return ConnectionTable(cfg["table"], cfg["rows"], cfg["cols"])


class _SpatialLayer(FeedForwardLayer):
    """Shared construction and introspection of conv / deconv."""

    _op = ""
    _params_type: Any = None

    def __init__(
        self,
        in_width: int,
        in_height: int,
        window_size: Window,
        in_channels: int,
        out_channels: int,
        padding: Union[Padding, str] = Padding.VALID,
        has_bias: bool = True,
        w_stride: int = 1,
        h_stride: int = 1,
        connection_table: Union[None, ConnectionTable, Dict[str, Any]] = None,
        activation: Any = None,
        engine: Any = None,
    ) -> None:
        padding = Padding.parse(padding)
        params = self._params_type.build(
            in_width,
            in_height,
            window_size,
            in_channels,
            out_channels,
            padding,
            has_bias,
            w_stride,
            h_stride,
            _table_from(connection_table),
        )
        in_types = [VectorType.DATA, VectorType.WEIGHT]
        if has_bias:
            in_types.append(VectorType.BIAS)
        super().__init__(
            self._op,
            params,
            in_types,
            activation=activation,
            engine=engine,
            strides=(w_stride, h_stride),
        )
        kw, kh = params.weight.width, params.weight.height
        self.add_parameter(kw, kh, in_channels, out_channels, ParameterType.WEIGHT)
        if has_bias:
            self.add_parameter(1, 1, 1, out_channels, ParameterType.BIAS)

    def in_shape(self) -> List[Shape3D]:
        p = self.params
        shapes = [p.in_shape, p.weight]
        if p.has_bias:
            shapes.append(Shape3D(1, 1, p.out_shape.depth))
        return shapes

    def out_shape(self) -> List[Shape3D]:
        return [self.params.out_shape]

    def fan_in_size(self, i: int = 0) -> int:
        p = self.params
        return p.weight.width * p.weight.height * p.in_shape.depth

    def get_config(self) -> Dict[str, Any]:
        p = self.params
        return {
            "in_width": p.in_shape.width,
            "in_height": p.in_shape.height,
            "window_size": [p.weight.width, p.weight.height],
            "in_channels": p.in_shape.depth,
            "out_channels": p.out_shape.depth,
            "padding": p.padding.value,
            "has_bias": p.has_bias,
            "w_stride": p.w_stride,
            "h_stride": p.h_stride,
            "connection_table": _table_config(p.table),
            "activation": self._activation_config(),
            "engine": self.engine.value,
        }

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "_SpatialLayer":
        cfg = dict(cfg)
        cfg["window_size"] = tuple(cfg["window_size"])
        return cls(**cfg)


@register_layer()
class ConvolutionalLayer(_SpatialLayer):
    """
    2D convolution.

    Parameters
    ----------
    in_width, in_height : int
        Spatial input size.
    window_size : int or (int, int)
        Kernel width (and height).
    in_channels, out_channels : int
        Channel counts.
    padding : Padding or str
        "valid" (output shrinks) or "same" (``out = ceil(in / stride)``).
    has_bias : bool
        Whether to learn a per-output-channel bias.
    w_stride, h_stride : int
        Horizontal / vertical strides.
    connection_table : ConnectionTable, optional
        Input/output channel connectivity; fully connected when omitted.
    activation : str, dict or Activation, optional
        Activation strategy.
    engine : BackendType or str, optional
        Numeric engine.

    Raises
    ------
    ConfigurationError
        On invalid geometry or a connection table of the wrong size.
    BackendCapabilityError
        If the engine cannot run this configuration.
    """

    _op = "conv2d"
    _params_type = ConvParams

    def fan_out_size(self, i: int = 0) -> int:
        p = self.params
        return (
            (p.weight.width // p.w_stride)
            * (p.weight.height // p.h_stride)
            * p.out_shape.depth
        )

    def layer_type(self) -> str:
        return "conv"


@register_layer()
class DeconvolutionalLayer(_SpatialLayer):
    """
    2D transposed convolution.

    Takes the same arguments as `ConvolutionalLayer`. The uncropped output is
    ``stride * (in - 1) + window`` per axis; "same" padding crops it to
    ``in * stride`` starting at ``window // 2``.
    """

    _op = "deconv2d"
    _params_type = DeconvParams

    def fan_out_size(self, i: int = 0) -> int:
        p = self.params
        return (
            p.weight.width
            * p.w_stride
            * p.weight.height
            * p.h_stride
            * p.out_shape.depth
        )

    def layer_type(self) -> str:
        return "deconv"
