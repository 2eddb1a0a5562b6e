"""
Geometry records and execution context shared by layers and kernels.

Layers derive a params record once at construction; kernels only read it.
`OpContext` bundles the params with per-layer execution state: the
parallelization flag, an optional compiled program, and a scratch workspace
(e.g. the max-pool winner indices kept between forward and backward).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np

from ...domain._connection_table import ConnectionTable
from ...domain._errors import ConfigurationError
from ...domain._shape import Padding, Shape3D, conv_out_length


def _pair(v, name: str) -> tuple[int, int]:
    if isinstance(v, (tuple, list)):
        if len(v) != 2:
            raise ValueError(f"{name} must be an int or a pair, got {v!r}")
        return int(v[0]), int(v[1])
    return int(v), int(v)


@dataclass(eq=False)
class FullyParams:
    in_size: int
    out_size: int
    has_bias: bool = True

    def signature(self) -> tuple:
        return ("fully", self.in_size, self.out_size, self.has_bias)


@dataclass(eq=False)
class ConvParams:
    """
    Convolution geometry.

    ``in_padded`` is the working input after "same" padding; ``pad_left`` /
    ``pad_top`` locate the visible input inside it.
    """

    in_shape: Shape3D
    in_padded: Shape3D
    out_shape: Shape3D
    weight: Shape3D
    padding: Padding
    w_stride: int
    h_stride: int
    has_bias: bool
    table: ConnectionTable = field(default_factory=ConnectionTable)

    @property
    def pad_left(self) -> int:
        return self.weight.width // 2 if self.padding is Padding.SAME else 0

    @property
    def pad_top(self) -> int:
        return self.weight.height // 2 if self.padding is Padding.SAME else 0

    def mask(self) -> np.ndarray:
        """``(out_channels, in_channels)`` connectivity mask."""
        return self.table.as_mask(self.out_shape.depth, self.in_shape.depth)

    def signature(self) -> tuple:
        return (
            "conv2d",
            self.in_shape.as_tuple(),
            self.out_shape.as_tuple(),
            self.weight.as_tuple(),
            self.padding.value,
            self.w_stride,
            self.h_stride,
            self.has_bias,
            tuple(self.table.to_list() or ()),
        )

    @classmethod
    def build(
        cls,
        in_width: int,
        in_height: int,
        window,
        in_channels: int,
        out_channels: int,
        padding: Padding,
        has_bias: bool,
        w_stride: int,
        h_stride: int,
        table: Optional[ConnectionTable] = None,
    ) -> "ConvParams":
        kw, kh = _pair(window, "window_size")
        if w_stride < 1 or h_stride < 1:
            raise ConfigurationError(
                f"conv: strides must be >= 1, got ({w_stride}, {h_stride})"
            )
        if padding is Padding.VALID and (kw > in_width or kh > in_height):
            raise ConfigurationError(
                f"conv: window {kw}x{kh} does not fit input {in_width}x{in_height} "
                "with valid padding"
            )
        out_w = conv_out_length(in_width, kw, w_stride, padding)
        out_h = conv_out_length(in_height, kh, h_stride, padding)
        if padding is Padding.SAME:
            padded = Shape3D(in_width + kw - 1, in_height + kh - 1, in_channels)
        else:
            padded = Shape3D(in_width, in_height, in_channels)
        table = table if table is not None else ConnectionTable()
        params = cls(
            in_shape=Shape3D(in_width, in_height, in_channels),
            in_padded=padded,
            out_shape=Shape3D(out_w, out_h, out_channels),
            weight=Shape3D(kw, kh, in_channels * out_channels),
            padding=padding,
            w_stride=int(w_stride),
            h_stride=int(h_stride),
            has_bias=bool(has_bias),
            table=table,
        )
        try:
            params.mask()
        except ValueError as e:
            raise ConfigurationError(f"conv: {e}") from e
        return params


@dataclass(eq=False)
class DeconvParams:
    """
    Transposed convolution geometry.

    ``full`` is the uncropped output ``stride * (in - 1) + window``; with
    "same" padding the visible output is ``in * stride`` cropped from
    ``(crop_left, crop_top)``.
    """

    in_shape: Shape3D
    full: Shape3D
    out_shape: Shape3D
    weight: Shape3D
    padding: Padding
    w_stride: int
    h_stride: int
    has_bias: bool
    table: ConnectionTable = field(default_factory=ConnectionTable)

    @property
    def crop_left(self) -> int:
        return self.weight.width // 2 if self.padding is Padding.SAME else 0

    @property
    def crop_top(self) -> int:
        return self.weight.height // 2 if self.padding is Padding.SAME else 0

    def mask(self) -> np.ndarray:
        return self.table.as_mask(self.out_shape.depth, self.in_shape.depth)

    def signature(self) -> tuple:
        return (
            "deconv2d",
            self.in_shape.as_tuple(),
            self.out_shape.as_tuple(),
            self.weight.as_tuple(),
            self.padding.value,
            self.w_stride,
            self.h_stride,
            self.has_bias,
            tuple(self.table.to_list() or ()),
        )

    @classmethod
    def build(
        cls,
        in_width: int,
        in_height: int,
        window,
        in_channels: int,
        out_channels: int,
        padding: Padding,
        has_bias: bool,
        w_stride: int,
        h_stride: int,
        table: Optional[ConnectionTable] = None,
    ) -> "DeconvParams":
        kw, kh = _pair(window, "window_size")
        if w_stride < 1 or h_stride < 1:
            raise ConfigurationError(
                f"deconv: strides must be >= 1, got ({w_stride}, {h_stride})"
            )
        full_w = w_stride * (in_width - 1) + kw
        full_h = h_stride * (in_height - 1) + kh
        if padding is Padding.SAME:
            out_w, out_h = in_width * w_stride, in_height * h_stride
            if kw // 2 + out_w > full_w or kh // 2 + out_h > full_h:
                raise ConfigurationError(
                    f"deconv: 'same' padding needs window >= stride + window // 2, "
                    f"got window {kw}x{kh} with stride ({w_stride}, {h_stride})"
                )
        else:
            out_w, out_h = full_w, full_h
        table = table if table is not None else ConnectionTable()
        params = cls(
            in_shape=Shape3D(in_width, in_height, in_channels),
            full=Shape3D(full_w, full_h, out_channels),
            out_shape=Shape3D(out_w, out_h, out_channels),
            weight=Shape3D(kw, kh, in_channels * out_channels),
            padding=padding,
            w_stride=int(w_stride),
            h_stride=int(h_stride),
            has_bias=bool(has_bias),
            table=table,
        )
        try:
            params.mask()
        except ValueError as e:
            raise ConfigurationError(f"deconv: {e}") from e
        return params


@dataclass(eq=False)
class MaxPoolParams:
    """
    Max-pooling geometry plus its routing tables.

    ``out2in[o]`` lists the input indices pooled into output ``o``;
    ``in2out[i]`` is the (last) output whose window covers input ``i``, or
    -1 when no window covers it. ``gather`` is ``out2in`` padded to a
    rectangle by repeating each row's first index.
    """

    in_shape: Shape3D
    out_shape: Shape3D
    pool_x: int
    pool_y: int
    stride_x: int
    stride_y: int
    padding: Padding
    out2in: list = field(default_factory=list)
    in2out: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    gather: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int64))

    has_bias = False

    def signature(self) -> tuple:
        return (
            "maxpool",
            self.in_shape.as_tuple(),
            self.pool_x,
            self.pool_y,
            self.stride_x,
            self.stride_y,
            self.padding.value,
        )

    @classmethod
    def build(
        cls,
        in_width: int,
        in_height: int,
        in_channels: int,
        pool_x: int,
        pool_y: int,
        stride_x: int,
        stride_y: int,
        padding: Padding,
    ) -> "MaxPoolParams":
        if pool_x < 1 or pool_y < 1 or stride_x < 1 or stride_y < 1:
            raise ConfigurationError(
                f"max-pool: pool and stride must be >= 1, got pool ({pool_x}, "
                f"{pool_y}) stride ({stride_x}, {stride_y})"
            )
        if padding is Padding.VALID and (pool_x > in_width or pool_y > in_height):
            raise ConfigurationError(
                f"max-pool: pool {pool_x}x{pool_y} does not fit input "
                f"{in_width}x{in_height} with valid padding"
            )
        in_shape = Shape3D(in_width, in_height, in_channels)
        out_shape = Shape3D(
            conv_out_length(in_width, pool_x, stride_x, padding),
            conv_out_length(in_height, pool_y, stride_y, padding),
            in_channels,
        )

        out2in: list = [[] for _ in range(out_shape.size())]
        in2out = np.full(in_shape.size(), -1, dtype=np.int64)
        for c in range(in_channels):
            for oy in range(out_shape.height):
                for ox in range(out_shape.width):
                    o = out_shape.get_index(ox, oy, c)
                    dymax = min(pool_y, in_height - oy * stride_y)
                    dxmax = min(pool_x, in_width - ox * stride_x)
                    for dy in range(dymax):
                        for dx in range(dxmax):
                            i = in_shape.get_index(
                                ox * stride_x + dx, oy * stride_y + dy, c
                            )
                            out2in[o].append(i)
                            in2out[i] = o

        width = max((len(r) for r in out2in), default=0)
        gather = np.empty((len(out2in), width), dtype=np.int64)
        for o, row in enumerate(out2in):
            gather[o, : len(row)] = row
            gather[o, len(row) :] = row[0]

        return cls(
            in_shape=in_shape,
            out_shape=out_shape,
            pool_x=int(pool_x),
            pool_y=int(pool_y),
            stride_x=int(stride_x),
            stride_y=int(stride_y),
            padding=padding,
            out2in=out2in,
            in2out=in2out,
            gather=gather,
        )


@dataclass(eq=False)
class OpContext:
    """
    Per-layer execution context handed to every kernel call.

    Attributes
    ----------
    params : object
        Geometry record of the layer.
    parallelize : bool
        Whether per-sample work may be spread over the thread pool.
    program : object, optional
        Compiled program for accelerated kernels.
    workspace : dict
        Scratch state kept between forward and backward.
    """

    params: Any
    parallelize: bool = True
    program: Any = None
    workspace: Dict[str, Any] = field(default_factory=dict)
