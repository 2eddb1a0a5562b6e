"""
CPU kernels for 2D transposed convolution (deconvolution).

Each input element scatters a weighted kernel patch into the uncropped
output of size ``stride * (in - 1) + window``:

    full[o, y*sh + wy, x*sw + wx] += in[inc, y, x] * W[o, inc, wy, wx]

With "same" padding the visible output is cropped from the full buffer; the
backward pass copies the output gradient back into a zeroed full-size buffer
before correlating. Weight layout and connection-table gating follow the
convolution kernels.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ...domain._types import BackendType
from ..utils._parallel import for_i
from ._params import DeconvParams, OpContext
from ._registry import BACKWARD, FORWARD, register_kernel


def weight_array(p: DeconvParams, weight: np.ndarray) -> np.ndarray:
    return weight.reshape(
        p.out_shape.depth, p.in_shape.depth, p.weight.height, p.weight.width
    )


def _scatter_window(p: DeconvParams, wy: int, wx: int) -> tuple:
    h, w = p.in_shape.height, p.in_shape.width
    return (
        slice(wy, wy + p.h_stride * (h - 1) + 1, p.h_stride),
        slice(wx, wx + p.w_stride * (w - 1) + 1, p.w_stride),
    )


def crop_output(p: DeconvParams, full: np.ndarray) -> np.ndarray:
    """Cut the visible ``(N, C_out, out_h, out_w)`` region out of `full`."""
    o = p.out_shape
    return full[
        :, :, p.crop_top : p.crop_top + o.height, p.crop_left : p.crop_left + o.width
    ]


def pad_delta(p: DeconvParams, delta: np.ndarray) -> np.ndarray:
    """Place the output gradient into a zeroed full-size buffer."""
    n = delta.shape[0]
    o = p.out_shape
    dfull = np.zeros((n, o.depth, p.full.height, p.full.width), dtype=delta.dtype)
    dfull[
        :, :, p.crop_top : p.crop_top + o.height, p.crop_left : p.crop_left + o.width
    ] = delta.reshape(n, o.depth, o.height, o.width)
    return dfull


def _finish_forward(p: DeconvParams, full, bias, out) -> None:
    y = crop_output(p, full)
    if bias is not None:
        y = y + bias[None, :, None, None]
    out[...] = y.reshape(out.shape[0], -1)


@register_kernel("deconv2d", BackendType.INTERNAL, FORWARD)
def deconv2d_forward_internal(
    ctx: OpContext,
    x: np.ndarray,
    weight: np.ndarray,
    bias: Optional[np.ndarray],
    out: np.ndarray,
) -> None:
    p: DeconvParams = ctx.params
    n = x.shape[0]
    s = p.in_shape
    xi = x.reshape(n, s.depth, s.height, s.width)
    W = weight_array(p, weight)
    mask = p.mask()
    full = np.zeros((n, p.full.depth, p.full.height, p.full.width), dtype=out.dtype)

    def sample(i: int) -> None:
        for o in range(p.out_shape.depth):
            dst = full[i, o]
            for inc in range(s.depth):
                if not mask[o, inc]:
                    continue
                for wy in range(p.weight.height):
                    for wx in range(p.weight.width):
                        dst[_scatter_window(p, wy, wx)] += W[o, inc, wy, wx] * xi[i, inc]

    for_i(ctx.parallelize, n, sample)
    _finish_forward(p, full, bias, out)


@register_kernel("deconv2d", BackendType.INTERNAL, BACKWARD)
def deconv2d_backward_internal(
    ctx: OpContext,
    x: np.ndarray,
    weight: np.ndarray,
    delta: np.ndarray,
    dx: np.ndarray,
    dW: Optional[np.ndarray],
    db: Optional[np.ndarray],
) -> None:
    p: DeconvParams = ctx.params
    n = x.shape[0]
    s = p.in_shape
    co, ci = p.out_shape.depth, s.depth
    kh, kw = p.weight.height, p.weight.width
    xi = x.reshape(n, ci, s.height, s.width)
    dxi = dx.reshape(n, ci, s.height, s.width)
    W = weight_array(p, weight)
    mask = p.mask()
    dfull = pad_delta(p, delta)
    dWv = dW.reshape(n, co, ci, kh, kw) if dW is not None else None

    def sample(i: int) -> None:
        for o in range(co):
            src = dfull[i, o]
            for inc in range(ci):
                if not mask[o, inc]:
                    continue
                for wy in range(kh):
                    for wx in range(kw):
                        patch = src[_scatter_window(p, wy, wx)]
                        dxi[i, inc] += W[o, inc, wy, wx] * patch
                        if dWv is not None:
                            dWv[i, o, inc, wy, wx] += np.sum(xi[i, inc] * patch)
        if db is not None:
            db[i] += crop_output(p, dfull[i : i + 1])[0].sum(axis=(1, 2))

    for_i(ctx.parallelize, n, sample)


@register_kernel("deconv2d", BackendType.VECTORIZED, FORWARD)
def deconv2d_forward_vectorized(ctx, x, weight, bias, out) -> None:
    p: DeconvParams = ctx.params
    n = x.shape[0]
    s = p.in_shape
    xi = x.reshape(n, s.depth, s.height, s.width)
    Wm = weight_array(p, weight) * p.mask()[:, :, None, None]
    full = np.zeros((n, p.full.depth, p.full.height, p.full.width), dtype=out.dtype)
    for wy in range(p.weight.height):
        for wx in range(p.weight.width):
            full[(slice(None), slice(None)) + _scatter_window(p, wy, wx)] += np.einsum(
                "nchw,oc->nohw", xi, Wm[:, :, wy, wx]
            )
    _finish_forward(p, full, bias, out)


@register_kernel("deconv2d", BackendType.VECTORIZED, BACKWARD)
def deconv2d_backward_vectorized(ctx, x, weight, delta, dx, dW, db) -> None:
    p: DeconvParams = ctx.params
    n = x.shape[0]
    s = p.in_shape
    mask = p.mask()
    Wm = weight_array(p, weight) * mask[:, :, None, None]
    xi = x.reshape(n, s.depth, s.height, s.width)
    dfull = pad_delta(p, delta)

    win = sliding_window_view(dfull, (p.weight.height, p.weight.width), axis=(2, 3))
    win = win[:, :, :: p.h_stride, :: p.w_stride][:, :, : s.height, : s.width]

    dx += np.einsum("nohwij,ocij->nchw", win, Wm, optimize=True).reshape(n, -1)
    if dW is not None:
        g = np.einsum("nchw,nohwij->nocij", xi, win, optimize=True)
        dW += (g * mask[None, :, :, None, None]).reshape(n, -1)
    if db is not None:
        db += crop_output(p, dfull).sum(axis=(2, 3))
