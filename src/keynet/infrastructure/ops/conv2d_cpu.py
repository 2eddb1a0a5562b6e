"""
CPU kernels for 2D convolution (channel-major, per-sample rows).

This module implements convolution forward and backward for two engines:

- INTERNAL: per-sample loops over (output channel, input channel, kernel
  offset), each step a strided slice multiply-accumulate.
- VECTORIZED: whole-batch `sliding_window_view` + `einsum`.

Conventions
-----------
- Inputs arrive as ``(N, C_in * H * W)`` rows laid out per `Shape3D`
  (channel, then row, then column).
- Weights are flat ``((C_in * o + inc) * kh + wy) * kw + wx``, i.e. an
  ``(C_out, C_in, kh, kw)`` array.
- The connection table masks ``(o, inc)`` pairs out of all three
  accumulations (output, input gradient, weight gradient).
- "same" padding is an explicit copy into a zeroed working buffer once per
  forward and an explicit crop of the working gradient once per backward.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from ...domain._shape import Padding
from ...domain._types import BackendType
from ..utils._parallel import for_i
from ._params import ConvParams, OpContext
from ._registry import BACKWARD, FORWARD, register_kernel


def pad_input(p: ConvParams, x: np.ndarray) -> np.ndarray:
    """Return the ``(N, C, Hp, Wp)`` working input."""
    n = x.shape[0]
    s = p.in_shape
    xi = x.reshape(n, s.depth, s.height, s.width)
    if p.padding is Padding.VALID:
        return xi
    xp = np.zeros(
        (n, s.depth, p.in_padded.height, p.in_padded.width), dtype=x.dtype
    )
    xp[:, :, p.pad_top : p.pad_top + s.height, p.pad_left : p.pad_left + s.width] = xi
    return xp


def unpad_grad(p: ConvParams, dxp: np.ndarray) -> np.ndarray:
    """Crop the working input gradient back to ``(N, C * H * W)``."""
    s = p.in_shape
    if p.padding is not Padding.VALID:
        dxp = dxp[
            :, :, p.pad_top : p.pad_top + s.height, p.pad_left : p.pad_left + s.width
        ]
    return dxp.reshape(dxp.shape[0], -1)


def weight_array(p: ConvParams, weight: np.ndarray) -> np.ndarray:
    return weight.reshape(
        p.out_shape.depth, p.in_shape.depth, p.weight.height, p.weight.width
    )


def _window(p: ConvParams, wy: int, wx: int) -> tuple:
    oh, ow = p.out_shape.height, p.out_shape.width
    return (
        slice(wy, wy + p.h_stride * (oh - 1) + 1, p.h_stride),
        slice(wx, wx + p.w_stride * (ow - 1) + 1, p.w_stride),
    )


@register_kernel("conv2d", BackendType.INTERNAL, FORWARD)
def conv2d_forward_internal(
    ctx: OpContext,
    x: np.ndarray,
    weight: np.ndarray,
    bias: Optional[np.ndarray],
    out: np.ndarray,
) -> None:
    p: ConvParams = ctx.params
    xp = pad_input(p, x)
    W = weight_array(p, weight)
    mask = p.mask()
    n = x.shape[0]
    co, ci = p.out_shape.depth, p.in_shape.depth
    kh, kw = p.weight.height, p.weight.width
    y = np.zeros((n, co, p.out_shape.height, p.out_shape.width), dtype=out.dtype)

    def sample(s: int) -> None:
        for o in range(co):
            acc = y[s, o]
            for inc in range(ci):
                if not mask[o, inc]:
                    continue
                plane = xp[s, inc]
                for wy in range(kh):
                    for wx in range(kw):
                        acc += W[o, inc, wy, wx] * plane[_window(p, wy, wx)]
            if bias is not None:
                acc += bias[o]

    for_i(ctx.parallelize, n, sample)
    out[...] = y.reshape(n, -1)


@register_kernel("conv2d", BackendType.INTERNAL, BACKWARD)
def conv2d_backward_internal(
    ctx: OpContext,
    x: np.ndarray,
    weight: np.ndarray,
    delta: np.ndarray,
    dx: np.ndarray,
    dW: Optional[np.ndarray],
    db: Optional[np.ndarray],
) -> None:
    p: ConvParams = ctx.params
    xp = pad_input(p, x)
    dxp = np.zeros(xp.shape, dtype=dx.dtype)
    W = weight_array(p, weight)
    mask = p.mask()
    n = x.shape[0]
    co, ci = p.out_shape.depth, p.in_shape.depth
    kh, kw = p.weight.height, p.weight.width
    d = delta.reshape(n, co, p.out_shape.height, p.out_shape.width)
    dWv = dW.reshape(n, co, ci, kh, kw) if dW is not None else None

    def sample(s: int) -> None:
        for o in range(co):
            curr = d[s, o]
            for inc in range(ci):
                if not mask[o, inc]:
                    continue
                plane = xp[s, inc]
                grad_plane = dxp[s, inc]
                for wy in range(kh):
                    for wx in range(kw):
                        win = _window(p, wy, wx)
                        grad_plane[win] += W[o, inc, wy, wx] * curr
                        if dWv is not None:
                            dWv[s, o, inc, wy, wx] += np.sum(plane[win] * curr)
        if db is not None:
            db[s] += d[s].sum(axis=(1, 2))

    for_i(ctx.parallelize, n, sample)
    dx += unpad_grad(p, dxp)


def _windows(p: ConvParams, xp: np.ndarray) -> np.ndarray:
    """``(N, C_in, out_h, out_w, kh, kw)`` strided windows over `xp`."""
    win = sliding_window_view(xp, (p.weight.height, p.weight.width), axis=(2, 3))
    win = win[:, :, :: p.h_stride, :: p.w_stride]
    return win[:, :, : p.out_shape.height, : p.out_shape.width]


@register_kernel("conv2d", BackendType.VECTORIZED, FORWARD)
def conv2d_forward_vectorized(ctx, x, weight, bias, out) -> None:
    p: ConvParams = ctx.params
    Wm = weight_array(p, weight) * p.mask()[:, :, None, None]
    y = np.einsum("nchwij,ocij->nohw", _windows(p, pad_input(p, x)), Wm, optimize=True)
    if bias is not None:
        y += bias[None, :, None, None]
    out[...] = y.reshape(x.shape[0], -1)


@register_kernel("conv2d", BackendType.VECTORIZED, BACKWARD)
def conv2d_backward_vectorized(ctx, x, weight, delta, dx, dW, db) -> None:
    p: ConvParams = ctx.params
    n = x.shape[0]
    mask = p.mask()
    Wm = weight_array(p, weight) * mask[:, :, None, None]
    xp = pad_input(p, x)
    d = delta.reshape(n, p.out_shape.depth, p.out_shape.height, p.out_shape.width)

    dxp = np.zeros(xp.shape, dtype=dx.dtype)
    for wy in range(p.weight.height):
        for wx in range(p.weight.width):
            dxp[(slice(None), slice(None)) + _window(p, wy, wx)] += np.einsum(
                "nohw,oc->nchw", d, Wm[:, :, wy, wx]
            )
    dx += unpad_grad(p, dxp)

    if dW is not None:
        g = np.einsum("nchwij,nohw->nocij", _windows(p, xp), d, optimize=True)
        dW += (g * mask[None, :, :, None, None]).reshape(n, -1)
    if db is not None:
        db += d.sum(axis=(2, 3))
