"""
Accelerated, forward-only kernels for convolution and deconvolution.

The accelerated engine runs *programs*: index plans compiled once per layer
geometry and reused for every batch. A convolution program is an im2col
gather plan (so the forward pass is one gather plus one matrix product); a
deconvolution program is the matching col2im scatter plan.

Programs are normally compiled through a `Device`, which caches them by
kernel signature. A layer that was never registered on a device compiles a
private program on first use.

Preconditions (bias present, unit stride) are enforced by the capability
table before these kernels are ever resolved.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

import numpy as np

from ...domain._types import BackendType
from ._params import ConvParams, DeconvParams, OpContext
from ._registry import FORWARD, register_kernel
from .conv2d_cpu import pad_input
from .conv2d_cpu import weight_array as conv_weight_array
from .deconv2d_cpu import crop_output
from .deconv2d_cpu import weight_array as deconv_weight_array


@dataclass(eq=False)
class Conv2dProgram:
    """im2col plan: ``index[k, p]`` is the flat padded-input offset read by
    kernel tap ``k`` at output position ``p``."""

    signature: tuple
    index: np.ndarray


@dataclass(eq=False)
class Deconv2dProgram:
    """col2im plan: ``index[k, p]`` is the flat full-output offset written by
    kernel tap ``k`` from input position ``p``."""

    signature: tuple
    index: np.ndarray


Program = Union[Conv2dProgram, Deconv2dProgram]


def _taps(channels: int, kh: int, kw: int):
    c, wy, wx = np.meshgrid(
        np.arange(channels), np.arange(kh), np.arange(kw), indexing="ij"
    )
    return c.reshape(-1), wy.reshape(-1), wx.reshape(-1)


def compile_conv2d(p: ConvParams) -> Conv2dProgram:
    hp, wp = p.in_padded.height, p.in_padded.width
    oh, ow = p.out_shape.height, p.out_shape.width
    c, wy, wx = _taps(p.in_shape.depth, p.weight.height, p.weight.width)
    oy, ox = np.meshgrid(np.arange(oh), np.arange(ow), indexing="ij")
    rows = oy.reshape(-1) * p.h_stride
    cols = ox.reshape(-1) * p.w_stride
    index = (
        (c[:, None] * hp + wy[:, None] + rows[None, :]) * wp
        + wx[:, None]
        + cols[None, :]
    )
    return Conv2dProgram(signature=p.signature(), index=index.astype(np.int64))


def compile_deconv2d(p: DeconvParams) -> Deconv2dProgram:
    fh, fw = p.full.height, p.full.width
    h, w = p.in_shape.height, p.in_shape.width
    o, wy, wx = _taps(p.out_shape.depth, p.weight.height, p.weight.width)
    iy, ix = np.meshgrid(np.arange(h), np.arange(w), indexing="ij")
    rows = iy.reshape(-1) * p.h_stride
    cols = ix.reshape(-1) * p.w_stride
    index = (
        (o[:, None] * fh + wy[:, None] + rows[None, :]) * fw
        + wx[:, None]
        + cols[None, :]
    )
    return Deconv2dProgram(signature=p.signature(), index=index.astype(np.int64))


def compile_program(params: object) -> Program:
    """
    Compile the accelerated program for a layer geometry.

    Raises
    ------
    TypeError
        If the geometry has no accelerated program.
    """
    if isinstance(params, ConvParams):
        return compile_conv2d(params)
    if isinstance(params, DeconvParams):
        return compile_deconv2d(params)
    raise TypeError(f"no accelerated program for {type(params).__name__}")


def _program(ctx: OpContext) -> Program:
    if ctx.program is not None:
        return ctx.program
    prog = ctx.workspace.get("local_program")
    if prog is None:
        prog = compile_program(ctx.params)
        ctx.workspace["local_program"] = prog
    return prog


@register_kernel("conv2d", BackendType.ACCELERATED, FORWARD)
def conv2d_forward_accelerated(ctx: OpContext, x, weight, bias, out) -> None:
    p: ConvParams = ctx.params
    n = x.shape[0]
    prog = _program(ctx)
    cols = pad_input(p, x).reshape(n, -1)[:, prog.index]
    Wm = conv_weight_array(p, weight) * p.mask()[:, :, None, None]
    y = np.einsum("ok,nkp->nop", Wm.reshape(Wm.shape[0], -1), cols, optimize=True)
    y += bias[None, :, None]
    out[...] = y.reshape(n, -1)


@register_kernel("deconv2d", BackendType.ACCELERATED, FORWARD)
def deconv2d_forward_accelerated(ctx: OpContext, x, weight, bias, out) -> None:
    p: DeconvParams = ctx.params
    n = x.shape[0]
    prog = _program(ctx)
    Wm = deconv_weight_array(p, weight) * p.mask()[:, :, None, None]
    # (C_out, C_in, kh, kw) -> (C_out * kh * kw, C_in)
    Wt = Wm.transpose(0, 2, 3, 1).reshape(-1, p.in_shape.depth)
    xi = x.reshape(n, p.in_shape.depth, -1)
    cols = np.einsum("kc,ncp->nkp", Wt, xi, optimize=True)

    size = p.full.size()
    flat = (prog.index[None, :, :] + (np.arange(n) * size)[:, None, None]).reshape(-1)
    full = np.bincount(flat, weights=cols.reshape(-1), minlength=n * size)
    full = full.astype(out.dtype).reshape(n, p.full.depth, p.full.height, p.full.width)

    y = crop_output(p, full) + bias[None, :, None, None]
    out[...] = y.reshape(n, -1)
