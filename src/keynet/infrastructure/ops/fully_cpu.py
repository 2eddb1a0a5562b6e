"""
CPU kernels for the fully-connected operation.

The weight is stored flat as ``W[c * out_size + i]``, i.e. an
``(in_size, out_size)`` matrix, and the forward pass is ``y = x @ W + b``.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from ...domain._types import BackendType
from ..utils._parallel import for_i
from ._params import OpContext
from ._registry import BACKWARD, FORWARD, register_kernel


def _matrix(ctx: OpContext, weight: np.ndarray) -> np.ndarray:
    p = ctx.params
    return weight.reshape(p.in_size, p.out_size)


@register_kernel("fully", BackendType.INTERNAL, FORWARD)
def fully_forward_internal(
    ctx: OpContext,
    x: np.ndarray,
    weight: np.ndarray,
    bias: Optional[np.ndarray],
    out: np.ndarray,
) -> None:
    W = _matrix(ctx, weight)

    def sample(s: int) -> None:
        out[s] = x[s] @ W
        if bias is not None:
            out[s] += bias

    for_i(ctx.parallelize, x.shape[0], sample)


@register_kernel("fully", BackendType.INTERNAL, BACKWARD)
def fully_backward_internal(
    ctx: OpContext,
    x: np.ndarray,
    weight: np.ndarray,
    delta: np.ndarray,
    dx: np.ndarray,
    dW: Optional[np.ndarray],
    db: Optional[np.ndarray],
) -> None:
    W = _matrix(ctx, weight)

    def sample(s: int) -> None:
        dx[s] += W @ delta[s]
        if dW is not None:
            dW[s] += np.outer(x[s], delta[s]).reshape(-1)
        if db is not None:
            db[s] += delta[s]

    for_i(ctx.parallelize, x.shape[0], sample)


@register_kernel("fully", BackendType.VECTORIZED, FORWARD)
def fully_forward_vectorized(ctx, x, weight, bias, out) -> None:
    np.matmul(x, _matrix(ctx, weight), out=out)
    if bias is not None:
        out += bias


@register_kernel("fully", BackendType.VECTORIZED, BACKWARD)
def fully_backward_vectorized(ctx, x, weight, delta, dx, dW, db) -> None:
    dx += delta @ _matrix(ctx, weight).T
    if dW is not None:
        dW += np.einsum("ni,no->nio", x, delta).reshape(x.shape[0], -1)
    if db is not None:
        db += delta
