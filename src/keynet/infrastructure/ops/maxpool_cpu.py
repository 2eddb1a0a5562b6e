"""
CPU kernels for table-driven max pooling.

Forward picks, per output, the largest input among its ``out2in`` set; the
first maximum wins on ties. The winning input index is stored per sample in
``ctx.workspace["max_idx"]`` and the backward pass routes each output
gradient to that input only.
"""

from __future__ import annotations

import numpy as np

from ...domain._errors import ContractViolationError
from ...domain._types import BackendType
from ..utils._parallel import for_i
from ._params import MaxPoolParams, OpContext
from ._registry import BACKWARD, FORWARD, register_kernel


def _winners(ctx: OpContext, n: int) -> np.ndarray:
    p: MaxPoolParams = ctx.params
    idx = ctx.workspace.get("max_idx")
    if idx is None or idx.shape[0] < n:
        idx = np.zeros((n, p.out_shape.size()), dtype=np.int64)
        ctx.workspace["max_idx"] = idx
    return idx


@register_kernel("maxpool", BackendType.INTERNAL, FORWARD)
def maxpool_forward_internal(ctx: OpContext, x, weight, bias, out) -> None:
    p: MaxPoolParams = ctx.params
    n = x.shape[0]
    winners = _winners(ctx, n)

    def sample(s: int) -> None:
        row = x[s]
        for o, candidates in enumerate(p.out2in):
            best = candidates[0]
            for i in candidates[1:]:
                if row[i] > row[best]:
                    best = i
            winners[s, o] = best
            out[s, o] = row[best]

    for_i(ctx.parallelize, n, sample)


@register_kernel("maxpool", BackendType.VECTORIZED, FORWARD)
def maxpool_forward_vectorized(ctx: OpContext, x, weight, bias, out) -> None:
    p: MaxPoolParams = ctx.params
    n = x.shape[0]
    winners = _winners(ctx, n)
    vals = x[:, p.gather]
    arg = np.argmax(vals, axis=2)
    winners[:n] = np.take_along_axis(
        np.broadcast_to(p.gather, vals.shape), arg[:, :, None], axis=2
    )[:, :, 0]
    out[...] = np.take_along_axis(vals, arg[:, :, None], axis=2)[:, :, 0]


def _require_winners(ctx: OpContext, n: int) -> np.ndarray:
    idx = ctx.workspace.get("max_idx")
    if idx is None or idx.shape[0] < n:
        raise ContractViolationError(
            "max-pool backward called without a matching forward pass"
        )
    return idx


@register_kernel("maxpool", BackendType.INTERNAL, BACKWARD)
def maxpool_backward_internal(ctx: OpContext, x, weight, delta, dx, dW, db) -> None:
    n = x.shape[0]
    winners = _require_winners(ctx, n)

    def sample(s: int) -> None:
        for o in range(delta.shape[1]):
            dx[s, winners[s, o]] += delta[s, o]

    for_i(ctx.parallelize, n, sample)


@register_kernel("maxpool", BackendType.VECTORIZED, BACKWARD)
def maxpool_backward_vectorized(ctx: OpContext, x, weight, delta, dx, dW, db) -> None:
    n = x.shape[0]
    winners = _require_winners(ctx, n)[:n]
    rows = np.broadcast_to(np.arange(n)[:, None], winners.shape)
    np.add.at(dx, (rows, winners), delta)
