"""
Backend capability table.

The table states, per ``(op, engine)``, which directions an engine implements
and which layer configurations it can honor. It is consulted once, when a
layer is constructed or switches engine, so that an unusable combination
fails immediately instead of in the middle of training.

    op        internal  vectorized  accelerated
    fully     fwd+bwd   fwd+bwd     not implemented
    conv2d    fwd+bwd   fwd+bwd     fwd only, bias + stride 1 required
    deconv2d  fwd+bwd   fwd+bwd     fwd only, bias + stride 1 required
    maxpool   fwd+bwd   fwd+bwd     not implemented
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from ...domain._errors import BackendCapabilityError, OperationNotSupportedError
from ...domain._types import BackendType

OPS = ("fully", "conv2d", "deconv2d", "maxpool")


@dataclass(frozen=True)
class Capability:
    forward: bool = True
    backward: bool = True
    requires_bias: bool = False
    requires_unit_stride: bool = False


_FULL = Capability()
_ACCEL_SPATIAL = Capability(
    forward=True, backward=False, requires_bias=True, requires_unit_stride=True
)

CAPABILITIES: Dict[Tuple[str, BackendType], Capability] = {
    **{(op, BackendType.INTERNAL): _FULL for op in OPS},
    **{(op, BackendType.VECTORIZED): _FULL for op in OPS},
    ("conv2d", BackendType.ACCELERATED): _ACCEL_SPATIAL,
    ("deconv2d", BackendType.ACCELERATED): _ACCEL_SPATIAL,
}


def capability(op: str, engine: BackendType) -> Capability:
    """
    Return the capability record of ``(op, engine)``.

    Raises
    ------
    OperationNotSupportedError
        If the engine does not implement `op` at all.
    """
    cap = CAPABILITIES.get((op, engine))
    if cap is None or not cap.forward:
        raise OperationNotSupportedError(op, engine.value, "is not implemented yet")
    return cap


def check_capability(
    op: str,
    engine: BackendType,
    *,
    has_bias: bool = True,
    strides: Tuple[int, int] = (1, 1),
) -> Capability:
    """
    Validate a layer configuration against the table.

    Raises
    ------
    OperationNotSupportedError
        If the engine does not implement `op`.
    BackendCapabilityError
        If the engine requires a bias or unit stride the layer lacks.
    """
    cap = capability(op, engine)
    if cap.requires_bias and not has_bias:
        raise BackendCapabilityError(op, engine.value, "requires a bias term")
    if cap.requires_unit_stride and tuple(strides) != (1, 1):
        raise BackendCapabilityError(
            op, engine.value, f"requires stride 1, got {tuple(strides)}"
        )
    return cap
