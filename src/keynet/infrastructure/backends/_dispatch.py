"""
Kernel resolution for layers.

`resolve_kernels` validates a layer configuration against the capability
table and returns the forward/backward kernels the layer will call for the
rest of its life (or until it switches engine). A direction the engine does
not implement resolves to a stub that raises `OperationNotSupportedError`
when invoked, so inference through a forward-only engine stays possible.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Tuple

from ...domain._errors import OperationNotSupportedError
from ...domain._types import BackendType
from ..ops import conv2d_accelerated, conv2d_cpu, deconv2d_cpu, fully_cpu, maxpool_cpu  # noqa: F401  (kernel registration)
from ..ops._registry import BACKWARD, FORWARD, get_kernel
from ._capabilities import check_capability


@dataclass(frozen=True)
class KernelPair:
    op: str
    engine: BackendType
    forward: Callable[..., None]
    backward: Callable[..., None]


def _unsupported(op: str, engine: BackendType) -> Callable[..., None]:
    def kernel(*args, **kwargs) -> None:
        raise OperationNotSupportedError(
            op, engine.value, "does not support back propagation"
        )

    return kernel


def resolve_kernels(
    op: str,
    engine: BackendType,
    *,
    has_bias: bool = True,
    strides: Tuple[int, int] = (1, 1),
) -> KernelPair:
    """
    Check capabilities and return the kernels for ``(op, engine)``.

    Raises
    ------
    OperationNotSupportedError, BackendCapabilityError
        See `check_capability`.
    """
    cap = check_capability(op, engine, has_bias=has_bias, strides=strides)
    forward = get_kernel(op, engine, FORWARD)
    backward = get_kernel(op, engine, BACKWARD) if cap.backward else _unsupported(op, engine)
    return KernelPair(op=op, engine=engine, forward=forward, backward=backward)
