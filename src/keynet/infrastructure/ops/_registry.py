"""
Kernel registry.

Kernel modules register their implementations with `register_kernel` under an
``(op, engine, direction)`` key. The backend dispatcher resolves kernels from
here once, when a layer picks its engine.

Kernel signatures
-----------------
forward(ctx, x, weight, bias, out)
    ``x`` is ``(batch, in_size)``; ``out`` is ``(batch, out_size)`` and is
    overwritten with the pre-activation result. ``weight`` / ``bias`` are
    flat arrays or None.
backward(ctx, x, weight, delta, dx, dW, db)
    ``delta`` is the gradient w.r.t. the pre-activation output. ``dx`` is
    accumulated; ``dW`` / ``db`` are per-sample gradient rows
    ``(batch, size)``, accumulated, or None.
"""

from __future__ import annotations

from typing import Callable, Dict, Tuple, TypeVar

from ...domain._types import BackendType

F = TypeVar("F", bound=Callable[..., None])

FORWARD = "forward"
BACKWARD = "backward"

_KERNELS: Dict[Tuple[str, BackendType, str], Callable[..., None]] = {}


def register_kernel(op: str, engine: BackendType, direction: str) -> Callable[[F], F]:
    """
    Decorator registering a kernel for ``(op, engine, direction)``.

    Raises
    ------
    ValueError
        If the direction is unknown or the key is already registered.
    """
    if direction not in (FORWARD, BACKWARD):
        raise ValueError(f"direction must be 'forward' or 'backward', got {direction!r}")

    def decorator(fn: F) -> F:
        key = (op, engine, direction)
        if key in _KERNELS:
            raise ValueError(f"Kernel already registered: {key!r}")
        _KERNELS[key] = fn
        return fn

    return decorator


def get_kernel(op: str, engine: BackendType, direction: str) -> Callable[..., None]:
    """
    Look up a registered kernel.

    Raises
    ------
    KeyError
        If nothing is registered under the key.
    """
    return _KERNELS[(op, engine, direction)]
