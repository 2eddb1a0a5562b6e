"""
Constant weight initializers.

This module defines constant-valued weight initializers and registers them
with the global `WeightInitializer` registry.

Provided initializers
---------------------
- ``constant``:
    Set every element to ``value`` (default 0).
- ``zeros``:
    Initialize a tensor with all elements set to zero.
- ``ones``:
    Initialize a tensor with all elements set to one.

These initializers are typically used for bias parameters, testing, or
deterministic model setups. Fan values are accepted and ignored.
"""

from ._base import WeightInitializer
from ...tensor._tensor import Tensor


@WeightInitializer.register_initializer("constant")
def constant(tensor: Tensor, fan_in: int, fan_out: int, value: float = 0.0) -> Tensor:
    """
    Fill a tensor with `value`.

    Parameters
    ----------
    tensor : Tensor
        The tensor to initialize in-place.
    fan_in, fan_out : int
        Unused.
    value : float
        Fill value.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    tensor.fill(float(value))
    return tensor


@WeightInitializer.register_initializer("zeros")
def zeros(tensor: Tensor, fan_in: int, fan_out: int) -> Tensor:
    """Initialize a tensor with all elements set to zero."""
    tensor.fill(0.0)
    return tensor


@WeightInitializer.register_initializer("ones")
def ones(tensor: Tensor, fan_in: int, fan_out: int) -> Tensor:
    """Initialize a tensor with all elements set to one."""
    tensor.fill(1.0)
    return tensor
