"""
Fan-scaled random initializers.

Implemented variants
--------------------
- ``xavier``:
    Uniform ``U(-b, +b)`` with ``b = sqrt(scale / (fan_in + fan_out))``,
    ``scale`` defaulting to 6.
- ``xavier_normal``:
    Normal with ``std = sqrt(2 / (fan_in + fan_out))``.
- ``lecun``:
    Uniform with ``b = sqrt(scale / fan_in)``, ``scale`` defaulting to 1.
- ``he`` / ``kaiming``:
    Normal with ``std = sqrt(2 / fan_in)``.
- ``gaussian``:
    Normal with a fixed ``sigma``.

Notes
-----
- Fan values come from the owning layer; a zero fan is clamped to 1.
- Samples are drawn from NumPy's global generator so that
  ``np.random.seed`` gives reproducible weights.
"""

import math

import numpy as np

from ._base import WeightInitializer
from ...tensor._tensor import Tensor


def _fans(fan_in: int, fan_out: int) -> tuple[int, int]:
    return max(1, int(fan_in)), max(1, int(fan_out))


@WeightInitializer.register_initializer("xavier")
def xavier(tensor: Tensor, fan_in: int, fan_out: int, scale: float = 6.0) -> Tensor:
    """
    Apply Xavier (Glorot) uniform initialization.

    Parameters
    ----------
    tensor:
        The tensor to initialize in-place.
    fan_in, fan_out:
        Fan values of the owning layer.
    scale:
        Numerator of the bound. Defaults to 6.

    Returns
    -------
    Tensor
        The initialized tensor (same object).
    """
    fan_in, fan_out = _fans(fan_in, fan_out)
    bound = math.sqrt(scale / float(fan_in + fan_out))
    w = np.random.uniform(-bound, bound, size=tensor.shape)
    tensor.copy_from_numpy(w.astype(tensor.dtype, copy=False))
    return tensor


@WeightInitializer.register_initializer("xavier_normal")
def xavier_normal(tensor: Tensor, fan_in: int, fan_out: int) -> Tensor:
    """Xavier normal initialization, ``std = sqrt(2 / (fan_in + fan_out))``."""
    fan_in, fan_out = _fans(fan_in, fan_out)
    std = math.sqrt(2.0 / float(fan_in + fan_out))
    w = np.random.randn(*tensor.shape) * std
    tensor.copy_from_numpy(w.astype(tensor.dtype, copy=False))
    return tensor


@WeightInitializer.register_initializer("lecun")
def lecun(tensor: Tensor, fan_in: int, fan_out: int, scale: float = 1.0) -> Tensor:
    """LeCun uniform initialization, ``b = sqrt(scale / fan_in)``."""
    fan_in, _ = _fans(fan_in, fan_out)
    bound = math.sqrt(scale / float(fan_in))
    w = np.random.uniform(-bound, bound, size=tensor.shape)
    tensor.copy_from_numpy(w.astype(tensor.dtype, copy=False))
    return tensor


def _he(tensor: Tensor, fan_in: int, fan_out: int) -> Tensor:
    fan_in, _ = _fans(fan_in, fan_out)
    std = math.sqrt(2.0 / float(fan_in))
    w = np.random.randn(*tensor.shape) * std
    tensor.copy_from_numpy(w.astype(tensor.dtype, copy=False))
    return tensor


WeightInitializer.register_initializer("he")(_he)
WeightInitializer.register_initializer("kaiming")(_he)


@WeightInitializer.register_initializer("gaussian")
def gaussian(
    tensor: Tensor, fan_in: int, fan_out: int, sigma: float = 1.0
) -> Tensor:
    """Zero-mean normal with standard deviation `sigma`; fans are ignored."""
    if sigma <= 0.0:
        raise ValueError(f"sigma must be > 0, got {sigma}")
    w = np.random.randn(*tensor.shape) * sigma
    tensor.copy_from_numpy(w.astype(tensor.dtype, copy=False))
    return tensor
