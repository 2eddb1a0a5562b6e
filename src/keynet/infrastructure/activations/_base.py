"""
Activation strategy contract and registry.

Layers that produce a pre-activation value (fully-connected, convolution,
deconvolution, pooling) apply an `Activation` strategy to it, and activation
layers wrap one directly. A strategy is a small object with three operations:

- ``forward(x) -> y`` on a ``(batch, n)`` array,
- ``backward(x, y, dy) -> dx`` returning the gradient w.r.t. the
  pre-activation,
- ``scale() -> (lo, hi)`` giving the target range used when producing
  training targets for the output.

Strategies are registered by name so layer configurations can refer to them
as strings.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, Optional, Tuple, Type, TypeVar, Union

import numpy as np

A = TypeVar("A", bound=Type["Activation"])


class Activation(ABC):
    """
    Element-wise (or per-sample) activation strategy.

    Subclasses are registered with `register_activation`, implement `forward`
    and `backward`, and provide `get_config` / `from_config` (parameterless
    ones through `StatelessConfigMixin`). Arrays are ``(batch, n)``;
    `backward` must not modify its arguments.
    """

    name: ClassVar[str] = ""

    @abstractmethod
    def forward(self, x: np.ndarray) -> np.ndarray: ...

    @abstractmethod
    def backward(self, x: np.ndarray, y: np.ndarray, dy: np.ndarray) -> np.ndarray: ...

    def scale(self) -> Tuple[float, float]:
        return (0.1, 0.9)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


_ACTIVATION_REGISTRY: Dict[str, Type[Activation]] = {}


def register_activation(name: str) -> Callable[[A], A]:
    """
    Class decorator registering an activation under `name`.

    Raises
    ------
    ValueError
        If `name` is already taken.
    """

    def decorator(cls: A) -> A:
        if name in _ACTIVATION_REGISTRY:
            raise ValueError(f"Activation already registered: {name!r}")
        cls.name = name
        _ACTIVATION_REGISTRY[name] = cls
        return cls

    return decorator


def available_activations() -> tuple[str, ...]:
    return tuple(sorted(_ACTIVATION_REGISTRY))


def get_activation(
    spec: Union[None, str, Activation, Dict[str, Any]],
) -> Activation:
    """
    Resolve an activation from a name, a config dict or an instance.

    ``None`` resolves to the identity activation.

    Raises
    ------
    ValueError
        If the name is unknown.
    """
    if spec is None:
        spec = "identity"
    if isinstance(spec, Activation):
        return spec
    cfg: Dict[str, Any] = {}
    if isinstance(spec, dict):
        cfg = dict(spec.get("config", {}))
        spec = spec["name"]
    try:
        cls = _ACTIVATION_REGISTRY[spec]
    except KeyError as e:
        available = ", ".join(available_activations()) or "<none>"
        raise ValueError(
            f"Unknown activation {spec!r}. Available: {available}"
        ) from e
    return cls.from_config(cfg)


def activation_to_config(act: Optional[Activation]) -> Dict[str, Any]:
    act = get_activation(act)
    return {"name": act.name, "config": act.get_config()}
