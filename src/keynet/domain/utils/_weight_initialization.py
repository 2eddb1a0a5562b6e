"""
Weight initializer contract.

An initializer fills a parameter tensor in place given the fan-in and
fan-out of the owning layer. The registry-backed implementation lives in
`infrastructure.utils.weight_initializer`.
"""

from typing import Any, Callable, Dict, TypeVar
from abc import ABC, abstractmethod

from .._tensor import ITensor


T = TypeVar("T", bound=Callable[..., ITensor])


class _WeightInitializer(ABC):
    """
    Abstract named initializer.

    Strategies are plain functions ``fn(tensor, fan_in, fan_out, **options)``
    that mutate and return `tensor`; an instance binds one strategy and its
    options.
    """

    INITIALIZERS: Dict[str, Callable] = {}

    def __init__(self, initializer_name: str, **options: Any) -> None: ...

    @classmethod
    @abstractmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """Decorator adding a strategy to the registry."""
        ...

    @classmethod
    @abstractmethod
    def available(cls) -> tuple[str, ...]:
        """Sorted names of the registered strategies."""
        ...

    @abstractmethod
    def __call__(self, tensor: ITensor, fan_in: int, fan_out: int) -> ITensor:
        """
        Fill `tensor`.

        Parameters
        ----------
        tensor : ITensor
            Parameter values, mutated in place.
        fan_in, fan_out : int
            Inputs feeding one output unit, and outputs fed by one input
            unit, of the owning layer.
        """
        ...
