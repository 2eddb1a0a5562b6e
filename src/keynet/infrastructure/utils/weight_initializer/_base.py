"""
Named weight initializers.

`WeightInitializer` resolves a registered fill strategy by name and binds its
options, leaving the ``(tensor, fan_in, fan_out)`` call that `Parameter.initialize`
performs during layer setup. Layers compute the fan values from their own
geometry (e.g. ``kw * kh * in_channels`` for a convolution), so strategies
never inspect the tensor shape.

    init = WeightInitializer("constant", value=0.5)
    layer.bias_init(init)

New strategies are added with the class decorator:

    @WeightInitializer.register_initializer("lecun")
    def lecun(tensor, fan_in, fan_out): ...
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, TypeVar

from ....domain.utils._weight_initialization import _WeightInitializer
from ...tensor._tensor import Tensor

T = TypeVar("T", bound=Callable[..., Tensor])


class WeightInitializer(_WeightInitializer):
    """
    Strategy name plus bound options, callable on a parameter tensor.

    Parameters
    ----------
    initializer_name : str
        Registered strategy name, e.g. "xavier" or "constant".
    **options
        Extra keyword arguments of the strategy, e.g. ``value`` for
        "constant".

    Raises
    ------
    ValueError
        If no strategy is registered under `initializer_name`.
    """

    INITIALIZERS: ClassVar[Dict[str, Callable[..., Tensor]]] = {}

    def __init__(self, initializer_name: str, **options: Any) -> None:
        fn = self.INITIALIZERS.get(initializer_name)
        if fn is None:
            known = ", ".join(sorted(self.INITIALIZERS)) or "<none>"
            raise ValueError(
                f"Unknown weight initializer {initializer_name!r} (known: {known})"
            )
        self._initializer: Callable[..., Tensor] = fn
        self.name = initializer_name
        self.options = dict(options)

    @classmethod
    def register_initializer(
        cls, name: str, *, overwrite: bool = False
    ) -> Callable[[T], T]:
        """
        Register the decorated function as strategy `name`.

        Raises
        ------
        ValueError
            If `name` is empty, or already taken and `overwrite` is False.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("initializer name must be a non-empty string")

        def deco(fn: T) -> T:
            if name in cls.INITIALIZERS and not overwrite:
                raise ValueError(f"weight initializer {name!r} is already registered")
            cls.INITIALIZERS[name] = fn
            return fn

        return deco

    @classmethod
    def available(cls) -> tuple[str, ...]:
        return tuple(sorted(cls.INITIALIZERS))

    @classmethod
    def get(cls, name: str) -> Callable[..., Tensor]:
        return cls.INITIALIZERS[name]

    def get_config(self) -> Dict[str, Any]:
        return {"name": self.name, "options": dict(self.options)}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "WeightInitializer":
        return cls(cfg["name"], **dict(cfg.get("options", {})))

    def __call__(self, tensor: Tensor, fan_in: int, fan_out: int) -> Tensor:
        return self._initializer(tensor, int(fan_in), int(fan_out), **self.options)

    def __repr__(self) -> str:
        opts = "".join(f", {k}={v!r}" for k, v in self.options.items())
        return f"WeightInitializer({self.name!r}{opts})"
