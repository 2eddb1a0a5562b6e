"""
Enumerations shared by the graph, layers and backends.

- `VectorType` tags every layer input/output slot and every edge.
- `ParameterType` distinguishes weights from biases.
- `BackendType` selects the numeric engine a layer dispatches to.
- `NetPhase` is the train/test context forwarded to layers.
"""

from __future__ import annotations

from enum import Enum
import os


class VectorType(Enum):
    """Role of a layer slot / edge."""

    DATA = "data"
    WEIGHT = "weight"
    BIAS = "bias"

    def is_trainable(self) -> bool:
        return self is not VectorType.DATA


class ParameterType(Enum):
    WEIGHT = "weight"
    BIAS = "bias"

    def to_vector_type(self) -> VectorType:
        return VectorType.WEIGHT if self is ParameterType.WEIGHT else VectorType.BIAS


class NetPhase(Enum):
    TRAIN = "train"
    TEST = "test"


class BackendType(Enum):
    """
    Numeric engine identifiers.

    Attributes
    ----------
    INTERNAL : BackendType
        Straightforward per-sample loops, always available.
    VECTORIZED : BackendType
        Whole-batch NumPy kernels (strided windows + einsum).
    ACCELERATED : BackendType
        Compiled gather-plan kernels; forward-only, restricted configurations.
    """

    INTERNAL = "internal"
    VECTORIZED = "vectorized"
    ACCELERATED = "accelerated"

    @classmethod
    def parse(cls, value: "BackendType | str") -> "BackendType":
        if isinstance(value, BackendType):
            return value
        try:
            return cls(str(value).lower())
        except ValueError as e:
            names = ", ".join(m.value for m in cls)
            raise ValueError(
                f"Unknown backend {value!r}. Available: {names}"
            ) from e


ENGINE_ENV_VAR = "KEYNET_DEFAULT_ENGINE"


def default_engine() -> BackendType:
    """
    Engine used when a layer is built without an explicit one.

    Reads ``KEYNET_DEFAULT_ENGINE`` on each call; defaults to INTERNAL.
    """
    return BackendType.parse(os.environ.get(ENGINE_ENV_VAR, "internal"))
