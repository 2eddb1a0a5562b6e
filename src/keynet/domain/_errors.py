"""
Typed exceptions for KeyNet.

Every failure raised by the engine derives from `NetworkError`, itself a
`RuntimeError`, so callers can catch engine errors as a family or pick out
the specific category they care about. Each error formats a readable message
and keeps the structured pieces as attributes for programmatic inspection.

Categories
----------
- `ConfigurationError`: invalid layer/graph configuration detected at
  construction, setup or connection time.
- `ConnectionMismatchError`: two layers were connected with incompatible
  output/input sizes.
- `BackendCapabilityError`: a numeric engine cannot honor a layer's
  configuration (e.g. missing bias, non-unit stride).
- `OperationNotSupportedError`: an engine does not implement an operation
  or direction at all.
- `ContractViolationError`: programmer error (bad index, stale view, size
  mismatch, forward before setup).
- `LayerTypeMismatchError`: a persisted parameter stream belongs to a
  different layer type.
"""

from __future__ import annotations

from typing import Optional


class NetworkError(RuntimeError):
    """Base class of every KeyNet runtime error."""


class ConfigurationError(NetworkError):
    """
    Raised when a layer or graph is configured inconsistently.

    Examples include unsupported padding/stride combinations, an edge count
    that does not match the declared input/output types at setup, or a
    request for shape inference on a layer that cannot infer its shape.
    """


class ConnectionMismatchError(ConfigurationError):
    """
    Raised when the output size of a head layer differs from the input size
    of the tail layer it is being connected to.

    Attributes
    ----------
    head_type : str
        `layer_type()` of the producing layer.
    tail_type : str
        `layer_type()` of the consuming layer.
    head_size : int
        Element count of the head output slot.
    tail_size : int
        Element count of the tail input slot.
    head_shape, tail_shape : object
        Shapes of the two slots (usually `Shape3D`).
    """

    def __init__(
        self,
        head_type: str,
        tail_type: str,
        head_shape: object,
        tail_shape: object,
        head_size: int,
        tail_size: int,
        head_in_shape: Optional[object] = None,
        tail_out_shape: Optional[object] = None,
    ) -> None:
        lines = [
            "layer dimension mismatch!",
            "output size of Nth layer must be equal to input of (N+1)th layer",
            f"layerN:   {head_type} in:{head_in_shape}, out:{head_size}({head_shape})",
            f"layerN+1: {tail_type} in:{tail_size}({tail_shape}), out:{tail_out_shape}",
            f"{head_size} != {tail_size}",
        ]
        super().__init__("\n".join(lines))
        self.head_type = head_type
        self.tail_type = tail_type
        self.head_shape = head_shape
        self.tail_shape = tail_shape
        self.head_size = int(head_size)
        self.tail_size = int(tail_size)


class BackendCapabilityError(NetworkError):
    """
    Raised when an engine cannot execute an operation with the requested
    configuration.

    Attributes
    ----------
    op : str
        Operation name (e.g. "conv2d").
    engine : str
        Engine name (e.g. "accelerated").
    reason : str
        Short description of the unmet requirement.
    """

    def __init__(self, op: str, engine: str, reason: str) -> None:
        super().__init__(f"{op} on engine '{engine}' {reason}.")
        self.op = op
        self.engine = engine
        self.reason = reason


class OperationNotSupportedError(BackendCapabilityError):
    """
    Raised when an engine does not implement an operation (or one of its
    directions, typically backward propagation).
    """


class ContractViolationError(NetworkError):
    """
    Raised on caller errors that break an API contract: out-of-range
    indices, stale views, mismatched sizes or use before setup.
    """


class LayerTypeMismatchError(NetworkError):
    """
    Raised when loading a parameter stream saved by a different layer type.

    Attributes
    ----------
    expected : str
        Layer type of the receiving layer.
    got : str
        Layer type recorded in the stream.
    """

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(
            f"Layer type mismatch: expected '{expected}', stream holds '{got}'."
        )
        self.expected = expected
        self.got = got
