"""
Layer base class and graph connection.

A `Layer` is a graph `Node` with typed slots. Slot roles are listed in
`in_types` / `out_types`; DATA slots are bound to `Edge` objects while
WEIGHT / BIAS slots are backed by the layer's own `Parameter` objects.

Lifecycle
---------
constructed -> setup -> (forward / backward)* -> update_parameters

- `setup` validates that the declared shapes match the declared slot types,
  allocates missing output edges and initializes parameters that are not yet
  initialized (all of them with ``reset_weights=True``).
- `forward` resizes every data edge and every parameter gradient to the
  incoming batch (storage grows only), clears the output gradients and calls
  `forward_propagation`.
- `backward` hands data and gradient tensors of all edges to
  `back_propagation`, which accumulates into input gradients and
  per-sample parameter gradient rows.
- `update_parameters` merges per-sample gradient rows, averages them over
  the batch and lets the optimizer update each trainable parameter.

Notes
-----
- Subclasses implement `in_shape`, `out_shape`, `layer_type`,
  `forward_propagation`, `back_propagation`, and `get_config`/`from_config`.
- Edges of a standalone layer (no producer) are created on first `forward`
  with explicit inputs; their gradients are cleared at every forward.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import IO, Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np

from ...domain._errors import (
    ConfigurationError,
    ConnectionMismatchError,
    ContractViolationError,
)
from ...domain._shape import Shape3D
from ...domain._types import (
    BackendType,
    NetPhase,
    ParameterType,
    VectorType,
    default_engine,
)
from .._parameter import Parameter
from ..graph._node import Edge, Node
from ..serialization._parameters import load_from_stream, save_to_stream
from ..tensor._tensor import Tensor
from ..utils._parallel import PARALLEL_THRESHOLD
from ..utils.weight_initializer import WeightInitializer

InitSpec = Union[str, WeightInitializer, Any]


def _as_initializer(init: InitSpec) -> Any:
    if isinstance(init, str):
        return WeightInitializer(init)
    if not callable(init):
        raise TypeError(f"initializer must be a name or a callable, got {init!r}")
    return init


def _per_slot(values: Any) -> List[Any]:
    # a list of arrays addresses several slots; anything else is one slot
    if isinstance(values, (list, tuple)) and values and all(
        isinstance(v, (np.ndarray, Tensor)) for v in values
    ):
        return list(values)
    return [values]


def _as_rows(x: Any, dtype: np.dtype) -> np.ndarray:
    arr = x.data if isinstance(x, Tensor) else np.asarray(x, dtype=dtype)
    if arr.ndim <= 1:
        arr = arr.reshape(1, -1)
    return arr.reshape(arr.shape[0], -1)


class Layer(Node, ABC):
    """
    Base class of every layer.

    Parameters
    ----------
    in_types : Sequence[VectorType]
        Roles of the input slots (data first, then weight/bias).
    out_types : Sequence[VectorType]
        Roles of the output slots.
    engine : BackendType or str, optional
        Numeric engine; defaults to `default_engine()`.
    """

    dtype = np.float32

    def __init__(
        self,
        in_types: Sequence[VectorType],
        out_types: Sequence[VectorType],
        engine: Optional[Union[BackendType, str]] = None,
    ) -> None:
        in_types = tuple(VectorType(t) for t in in_types)
        out_types = tuple(VectorType(t) for t in out_types)
        super().__init__(
            sum(t is VectorType.DATA for t in in_types),
            sum(t is VectorType.DATA for t in out_types),
        )
        self._in_types = in_types
        self._out_types = out_types
        self._params: List[Parameter] = []
        self._is_setup = False
        self._parallelize = True
        self._engine = BackendType.parse(engine) if engine is not None else default_engine()
        self._device: Any = None
        self._phase = NetPhase.TRAIN
        self._weight_init: Any = WeightInitializer("xavier")
        self._bias_init: Any = WeightInitializer("constant", value=0.0)

    # ---- introspection ----
    @property
    def in_types(self) -> Tuple[VectorType, ...]:
        return self._in_types

    @property
    def out_types(self) -> Tuple[VectorType, ...]:
        return self._out_types

    @property
    def in_channels(self) -> int:
        return len(self._in_types)

    @property
    def out_channels(self) -> int:
        return len(self._out_types)

    @abstractmethod
    def in_shape(self) -> List[Shape3D]:
        """Shapes of all input slots, in `in_types` order."""

    @abstractmethod
    def out_shape(self) -> List[Shape3D]:
        """Shapes of all output slots, in `out_types` order."""

    @abstractmethod
    def layer_type(self) -> str:
        """Stable type identifier used in diagnostics and parameter streams."""

    def in_data_shape(self) -> List[Shape3D]:
        return [s for s, t in zip(self.in_shape(), self._in_types) if t is VectorType.DATA]

    def out_data_shape(self) -> List[Shape3D]:
        return [s for s, t in zip(self.out_shape(), self._out_types) if t is VectorType.DATA]

    def in_data_size(self) -> int:
        return sum(s.size() for s in self.in_data_shape())

    def out_data_size(self) -> int:
        return sum(s.size() for s in self.out_data_shape())

    def fan_in_size(self, i: int = 0) -> int:
        return self.in_shape()[0].width

    def fan_out_size(self, i: int = 0) -> int:
        return self.out_shape()[0].width

    def out_value_range(self) -> Tuple[float, float]:
        return (0.0, 1.0)

    def set_in_shape(self, shape: Shape3D) -> None:
        """
        Adopt an input shape during `connect`.

        Raises
        ------
        ConfigurationError
            Always, for layers that cannot infer their input shape.
        """
        raise ConfigurationError(
            "Can't set shape. Shape inferring not applicable for this layer (yet)."
        )

    # ---- configuration ----
    @property
    def engine(self) -> BackendType:
        return self._engine

    def check_engine(self, engine: Union[BackendType, str]) -> BackendType:
        """
        Validate `engine` for this layer without switching to it.

        Raises
        ------
        OperationNotSupportedError, BackendCapabilityError
            If the engine cannot run this layer.
        """
        return BackendType.parse(engine)

    def set_engine(self, engine: Union[BackendType, str]) -> None:
        self._engine = self.check_engine(engine)

    @property
    def parallelize(self) -> bool:
        return self._parallelize

    def set_parallelize(self, parallelize: bool) -> None:
        self._parallelize = bool(parallelize)

    @property
    def device(self) -> Any:
        return self._device

    def set_device(self, device: Any) -> None:
        self._device = device

    @property
    def phase(self) -> NetPhase:
        return self._phase

    def set_context(self, phase: NetPhase) -> None:
        self._phase = NetPhase(phase)

    @property
    def trainable(self) -> bool:
        return any(p.trainable for p in self._params)

    def set_trainable(self, trainable: bool) -> None:
        for p in self._params:
            p.set_trainable(trainable)

    def weight_init(self, init: InitSpec) -> "Layer":
        """Set the weight initializer (name or callable). Returns self."""
        self._weight_init = _as_initializer(init)
        return self

    def bias_init(self, init: InitSpec) -> "Layer":
        """Set the bias initializer (name or callable). Returns self."""
        self._bias_init = _as_initializer(init)
        return self

    # ---- parameters ----
    def add_parameter(
        self,
        width: int,
        height: int,
        depth: int,
        n_fmaps: int,
        param_type: ParameterType,
        trainable: bool = True,
    ) -> Parameter:
        p = Parameter(width, height, depth, n_fmaps, param_type, trainable, self.dtype)
        self._params.append(p)
        return p

    def parameters(self, trainable_only: bool = False) -> List[Parameter]:
        if trainable_only:
            return [p for p in self._params if p.trainable]
        return list(self._params)

    def parameter_at(self, i: int) -> Parameter:
        return self._params[i]

    def weights(self) -> List[Tensor]:
        """Data tensors of every parameter, in declaration order."""
        return [p.data for p in self._params]

    def init_parameters(self) -> None:
        for i, p in enumerate(self._params):
            init = self._weight_init if p.type is ParameterType.WEIGHT else self._bias_init
            p.initialize(init, self.fan_in_size(i), self.fan_out_size(i))

    def clear_grads(self) -> None:
        for p in self._params:
            p.clear_grads()

    def has_same_parameters(self, rhs: "Layer", eps: float = 0.0) -> bool:
        mine, theirs = self.parameters(), rhs.parameters()
        if len(mine) != len(theirs):
            return False
        for a, b in zip(mine, theirs):
            if a.size() != b.size():
                return False
            if np.any(np.abs(a.data.data - b.data.data) > eps):
                return False
        return True

    # ---- lifecycle ----
    @property
    def is_setup(self) -> bool:
        return self._is_setup

    def setup(self, reset_weights: bool = False) -> None:
        """
        Prepare the layer for propagation.

        Raises
        ------
        ConfigurationError
            If the declared shapes do not match the declared slot types.
        """
        if len(self.in_shape()) != len(self._in_types) or len(self.out_shape()) != len(
            self._out_types
        ):
            raise ConfigurationError(
                f"Connection mismatch at setup layer ({self.layer_type()}): "
                f"{len(self.in_shape())} input shapes for {len(self._in_types)} slots, "
                f"{len(self.out_shape())} output shapes for {len(self._out_types)} slots"
            )

        for i, shape in enumerate(self.out_data_shape()):
            if self._next[i] is None:
                self._next[i] = Edge(self, shape, VectorType.DATA, dtype=self.dtype)

        if reset_weights or any(not p.initialized for p in self._params):
            self.init_parameters()
        self._is_setup = True

    def set_sample_count(self, n: int) -> None:
        for e in self._prev + self._next:
            if e is not None:
                e.get_data().resize_axis(n)
                e.get_gradient().resize_axis(n)
        for p in self._params:
            p.resize_grad(n)

    def _edges(self, edges: List[Optional[Edge]], what: str) -> List[Edge]:
        for i, e in enumerate(edges):
            if e is None:
                raise ContractViolationError(
                    f"{self.layer_type()}: {what} edge {i} is not connected"
                )
        return edges  # type: ignore[return-value]

    def set_in_data(self, inputs: Any) -> None:
        """
        Write explicit inputs into the input edges, creating them if needed.

        `inputs` is one array (``(batch, in_size)`` or any shape with that
        many elements per row) or a list with one entry per data input.
        """
        inputs = _per_slot(inputs)
        if len(inputs) != len(self._prev):
            raise ContractViolationError(
                f"{self.layer_type()}: expected {len(self._prev)} inputs, got {len(inputs)}"
            )
        shapes = self.in_data_shape()
        for i, x in enumerate(inputs):
            rows = _as_rows(x, self.dtype)
            if rows.shape[1] != shapes[i].size():
                raise ContractViolationError(
                    f"{self.layer_type()}: input {i} has {rows.shape[1]} values per "
                    f"sample, expected {shapes[i].size()} ({shapes[i]})"
                )
            if self._prev[i] is None:
                self._prev[i] = Edge(None, shapes[i], VectorType.DATA, dtype=self.dtype)
            data = self._prev[i].get_data()
            data.resize_axis(rows.shape[0])
            data.copy_from_numpy(rows)

    def set_out_grads(self, grads: Any) -> None:
        """Write explicit output gradients into the output edges."""
        grads = _per_slot(grads)
        edges = self._edges(self._next, "output")
        if len(grads) != len(edges):
            raise ContractViolationError(
                f"{self.layer_type()}: expected {len(edges)} output gradients, got {len(grads)}"
            )
        for e, g in zip(edges, grads):
            rows = _as_rows(g, self.dtype)
            if rows.shape != e.get_gradient().shape:
                raise ContractViolationError(
                    f"{self.layer_type()}: output gradient shape {rows.shape} does not "
                    f"match {e.get_gradient().shape}"
                )
            e.get_gradient().copy_from_numpy(rows)

    def forward(self, inputs: Any = None) -> List[Tensor]:
        """
        Run forward propagation.

        Parameters
        ----------
        inputs : optional
            Explicit inputs; the layer is set up on demand. Without inputs the
            layer reads its (already connected) input edges.

        Returns
        -------
        List[Tensor]
            Output data tensors.

        Raises
        ------
        ContractViolationError
            If called without inputs before `setup`, or an input edge is missing.

        Notes
        -----
        Every edge and parameter gradient is resized to the incoming batch.
        Per-sample parameter gradient rows beyond the new batch size are no
        longer visible, so gradients accumulated by an earlier, larger batch
        are dropped unless `update_parameters` ran in between.
        """
        if inputs is not None:
            if not self._is_setup:
                self.setup(False)
            self.set_in_data(inputs)
        elif not self._is_setup:
            raise ContractViolationError(
                f"{self.layer_type()}: forward called before setup"
            )

        in_edges = self._edges(self._prev, "input")
        out_edges = self._edges(self._next, "output")
        self.set_sample_count(in_edges[0].get_data().shape[0])

        for e in in_edges:
            if e.prev() is None:
                e.clear_grads()
        for e in out_edges:
            e.clear_grads()

        out_data = [e.get_data() for e in out_edges]
        self.forward_propagation([e.get_data() for e in in_edges], out_data)
        return out_data

    def backward(self, out_grads: Any = None) -> List[Tensor]:
        """
        Run backward propagation.

        Returns
        -------
        List[Tensor]
            Input gradient tensors.
        """
        if not self._is_setup:
            raise ContractViolationError(
                f"{self.layer_type()}: backward called before setup"
            )
        if out_grads is not None:
            self.set_out_grads(out_grads)
        in_edges = self._edges(self._prev, "input")
        out_edges = self._edges(self._next, "output")
        in_grad = [e.get_gradient() for e in in_edges]
        self.back_propagation(
            [e.get_data() for e in in_edges],
            [e.get_data() for e in out_edges],
            [e.get_gradient() for e in out_edges],
            in_grad,
        )
        return in_grad

    def output(self) -> List[np.ndarray]:
        """Copies of the current output data."""
        return [e.get_data().to_numpy() for e in self._edges(self._next, "output")]

    @abstractmethod
    def forward_propagation(
        self, in_data: List[Tensor], out_data: List[Tensor]
    ) -> None: ...

    @abstractmethod
    def back_propagation(
        self,
        in_data: List[Tensor],
        out_data: List[Tensor],
        out_grad: List[Tensor],
        in_grad: List[Tensor],
    ) -> None: ...

    def update_parameters(self, optimizer: Any, batch_size: int) -> None:
        """
        Apply one optimizer step to every trainable parameter.

        Per-sample gradient rows are merged, scaled by ``1 / batch_size`` and
        passed to ``optimizer.update``. All gradients are cleared afterwards
        and `post_update` runs.
        """
        if batch_size <= 0:
            raise ValueError(f"batch_size must be > 0, got {batch_size}")
        diff = Tensor((0,), dtype=self.dtype)
        for p in self.parameters(trainable_only=True):
            p.merge_grads(diff)
            diff.data[...] *= 1.0 / batch_size
            optimizer.update(
                diff, p.data, self._parallelize and p.size() >= PARALLEL_THRESHOLD
            )
        self.clear_grads()
        self.post_update()

    def post_update(self) -> None:
        """Hook run after every parameter update."""

    # ---- programs ----
    def kernel_signature(self) -> tuple:
        """Identity of the compiled program this layer would need."""
        return (
            self.layer_type(),
            self._engine.value,
            tuple(s.as_tuple() for s in self.in_shape()),
            tuple(s.as_tuple() for s in self.out_shape()),
        )

    def create_program(self) -> Any:
        """Compile this layer's accelerated program, or None if it has none."""
        return None

    def attach_program(self, program: Any) -> None:
        """Receive a program compiled by a device."""

    # ---- persistence ----
    def save(self, stream: IO[str]) -> None:
        save_to_stream(self, stream)

    def load(self, stream: IO[str]) -> None:
        load_from_stream(self, stream)

    @abstractmethod
    def get_config(self) -> Dict[str, Any]: ...

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Layer":
        return cls(**cfg)

    def __lshift__(self, tail: "Layer") -> "Layer":
        connect(self, tail)
        return tail

    def __repr__(self) -> str:
        ins = ", ".join(str(s) for s in self.in_data_shape())
        outs = ", ".join(str(s) for s in self.out_data_shape())
        return f"{type(self).__name__}({self.layer_type()}: in=[{ins}] out=[{outs}])"


def connection_mismatch(
    head: Layer, tail: Layer, head_index: int = 0, tail_index: int = 0
) -> ConnectionMismatchError:
    out_shape = head.out_data_shape()[head_index]
    in_shape = tail.in_data_shape()[tail_index]
    return ConnectionMismatchError(
        head_type=head.layer_type(),
        tail_type=tail.layer_type(),
        head_shape=out_shape,
        tail_shape=in_shape,
        head_size=out_shape.size(),
        tail_size=in_shape.size(),
        head_in_shape=", ".join(str(s) for s in head.in_data_shape()),
        tail_out_shape=", ".join(str(s) for s in tail.out_data_shape()),
    )


def connect(head: Layer, tail: Layer, head_index: int = 0, tail_index: int = 0) -> None:
    """
    Bind output `head_index` of `head` to input `tail_index` of `tail`.

    The head is set up first. A tail whose input shape is still empty adopts
    the head's output shape; otherwise the sizes must match.

    Raises
    ------
    ConnectionMismatchError
        If the sizes differ.
    ConfigurationError
        If the tail cannot infer its shape or the head output edge is missing.
    """
    head.setup(False)
    out_shape = head.out_data_shape()[head_index]
    if tail.in_data_shape()[tail_index].size() == 0:
        tail.set_in_shape(out_shape)
    if out_shape.size() != tail.in_data_shape()[tail_index].size():
        raise connection_mismatch(head, tail, head_index, tail_index)

    edge = head.next()[head_index]
    if edge is None:
        raise ConfigurationError("output edge must not be null")
    tail.prev()[tail_index] = edge
    edge.add_next_node(tail)
