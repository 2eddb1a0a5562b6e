"""
Sequential container.

`Sequential` chains layers so that each layer's single data output feeds the
next layer's single data input:

    y = L_n(...L_2(L_1(x)))

It connects the layers once, at `add` time, and then drives forward,
backward and update over the chain. Graph-wide settings (device, engine,
phase) are applied with `graph_traverse`, so they also reach layers attached
to the chain outside the container.
"""

from __future__ import annotations

from typing import Any, Dict, Iterator, List, Union

import numpy as np

from ...domain._types import BackendType, NetPhase
from ..graph._traverse import graph_traverse
from ..layers._layer import Layer, connect
from ..serialization._config import layer_from_config, layer_to_config


class Sequential:
    """
    Ordered chain of layers.

    Parameters
    ----------
    *layers : Layer
        Layers appended in order; consecutive layers are connected.

    Raises
    ------
    ConnectionMismatchError
        If two consecutive layers have incompatible sizes.
    """

    def __init__(self, *layers: Layer) -> None:
        self._layers: List[Layer] = []
        for layer in layers:
            self.add(layer)

    def add(self, layer: Layer) -> "Sequential":
        """Append `layer`, connecting it to the current last layer."""
        if self._layers:
            connect(self._layers[-1], layer)
        self._layers.append(layer)
        return self

    def __len__(self) -> int:
        return len(self._layers)

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers)

    def __getitem__(self, idx: int) -> Layer:
        return self._layers[idx]

    def _require_layers(self) -> None:
        if not self._layers:
            raise RuntimeError("Sequential has no layers")

    def setup(self, reset_weights: bool = False) -> None:
        for layer in self._layers:
            layer.setup(reset_weights)

    def forward(self, x: Any) -> np.ndarray:
        """
        Run the chain on a ``(batch, features)`` input.

        Returns
        -------
        np.ndarray
            Copy of the last layer's output, ``(batch, out_size)``.
        """
        self._require_layers()
        for layer in self._layers:
            if not layer.is_setup:
                layer.setup(False)
        self._layers[0].forward(x)
        for layer in self._layers[1:]:
            layer.forward()
        return self._layers[-1].output()[0]

    def backward(self, dy: Any) -> np.ndarray:
        """
        Back-propagate an output gradient through the chain.

        Returns
        -------
        np.ndarray
            Copy of the gradient w.r.t. the chain input.
        """
        self._require_layers()
        self._layers[-1].backward(dy)
        for layer in reversed(self._layers[:-1]):
            layer.backward()
        return self._layers[0].prev()[0].get_gradient().to_numpy()

    def update(self, optimizer: Any, batch_size: int) -> None:
        for layer in self._layers:
            layer.update_parameters(optimizer, batch_size)

    def _each(self, fn) -> None:
        self._require_layers()
        graph_traverse(self._layers[0], fn)

    def set_device(self, device: Any) -> None:
        """Attach `device` to every layer; accelerated layers are registered on it."""

        def visit(layer: Layer) -> None:
            layer.set_device(device)
            if layer.engine is BackendType.ACCELERATED:
                device.register_op(layer)

        self._each(visit)

    def set_engine(self, engine: Union[BackendType, str]) -> None:
        """
        Switch every reachable layer to `engine`.

        All layers are validated before any of them switches, so a rejected
        engine leaves the whole graph on its previous engines.

        Raises
        ------
        OperationNotSupportedError, BackendCapabilityError
            If any layer cannot run on `engine`.
        """
        layers: List[Layer] = []
        self._each(layers.append)
        for layer in layers:
            layer.check_engine(engine)
        for layer in layers:
            layer.set_engine(engine)

    def set_context(self, phase: NetPhase) -> None:
        self._each(lambda layer: layer.set_context(phase))

    def set_parallelize(self, parallelize: bool) -> None:
        self._each(lambda layer: layer.set_parallelize(parallelize))

    def parameters(self, trainable_only: bool = False) -> list:
        return [p for layer in self._layers for p in layer.parameters(trainable_only)]

    def get_config(self) -> Dict[str, Any]:
        return {"layers": [layer_to_config(layer) for layer in self._layers]}

    @classmethod
    def from_config(cls, cfg: Dict[str, Any]) -> "Sequential":
        return cls(*(layer_from_config(node) for node in cfg.get("layers", [])))

    def __repr__(self) -> str:
        inner = ",\n  ".join(repr(layer) for layer in self._layers)
        return f"Sequential(\n  {inner}\n)"
