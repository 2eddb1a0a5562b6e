"""
Stand-alone activation layer.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from ...domain._shape import Shape3D
from ...domain._types import VectorType
from ..activations import Activation, activation_to_config, get_activation
from ..serialization._config import register_layer
from ..tensor._tensor import Tensor
from ._layer import Layer


@register_layer()
class ActivationLayer(Layer):
    """
    Apply an activation strategy element-wise, keeping the input shape.

    The input shape may be left out; it is then adopted from the producing
    layer when the activation layer is connected.

    Parameters
    ----------
    activation : str, dict or Activation
        Activation strategy.
    in_shape : Shape3D or (int, int, int), optional
        Input geometry; inferred on `connect` when omitted.
    """

    def __init__(
        self,
        activation: Union[str, Activation, Dict[str, Any]],
        in_shape: Optional[Union[Shape3D, Sequence[int]]] = None,
        engine: Any = None,
    ) -> None:
        super().__init__([VectorType.DATA], [VectorType.DATA], engine=engine)
        self._activation = get_activation(activation)
        if in_shape is None:
            self._in = Shape3D()
        elif isinstance(in_shape, Shape3D):
            self._in = in_shape
        else:
            self._in = Shape3D(*in_shape)

    @property
    def activation(self) -> Activation:
        return self._activation

    def in_shape(self) -> List[Shape3D]:
        return [self._in]

    def out_shape(self) -> List[Shape3D]:
        return [self._in]

    def set_in_shape(self, shape: Shape3D) -> None:
        self._in = shape

    def layer_type(self) -> str:
        return f"{self._activation.name}-activation"

    def out_value_range(self):
        return self._activation.scale()

    def forward_propagation(self, in_data: List[Tensor], out_data: List[Tensor]) -> None:
        out_data[0].data[...] = self._activation.forward(in_data[0].data)

    def back_propagation(
        self,
        in_data: List[Tensor],
        out_data: List[Tensor],
        out_grad: List[Tensor],
        in_grad: List[Tensor],
    ) -> None:
        in_grad[0].data[...] += self._activation.backward(
            in_data[0].data, out_data[0].data, out_grad[0].data
        )

    def get_config(self) -> Dict[str, Any]:
        return {
            "activation": activation_to_config(self._activation),
            "in_shape": list(self._in.as_tuple()),
            "engine": self.engine.value,
        }
