"""
Kernel-backed layers with a fused activation.

`FeedForwardLayer` is the common base of the fully-connected, convolution,
deconvolution and max-pooling layers. It owns:

- the geometry params and `OpContext` passed to every kernel call,
- the forward/backward kernels resolved from the capability table for the
  current engine,
- an `Activation` strategy applied to the kernel output, plus the
  pre-activation buffer that the activation's backward pass needs.

Engine selection is validated once, when the layer is built or
`set_engine` is called; an unusable combination raises immediately.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ...domain._types import BackendType, ParameterType, VectorType
from ..activations import Activation, activation_to_config, get_activation
from ..backends._dispatch import KernelPair, resolve_kernels
from ..ops.conv2d_accelerated import compile_program
from ..ops._params import OpContext
from ..tensor._tensor import Tensor
from ._layer import Layer


class FeedForwardLayer(Layer):
    """
    Base class for layers computing ``y = activation(kernel(x, W, b))``.

    Parameters
    ----------
    op : str
        Kernel family name ("fully", "conv2d", "deconv2d", "maxpool").
    params : object
        Geometry record handed to the kernels.
    in_types : Sequence[VectorType]
        Slot roles; weight/bias slots must follow the data slot.
    activation : str, dict or Activation, optional
        Activation strategy; identity when omitted.
    engine : BackendType or str, optional
        Numeric engine.
    strides : tuple[int, int]
        Strides checked against engine requirements.
    """

    def __init__(
        self,
        op: str,
        params: Any,
        in_types: Sequence[VectorType],
        activation: Union[None, str, Activation, Dict[str, Any]] = None,
        engine: Optional[Union[BackendType, str]] = None,
        strides: Tuple[int, int] = (1, 1),
    ) -> None:
        super().__init__(in_types, [VectorType.DATA], engine=engine)
        self._op = op
        self._strides = (int(strides[0]), int(strides[1]))
        self._ctx = OpContext(params=params, parallelize=self._parallelize)
        self._activation = get_activation(activation)
        self._pre = Tensor((1, self.out_data_size()), dtype=self.dtype)
        self._kernels: KernelPair = self._resolve()

    @property
    def params(self) -> Any:
        return self._ctx.params

    @property
    def activation(self) -> Activation:
        return self._activation

    @property
    def has_bias(self) -> bool:
        return VectorType.BIAS in self.in_types

    def _resolve(self, engine: Optional[BackendType] = None) -> KernelPair:
        return resolve_kernels(
            self._op,
            engine or self._engine,
            has_bias=self.has_bias,
            strides=self._strides,
        )

    def check_engine(self, engine: Union[BackendType, str]) -> BackendType:
        engine = BackendType.parse(engine)
        self._resolve(engine)
        return engine

    def set_engine(self, engine: Union[BackendType, str]) -> None:
        """
        Switch engine, re-validating the configuration.

        Raises
        ------
        OperationNotSupportedError, BackendCapabilityError
            If the new engine cannot run this layer; the old engine stays.
        """
        engine = BackendType.parse(engine)
        self._kernels = self._resolve(engine)
        self._engine = engine
        self._ctx.program = None
        self._ctx.workspace.clear()

    def set_parallelize(self, parallelize: bool) -> None:
        super().set_parallelize(parallelize)
        self._ctx.parallelize = self._parallelize

    def out_value_range(self) -> Tuple[float, float]:
        return self._activation.scale()

    def _param(self, ptype: ParameterType):
        for p in self._params:
            if p.type is ptype:
                return p
        return None

    @property
    def weight(self):
        return self._param(ParameterType.WEIGHT)

    @property
    def bias(self):
        return self._param(ParameterType.BIAS)

    def forward_propagation(self, in_data: List[Tensor], out_data: List[Tensor]) -> None:
        x = in_data[0].data
        self._pre.resize_axis(x.shape[0])
        w, b = self.weight, self.bias
        self._kernels.forward(
            self._ctx,
            x,
            w.data.data if w is not None else None,
            b.data.data if b is not None else None,
            self._pre.data,
        )
        out_data[0].data[...] = self._activation.forward(self._pre.data)

    def back_propagation(
        self,
        in_data: List[Tensor],
        out_data: List[Tensor],
        out_grad: List[Tensor],
        in_grad: List[Tensor],
    ) -> None:
        delta = self._activation.backward(
            self._pre.data, out_data[0].data, out_grad[0].data
        )
        w, b = self.weight, self.bias
        self._kernels.backward(
            self._ctx,
            in_data[0].data,
            w.data.data if w is not None else None,
            delta,
            in_grad[0].data,
            w.grad.data if w is not None and w.trainable else None,
            b.grad.data if b is not None and b.trainable else None,
        )

    def kernel_signature(self) -> tuple:
        return (self._engine.value,) + self._ctx.params.signature()

    def create_program(self) -> Any:
        if self._engine is not BackendType.ACCELERATED:
            return None
        return compile_program(self._ctx.params)

    def attach_program(self, program: Any) -> None:
        self._ctx.program = program

    def _activation_config(self) -> Dict[str, Any]:
        return activation_to_config(self._activation)
