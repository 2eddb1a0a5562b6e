import os
import unittest
from unittest import mock

import numpy as np

from keynet.domain._errors import (
    ConfigurationError,
    ConnectionMismatchError,
    ContractViolationError,
    OperationNotSupportedError,
)
from keynet.domain._shape import Shape3D
from keynet.domain._types import BackendType, ParameterType, VectorType
from keynet.infrastructure.layers import ActivationLayer, FullyConnectedLayer, connect
from keynet.infrastructure.optimizers import SGD
from keynet.infrastructure.tensor._tensor import Tensor


def _fc(**kw):
    l = FullyConnectedLayer(3, 2, **kw)
    l.weight.set_data([1, 2, 3, 4, 5, 6])
    if l.bias is not None:
        l.bias.set_data([0.5, -0.5])
    return l


class TestFullyConnectedLayer(unittest.TestCase):
    def test_introspection(self):
        l = FullyConnectedLayer(3, 2)
        self.assertEqual(l.in_types, (VectorType.DATA, VectorType.WEIGHT, VectorType.BIAS))
        self.assertEqual(l.out_types, (VectorType.DATA,))
        self.assertEqual(l.in_channels, 3)
        self.assertEqual(l.out_channels, 1)
        self.assertEqual(l.in_data_size(), 3)
        self.assertEqual(l.out_data_size(), 2)
        self.assertEqual(l.fan_in_size(), 3)
        self.assertEqual(l.fan_out_size(), 2)
        self.assertEqual(
            [p.type for p in l.parameters()], [ParameterType.WEIGHT, ParameterType.BIAS]
        )
        self.assertEqual(l.layer_type(), "fully-connected")

    def test_without_bias(self):
        l = FullyConnectedLayer(3, 2, has_bias=False)
        self.assertEqual(len(l.parameters()), 1)
        self.assertIsNone(l.bias)
        self.assertEqual(len(l.in_shape()), 2)

    def test_forward_values(self):
        for engine in ("internal", "vectorized"):
            with self.subTest(engine=engine):
                out = _fc(engine=engine).forward(np.array([1, 2, 3], dtype=np.float32))
                np.testing.assert_allclose(out[0].to_numpy(), [[22.5, 27.5]])

    def test_backward_values(self):
        for engine in ("internal", "vectorized"):
            with self.subTest(engine=engine):
                l = _fc(engine=engine)
                l.forward(np.array([[1, 2, 3], [0, 1, 0]], dtype=np.float32))
                dx = l.backward(np.array([[1, 0], [0, 2]], dtype=np.float32))
                np.testing.assert_allclose(dx[0].to_numpy(), [[1, 3, 5], [4, 8, 12]])
                np.testing.assert_allclose(
                    l.weight.grad.to_numpy(), [[1, 0, 2, 0, 3, 0], [0, 0, 0, 2, 0, 0]]
                )
                np.testing.assert_allclose(l.bias.grad.to_numpy(), [[1, 0], [0, 2]])

    def test_batch_resize(self):
        l = _fc()
        self.assertEqual(l.forward(np.ones((4, 3)))[0].shape, (4, 2))
        self.assertEqual(l.forward(np.ones((2, 3)))[0].shape, (2, 2))
        self.assertEqual(l.weight.grad.shape, (2, 6))

    def test_wrong_input_size_raises(self):
        with self.assertRaises(ContractViolationError):
            _fc().forward(np.ones((1, 4)))

    def test_forward_before_setup_raises(self):
        with self.assertRaises(ContractViolationError):
            FullyConnectedLayer(3, 2).forward()

    def test_setup_rejects_shapes_not_matching_slots(self):
        class MissingWeightShape(FullyConnectedLayer):
            def in_shape(self):
                return super().in_shape()[:1]

        with self.assertRaises(ConfigurationError) as ctx:
            MissingWeightShape(3, 2).setup()
        self.assertIn("Connection mismatch at setup layer", str(ctx.exception))

    def test_smaller_batch_drops_pending_gradient_rows(self):
        l = FullyConnectedLayer(1, 1)
        l.forward(np.ones((3, 1), dtype=np.float32))
        l.backward(np.ones((3, 1), dtype=np.float32))
        l.forward(np.ones((1, 1), dtype=np.float32))
        l.backward(np.ones((1, 1), dtype=np.float32))
        merged = Tensor((0,))
        l.bias.merge_grads(merged)
        np.testing.assert_allclose(merged.to_numpy(), [2.0])

    def test_update_parameters_averages_over_batch(self):
        l = _fc()
        l.forward(np.array([[1, 2, 3], [0, 1, 0]], dtype=np.float32))
        l.backward(np.array([[1, 0], [0, 2]], dtype=np.float32))
        l.update_parameters(SGD(lr=0.5), batch_size=2)
        expected_w = np.array([1, 2, 3, 4, 5, 6]) - 0.5 * np.array([1, 0, 2, 2, 3, 0]) / 2
        np.testing.assert_allclose(l.weight.data.to_numpy(), expected_w)
        np.testing.assert_allclose(l.bias.data.to_numpy(), [0.5 - 0.25, -0.5 - 0.5])
        np.testing.assert_array_equal(l.weight.grad.to_numpy(), 0.0)

    def test_frozen_layer_is_not_updated(self):
        l = _fc()
        l.set_trainable(False)
        self.assertFalse(l.trainable)
        l.forward(np.ones((1, 3)))
        l.backward(np.ones((1, 2)))
        l.update_parameters(SGD(lr=1.0), batch_size=1)
        np.testing.assert_allclose(l.weight.data.to_numpy(), [1, 2, 3, 4, 5, 6])

    def test_accelerated_engine_is_rejected(self):
        l = FullyConnectedLayer(3, 2)
        with self.assertRaises(OperationNotSupportedError) as ctx:
            l.set_engine("accelerated")
        self.assertIn("is not implemented yet", str(ctx.exception))
        self.assertIs(l.engine, BackendType.INTERNAL)

    def test_default_engine_from_environment(self):
        with mock.patch.dict(os.environ, {"KEYNET_DEFAULT_ENGINE": "vectorized"}):
            self.assertIs(FullyConnectedLayer(2, 2).engine, BackendType.VECTORIZED)

    def test_setup_reset_weights_reinitializes(self):
        l = _fc()
        l.weight_init("zeros")
        l.setup(reset_weights=False)
        np.testing.assert_allclose(l.weight.data.to_numpy(), [1, 2, 3, 4, 5, 6])
        l.setup(reset_weights=True)
        np.testing.assert_array_equal(l.weight.data.to_numpy(), 0.0)

    def test_has_same_parameters(self):
        a, b = _fc(), _fc()
        self.assertTrue(a.has_same_parameters(b))
        b.weight.set_data([1, 2, 3, 4, 5, 6.5])
        self.assertFalse(a.has_same_parameters(b))
        self.assertTrue(a.has_same_parameters(b, eps=0.6))


class TestConnect(unittest.TestCase):
    def test_size_mismatch_raises(self):
        with self.assertRaises(ConnectionMismatchError) as ctx:
            connect(FullyConnectedLayer(3, 4), FullyConnectedLayer(5, 2))
        self.assertEqual(ctx.exception.head_size, 4)
        self.assertEqual(ctx.exception.tail_size, 5)

    def test_shift_operator_connects_and_returns_tail(self):
        head, tail = FullyConnectedLayer(3, 4), FullyConnectedLayer(4, 2)
        self.assertIs(head << tail, tail)
        self.assertIs(tail.prev()[0], head.next()[0])
        self.assertEqual(head.next_nodes(), [tail])

    def test_shape_inference_for_activation_layer(self):
        head = FullyConnectedLayer(3, 4)
        act = ActivationLayer("relu")
        self.assertEqual(act.in_data_size(), 0)
        connect(head, act)
        self.assertEqual(act.in_shape(), [Shape3D(4, 1, 1)])
        self.assertEqual(act.layer_type(), "relu-activation")

    def test_graph_forward_and_backward(self):
        head = _fc(engine="vectorized")
        tail = FullyConnectedLayer(2, 1, has_bias=False)
        tail.weight.set_data([1, -1])
        head << tail
        tail.setup()
        head.forward(np.array([1, 2, 3], dtype=np.float32))
        out = tail.forward()
        np.testing.assert_allclose(out[0].to_numpy(), [[-5.0]])

        tail.backward(np.ones((1, 1), dtype=np.float32))
        dx = head.backward()
        np.testing.assert_allclose(dx[0].to_numpy(), [[-1, -1, -1]])


if __name__ == "__main__":
    unittest.main()
