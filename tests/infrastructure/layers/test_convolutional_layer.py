import unittest

import numpy as np

from keynet.domain._connection_table import ConnectionTable
from keynet.domain._errors import ConfigurationError
from keynet.domain._shape import Padding, Shape3D
from keynet.infrastructure.layers import ConvolutionalLayer

WEIGHTS = [
    0.3, 0.1, 0.2, 0.0, -0.1, -0.1, 0.05, -0.2, 0.05,
    0.0, -0.1, 0.1, 0.1, -0.2, 0.3, 0.2, -0.3, 0.2,
]

INPUT = [
    3, 2, 1, 5, 2,
    3, 0, 2, 0, 1,
    0, 6, 1, 1, 10,
    3, -1, 2, 9, 0,
    1, 2, 1, 5, 5,
]


def _conv(engine="internal", **kw):
    kw.setdefault("activation", "sigmoid")
    return ConvolutionalLayer(5, 5, 3, 1, 2, engine=engine, **kw)


def _numeric_input_grad(layer, x, dy, eps=1e-3):
    g = np.zeros_like(x, dtype=np.float64)
    for i in np.ndindex(*x.shape):
        xp, xm = x.copy(), x.copy()
        xp[i] += eps
        xm[i] -= eps
        fp = float(np.sum(layer.forward(xp)[0].to_numpy() * dy))
        fm = float(np.sum(layer.forward(xm)[0].to_numpy() * dy))
        g[i] = (fp - fm) / (2 * eps)
    return g


class TestConvolutionalLayerForward(unittest.TestCase):
    def test_shapes_and_fans(self):
        l = _conv()
        self.assertEqual(l.in_shape(), [Shape3D(5, 5, 1), Shape3D(3, 3, 2), Shape3D(1, 1, 2)])
        self.assertEqual(l.out_shape(), [Shape3D(3, 3, 2)])
        self.assertEqual(l.in_data_size(), 25)
        self.assertEqual(l.out_data_size(), 18)
        self.assertEqual(l.fan_in_size(), 9)
        self.assertEqual(l.fan_out_size(), 18)
        self.assertEqual(l.layer_type(), "conv")
        self.assertEqual(l.weight.shape, (3, 3, 1, 2))
        self.assertEqual(l.bias.shape, (1, 1, 1, 2))

    def test_zero_weights_give_half_everywhere(self):
        for engine in ("internal", "vectorized", "accelerated"):
            with self.subTest(engine=engine):
                l = _conv(engine)
                l.weight_init("zeros")
                out = l.forward(np.array(INPUT, dtype=np.float32))[0].to_numpy()
                self.assertEqual(out.shape, (1, 18))
                np.testing.assert_allclose(out, 0.5, atol=1e-7)

    def test_reference_weights(self):
        expected = [
            0.4875026, 0.8388910, 0.8099984,
            0.7407749, 0.5, 0.1192029,
            0.5986877, 0.7595109, 0.6899745,
        ]
        for engine in ("internal", "vectorized", "accelerated"):
            with self.subTest(engine=engine):
                l = _conv(engine)
                l.weight.set_data(WEIGHTS)
                l.bias.set_data([0.0, 0.0])
                out = l.forward(np.array(INPUT, dtype=np.float32))[0].to_numpy()
                np.testing.assert_allclose(out[0, :9], expected, atol=1e-5)

    def test_same_padding_keeps_spatial_size(self):
        l = ConvolutionalLayer(5, 4, 3, 2, 3, padding=Padding.SAME)
        self.assertEqual(l.out_shape()[0], Shape3D(5, 4, 3))
        l2 = ConvolutionalLayer(5, 5, 3, 1, 1, padding="same", w_stride=2, h_stride=2)
        self.assertEqual(l2.out_shape()[0], Shape3D(3, 3, 1))

    def test_window_larger_than_input_raises(self):
        with self.assertRaises(ConfigurationError):
            ConvolutionalLayer(2, 2, 3, 1, 1)

    def test_connection_table_gates_channels(self):
        # 2 inputs -> 2 outputs, only the diagonal is connected
        table = ConnectionTable([True, False, False, True], rows=2, cols=2)
        for engine in ("internal", "vectorized", "accelerated"):
            with self.subTest(engine=engine):
                l = ConvolutionalLayer(3, 3, 3, 2, 2, connection_table=table, engine=engine)
                l.weight_init("ones").bias_init("zeros")
                x = np.concatenate([np.ones(9), 10.0 * np.ones(9)]).astype(np.float32)
                out = l.forward(x)[0].to_numpy()
                np.testing.assert_allclose(out[0], [9.0, 90.0], rtol=1e-6)

    def test_connection_table_gates_weight_gradient(self):
        table = ConnectionTable([True, False, False, True], rows=2, cols=2)
        for engine in ("internal", "vectorized"):
            with self.subTest(engine=engine):
                l = ConvolutionalLayer(3, 3, 3, 2, 2, connection_table=table, engine=engine)
                l.weight_init("ones")
                l.forward(np.ones((1, 18), dtype=np.float32))
                l.backward(np.ones((1, 2), dtype=np.float32))
                dW = l.weight.grad.to_numpy().reshape(2, 2, 3, 3)
                np.testing.assert_array_equal(dW[0, 1], 0.0)
                np.testing.assert_array_equal(dW[1, 0], 0.0)
                np.testing.assert_allclose(dW[0, 0], 1.0)

    def test_wrong_size_table_raises(self):
        table = ConnectionTable([True] * 6, rows=3, cols=2)
        with self.assertRaises(ConfigurationError):
            ConvolutionalLayer(3, 3, 3, 2, 2, connection_table=table)


class TestConvolutionalLayerBackward(unittest.TestCase):
    def _pair(self, **kw):
        np.random.seed(3)
        a = ConvolutionalLayer(6, 5, 3, 2, 3, engine="internal", **kw)
        b = ConvolutionalLayer(6, 5, 3, 2, 3, engine="vectorized", **kw)
        a.setup()
        b.setup()
        for pa, pb in zip(a.parameters(), b.parameters()):
            pa.set_data(np.random.uniform(-1, 1, pa.size()))
            pb.set_data(pa.data.to_numpy())
        return a, b

    def test_internal_and_vectorized_agree(self):
        for kw in ({}, {"padding": "same"}, {"w_stride": 2, "h_stride": 2}):
            with self.subTest(**kw):
                a, b = self._pair(**kw)
                x = np.random.uniform(-1, 1, (3, 60)).astype(np.float32)
                ya = a.forward(x)[0].to_numpy()
                yb = b.forward(x)[0].to_numpy()
                np.testing.assert_allclose(ya, yb, rtol=1e-5, atol=1e-5)

                dy = np.random.uniform(-1, 1, ya.shape).astype(np.float32)
                dxa = a.backward(dy)[0].to_numpy()
                dxb = b.backward(dy)[0].to_numpy()
                np.testing.assert_allclose(dxa, dxb, rtol=1e-5, atol=1e-5)
                for pa, pb in zip(a.parameters(), b.parameters()):
                    np.testing.assert_allclose(
                        pa.grad.to_numpy(), pb.grad.to_numpy(), rtol=1e-4, atol=1e-5
                    )

    def test_input_gradient_matches_finite_differences(self):
        for kw in ({"padding": "same"}, {"w_stride": 2, "h_stride": 1}):
            with self.subTest(**kw):
                _, l = self._pair(**kw)
                x = np.random.uniform(-1, 1, (1, 60)).astype(np.float32)
                dy = np.random.uniform(-1, 1, (1, l.out_data_size())).astype(np.float32)
                l.forward(x)
                dx = l.backward(dy)[0].to_numpy()
                np.testing.assert_allclose(dx, _numeric_input_grad(l, x, dy), atol=2e-3)

    def test_weight_gradient_matches_finite_differences(self):
        _, l = self._pair()
        x = np.random.uniform(-1, 1, (2, 60)).astype(np.float32)
        dy = np.random.uniform(-1, 1, (2, l.out_data_size())).astype(np.float32)
        l.forward(x)
        l.backward(dy)
        analytic = l.weight.grad.to_numpy().sum(axis=0)

        w0 = l.weight.data.to_numpy()
        eps = 1e-3
        for k in (0, 7, 20, 53):
            wp, wm = w0.copy(), w0.copy()
            wp[k] += eps
            wm[k] -= eps
            l.weight.set_data(wp)
            fp = float(np.sum(l.forward(x)[0].to_numpy() * dy))
            l.weight.set_data(wm)
            fm = float(np.sum(l.forward(x)[0].to_numpy() * dy))
            self.assertAlmostEqual(analytic[k], (fp - fm) / (2 * eps), delta=2e-3)

    def test_gradients_accumulate_until_cleared(self):
        _, l = self._pair()
        x = np.ones((1, 60), dtype=np.float32)
        dy = np.ones((1, l.out_data_size()), dtype=np.float32)
        l.forward(x)
        l.backward(dy)
        once = l.bias.grad.to_numpy()
        l.backward(dy)
        np.testing.assert_allclose(l.bias.grad.to_numpy(), 2 * once)
        l.clear_grads()
        np.testing.assert_array_equal(l.bias.grad.to_numpy(), 0.0)


if __name__ == "__main__":
    unittest.main()
