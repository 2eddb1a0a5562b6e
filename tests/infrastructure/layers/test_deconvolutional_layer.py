import unittest

import numpy as np

from keynet.domain._errors import ConfigurationError
from keynet.domain._shape import Shape3D
from keynet.infrastructure.layers import DeconvolutionalLayer

WEIGHTS = [
    0.3, 0.1, 0.2, 0.0, -0.1, -0.1, 0.05, -0.2, 0.05,
    0.0, -0.1, 0.1, 0.1, -0.2, 0.3, 0.2, -0.3, 0.2,
]
INPUT = [3, 2, 3, 0]

FULL = [
    0.9, 0.9, 0.8, 0.4,
    0.9, 0.0, 0.1, -0.2,
    0.15, -0.8, -0.55, 0.1,
    0.15, -0.6, 0.15, 0.0,
    0.0, -0.3, 0.1, 0.2,
    0.3, -0.7, 0.8, 0.6,
    0.9, -1.1, 0.9, 0.4,
    0.6, -0.9, 0.6, 0.0,
]
SAME = [0.0, 0.1, -0.8, -0.55, -0.7, 0.8, -1.1, 0.9]


def _deconv(engine="internal", padding="valid", **kw):
    l = DeconvolutionalLayer(2, 2, 3, 1, 2, padding=padding, engine=engine, **kw)
    l.weight.set_data(WEIGHTS)
    l.bias.set_data([0.0, 0.0])
    return l


class TestDeconvolutionalLayer(unittest.TestCase):
    def test_geometry(self):
        l = DeconvolutionalLayer(2, 2, 3, 1, 2)
        self.assertEqual(l.out_shape(), [Shape3D(4, 4, 2)])
        self.assertEqual(l.in_data_size(), 4)
        self.assertEqual(l.out_data_size(), 32)
        self.assertEqual(l.fan_in_size(), 9)
        self.assertEqual(l.fan_out_size(), 18)
        self.assertEqual(l.layer_type(), "deconv")

        strided = DeconvolutionalLayer(3, 3, 2, 1, 1, w_stride=2, h_stride=2)
        self.assertEqual(strided.out_shape(), [Shape3D(6, 6, 1)])

    def test_valid_forward_reference(self):
        for engine in ("internal", "vectorized", "accelerated"):
            with self.subTest(engine=engine):
                out = _deconv(engine).forward(np.array(INPUT, dtype=np.float32))
                np.testing.assert_allclose(out[0].to_numpy()[0], FULL, atol=1e-5)

    def test_same_padding_crops_centre(self):
        for engine in ("internal", "vectorized", "accelerated"):
            with self.subTest(engine=engine):
                l = _deconv(engine, padding="same")
                self.assertEqual(l.out_shape(), [Shape3D(2, 2, 2)])
                out = l.forward(np.array(INPUT, dtype=np.float32))
                np.testing.assert_allclose(out[0].to_numpy()[0], SAME, atol=1e-5)

    def test_same_padding_needs_large_enough_window(self):
        with self.assertRaises(ConfigurationError):
            DeconvolutionalLayer(3, 3, 2, 1, 1, padding="same", w_stride=2, h_stride=2)

    def test_internal_and_vectorized_gradients_agree(self):
        np.random.seed(5)
        for kw in ({}, {"padding": "same"}, {"w_stride": 2, "h_stride": 2}):
            with self.subTest(**kw):
                a = DeconvolutionalLayer(3, 4, 3, 2, 2, engine="internal", **kw)
                b = DeconvolutionalLayer(3, 4, 3, 2, 2, engine="vectorized", **kw)
                a.setup()
                b.setup()
                for pa, pb in zip(a.parameters(), b.parameters()):
                    pa.set_data(np.random.uniform(-1, 1, pa.size()))
                    pb.set_data(pa.data.to_numpy())
                x = np.random.uniform(-1, 1, (2, 24)).astype(np.float32)
                np.testing.assert_allclose(
                    a.forward(x)[0].to_numpy(), b.forward(x)[0].to_numpy(), atol=1e-5
                )
                dy = np.random.uniform(-1, 1, (2, a.out_data_size())).astype(np.float32)
                np.testing.assert_allclose(
                    a.backward(dy)[0].to_numpy(), b.backward(dy)[0].to_numpy(), atol=1e-5
                )
                for pa, pb in zip(a.parameters(), b.parameters()):
                    np.testing.assert_allclose(
                        pa.grad.to_numpy(), pb.grad.to_numpy(), atol=1e-4
                    )

    def test_input_gradient_matches_finite_differences(self):
        np.random.seed(6)
        l = DeconvolutionalLayer(3, 3, 3, 1, 2, padding="same", engine="vectorized")
        l.setup()
        x = np.random.uniform(-1, 1, (1, 9)).astype(np.float32)
        dy = np.random.uniform(-1, 1, (1, l.out_data_size())).astype(np.float32)
        l.forward(x)
        dx = l.backward(dy)[0].to_numpy()

        eps = 1e-3
        for i in range(9):
            xp, xm = x.copy(), x.copy()
            xp[0, i] += eps
            xm[0, i] -= eps
            fp = float(np.sum(l.forward(xp)[0].to_numpy() * dy))
            fm = float(np.sum(l.forward(xm)[0].to_numpy() * dy))
            self.assertAlmostEqual(dx[0, i], (fp - fm) / (2 * eps), delta=2e-3)


if __name__ == "__main__":
    unittest.main()
