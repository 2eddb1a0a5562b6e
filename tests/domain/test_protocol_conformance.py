import unittest

from keynet.domain._layer import ILayer
from keynet.domain._optimizers import IOptimizer
from keynet.domain._parameter import IParameter
from keynet.domain._tensor import ITensor
from keynet.infrastructure.layers import FullyConnectedLayer, LRNLayer, MaxPoolingLayer
from keynet.infrastructure.optimizers import SGD, Adagrad, Adam, Momentum, RMSprop
from keynet.infrastructure.tensor._tensor import Tensor


class TestProtocolConformance(unittest.TestCase):
    def test_layers_are_ilayer(self):
        for layer in (
            FullyConnectedLayer(2, 2),
            MaxPoolingLayer(4, 4, 1, 2),
            LRNLayer((2, 2, 3), 3),
        ):
            self.assertIsInstance(layer, ILayer)

    def test_optimizers_are_ioptimizer(self):
        for opt in (SGD(), Momentum(), Adagrad(), RMSprop(), Adam()):
            self.assertIsInstance(opt, IOptimizer)

    def test_parameter_and_tensor(self):
        layer = FullyConnectedLayer(3, 2)
        layer.setup()
        p = layer.parameters()[0]
        self.assertIsInstance(p, IParameter)
        self.assertIsInstance(p.data, ITensor)
        self.assertIsInstance(Tensor((2, 3)), ITensor)
        self.assertNotIsInstance(object(), ITensor)


if __name__ == "__main__":
    unittest.main()
