import unittest

import numpy as np

from keynet.domain._errors import ContractViolationError
from keynet.domain._types import ParameterType
from keynet.infrastructure._parameter import Parameter
from keynet.infrastructure.tensor._tensor import Tensor
from keynet.infrastructure.utils.weight_initializer import WeightInitializer


class TestParameter(unittest.TestCase):
    def test_dimensions_and_storage(self):
        p = Parameter(3, 2, 1, 4, ParameterType.WEIGHT)
        self.assertEqual(p.shape, (3, 2, 1, 4))
        self.assertEqual(p.size(), 24)
        self.assertEqual(p.data.shape, (24,))
        self.assertEqual(p.grad.shape, (1, 24))
        self.assertTrue(p.trainable)
        self.assertFalse(p.initialized)

    def test_merge_grads_sums_rows(self):
        p = Parameter(2, 1, 1, 1, ParameterType.BIAS)
        p.resize_grad(3)
        p.set_grad(np.array([[1, 2], [2, 1], [-4, 5]], dtype=np.float32))
        dst = Tensor((0,))
        p.merge_grads(dst)
        np.testing.assert_allclose(dst.to_numpy(), [-1, 8])

    def test_initialize_with_constant(self):
        p = Parameter(5, 1, 1, 1, ParameterType.BIAS)
        p.initialize(WeightInitializer("constant", value=4.0), 1, 1)
        np.testing.assert_array_equal(p.data.to_numpy(), [4, 4, 4, 4, 4])
        self.assertTrue(p.initialized)

    def test_set_data_checks_size(self):
        p = Parameter(2, 2, 1, 1, ParameterType.WEIGHT)
        p.set_data([1, 2, 3, 4])
        self.assertEqual(p.data_at(3), 4.0)
        with self.assertRaises(ContractViolationError):
            p.set_data([1, 2, 3])

    def test_set_grad_checks_size(self):
        p = Parameter(2, 1, 1, 1, ParameterType.WEIGHT)
        with self.assertRaises(ContractViolationError):
            p.set_grad(np.zeros((2, 2)))

    def test_resize_and_clear_grads(self):
        p = Parameter(2, 1, 1, 1, ParameterType.WEIGHT)
        p.resize_grad(4)
        self.assertEqual(p.grad.shape, (4, 2))
        p.grad.fill(3.0)
        p.clear_grads()
        np.testing.assert_array_equal(p.grad.to_numpy(), np.zeros((4, 2)))
        p.resize_grad(2)
        self.assertEqual(p.grad.shape, (2, 2))

    def test_set_dims_reallocates_and_uninitializes(self):
        p = Parameter(2, 1, 1, 1, ParameterType.WEIGHT)
        p.set_data([1, 2])
        p.set_dims(3, 1, 1, 1)
        self.assertEqual(p.size(), 3)
        self.assertFalse(p.initialized)
        self.assertEqual(p.data.shape, (3,))

    def test_freeze(self):
        p = Parameter(1, 1, 1, 1, ParameterType.WEIGHT)
        p.freeze_trainable()
        self.assertFalse(p.trainable)


if __name__ == "__main__":
    unittest.main()
