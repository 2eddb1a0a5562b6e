import os
import unittest
from unittest import mock

from keynet.domain._errors import (
    BackendCapabilityError,
    ConfigurationError,
    ConnectionMismatchError,
    ContractViolationError,
    LayerTypeMismatchError,
    NetworkError,
    OperationNotSupportedError,
)
from keynet.domain._shape import Shape3D
from keynet.domain._types import (
    ENGINE_ENV_VAR,
    BackendType,
    ParameterType,
    VectorType,
    default_engine,
)


class TestErrorHierarchy(unittest.TestCase):
    def test_all_errors_are_runtime_errors(self):
        for cls in (
            ConfigurationError,
            ConnectionMismatchError,
            BackendCapabilityError,
            OperationNotSupportedError,
            ContractViolationError,
            LayerTypeMismatchError,
        ):
            self.assertTrue(issubclass(cls, NetworkError))
            self.assertTrue(issubclass(cls, RuntimeError))

    def test_connection_mismatch_keeps_attributes(self):
        e = ConnectionMismatchError(
            "fully-connected", "conv", Shape3D(10, 1, 1), Shape3D(4, 4, 1), 10, 16
        )
        self.assertIsInstance(e, ConfigurationError)
        self.assertEqual(e.head_type, "fully-connected")
        self.assertEqual(e.tail_size, 16)
        self.assertIn("layer dimension mismatch!", str(e))
        self.assertIn("10 != 16", str(e))

    def test_backend_capability_message(self):
        e = OperationNotSupportedError("conv2d", "accelerated", "does not support back propagation")
        self.assertIsInstance(e, BackendCapabilityError)
        self.assertEqual(e.op, "conv2d")
        self.assertEqual(e.engine, "accelerated")
        self.assertEqual(
            str(e), "conv2d on engine 'accelerated' does not support back propagation."
        )

    def test_layer_type_mismatch(self):
        e = LayerTypeMismatchError("conv", "fully-connected")
        self.assertEqual((e.expected, e.got), ("conv", "fully-connected"))


class TestEnums(unittest.TestCase):
    def test_parameter_type_maps_to_vector_type(self):
        self.assertIs(ParameterType.WEIGHT.to_vector_type(), VectorType.WEIGHT)
        self.assertIs(ParameterType.BIAS.to_vector_type(), VectorType.BIAS)
        self.assertFalse(VectorType.DATA.is_trainable())
        self.assertTrue(VectorType.BIAS.is_trainable())

    def test_backend_parse(self):
        self.assertIs(BackendType.parse("Vectorized"), BackendType.VECTORIZED)
        with self.assertRaises(ValueError):
            BackendType.parse("opencl")

    def test_default_engine_from_environment(self):
        with mock.patch.dict(os.environ, {ENGINE_ENV_VAR: "vectorized"}):
            self.assertIs(default_engine(), BackendType.VECTORIZED)
        with mock.patch.dict(os.environ, {}, clear=True):
            self.assertIs(default_engine(), BackendType.INTERNAL)


if __name__ == "__main__":
    unittest.main()
