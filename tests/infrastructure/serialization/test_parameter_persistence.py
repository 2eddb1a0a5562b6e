import io
import json
import unittest

import numpy as np

from keynet.domain._connection_table import ConnectionTable
from keynet.domain._errors import ContractViolationError, LayerTypeMismatchError
from keynet.infrastructure.encoding._b64 import ndarray_to_payload, payload_to_ndarray
from keynet.infrastructure.layers import (
    ConvolutionalLayer,
    FullyConnectedLayer,
    MaxPoolingLayer,
)
from keynet.infrastructure.serialization._config import layer_from_config, layer_to_config
from keynet.infrastructure.serialization._parameters import save_parameters


def _ready(layer):
    layer.setup()
    return layer


class TestParameterStreams(unittest.TestCase):
    def test_save_then_load_restores_values(self):
        src = _ready(ConvolutionalLayer(5, 5, 3, 2, 3))
        dst = _ready(ConvolutionalLayer(5, 5, 3, 2, 3))
        self.assertFalse(dst.has_same_parameters(src))

        buf = io.StringIO()
        src.save(buf)
        buf.seek(0)
        dst.load(buf)
        self.assertTrue(dst.has_same_parameters(src))

    def test_document_layout(self):
        doc = save_parameters(_ready(FullyConnectedLayer(3, 2)))
        self.assertEqual(doc["layer_type"], "fully-connected")
        self.assertEqual([e["role"] for e in doc["parameters"]], ["weight", "bias"])
        self.assertEqual(doc["parameters"][0]["shape"], [3, 2, 1, 1])
        self.assertEqual(doc["parameters"][0]["count"], 6)
        json.dumps(doc)

    def test_layer_type_mismatch(self):
        buf = io.StringIO()
        _ready(FullyConnectedLayer(4, 2)).save(buf)
        buf.seek(0)
        with self.assertRaises(LayerTypeMismatchError) as ctx:
            _ready(ConvolutionalLayer(2, 2, 1, 1, 2)).load(buf)
        self.assertEqual(ctx.exception.expected, "conv")
        self.assertEqual(ctx.exception.got, "fully-connected")

    def test_rejected_stream_leaves_layer_untouched(self):
        buf = io.StringIO()
        _ready(FullyConnectedLayer(3, 2, has_bias=False)).save(buf)
        dst = _ready(FullyConnectedLayer(3, 2))
        before = [p.data.to_numpy() for p in dst.parameters()]
        buf.seek(0)
        with self.assertRaises(ContractViolationError):
            dst.load(buf)
        for b, p in zip(before, dst.parameters()):
            np.testing.assert_array_equal(b, p.data.to_numpy())

    def test_shape_mismatch(self):
        buf = io.StringIO()
        _ready(FullyConnectedLayer(3, 2)).save(buf)
        buf.seek(0)
        with self.assertRaises(ContractViolationError):
            _ready(FullyConnectedLayer(2, 3)).load(buf)

    def test_parameterless_layer(self):
        buf = io.StringIO()
        MaxPoolingLayer(4, 4, 1, 2).save(buf)
        buf.seek(0)
        MaxPoolingLayer(4, 4, 1, 2).load(buf)


class TestPayloads(unittest.TestCase):
    def test_exact_float_values(self):
        arr = np.array([0.1, -3.5e-20, 7.0], dtype=np.float32)
        np.testing.assert_array_equal(payload_to_ndarray(ndarray_to_payload(arr)), arr)

    def test_corrupt_count(self):
        payload = ndarray_to_payload(np.zeros(4, dtype=np.float32))
        payload["count"] = 5
        with self.assertRaises(ValueError):
            payload_to_ndarray(payload)


class TestLayerConfig(unittest.TestCase):
    def test_conv_round_trip(self):
        table = ConnectionTable([True, False, True, True], 2, 2)
        layer = ConvolutionalLayer(
            6, 5, (3, 2), 2, 2, padding="same", connection_table=table, activation="tanh"
        )
        node = json.loads(json.dumps(layer_to_config(layer)))
        self.assertEqual(node["type"], "ConvolutionalLayer")
        clone = layer_from_config(node)
        self.assertEqual(clone.get_config(), layer.get_config())
        self.assertEqual(clone.out_shape(), layer.out_shape())

    def test_unknown_type(self):
        with self.assertRaises(ValueError):
            layer_from_config({"type": "NoSuchLayer", "config": {}})

    def test_unregistered_class(self):
        class Custom(FullyConnectedLayer):
            pass

        with self.assertRaises(ValueError):
            layer_to_config(Custom(2, 2))


if __name__ == "__main__":
    unittest.main()
