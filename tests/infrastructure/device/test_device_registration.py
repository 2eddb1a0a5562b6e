import unittest

import numpy as np

from keynet.domain.device._device_protocol import DeviceLike, DeviceType
from keynet.infrastructure.device import Device, ProgramCache
from keynet.infrastructure.layers import ConvolutionalLayer, FullyConnectedLayer


def _accel_conv(**kw):
    return ConvolutionalLayer(5, 5, 3, 1, 2, engine="accelerated", **kw)


class TestDeviceDescriptor(unittest.TestCase):
    def test_parse_strings(self):
        d = Device("gpu:2:0")
        self.assertIs(d.type, DeviceType.GPU)
        self.assertEqual((d.platform_id, d.device_id), (2, 0))
        self.assertEqual(str(d), "gpu:2:0")
        self.assertTrue(Device("cpu").is_cpu())
        self.assertFalse(Device("cpu").has_ids())
        self.assertIs(Device("none").type, DeviceType.NONE)

    def test_invalid_strings_raise(self):
        for bad in ("cuda:0", "gpu:1", "gpu:-1:0"):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    Device(bad)
        with self.assertRaises(ValueError):
            Device(DeviceType.GPU, 1, None)

    def test_equality_and_protocol(self):
        self.assertEqual(Device(DeviceType.GPU, 2, 0), Device("gpu:2:0"))
        self.assertNotEqual(Device("gpu:2:0"), Device("gpu:2:1"))
        self.assertIsInstance(Device("cpu"), DeviceLike)


class TestRegisterOp(unittest.TestCase):
    def test_registration_compiles_once(self):
        dev = Device(DeviceType.GPU, 2, 0)
        layer = _accel_conv()
        self.assertEqual(dev.num_programs_compiled(), 0)
        self.assertTrue(dev.register_op(layer))
        self.assertEqual(dev.num_programs_compiled(), 1)
        self.assertTrue(dev.register_op(layer))
        self.assertEqual(dev.num_programs_compiled(), 1)

        twin = _accel_conv()
        dev.register_op(twin)
        self.assertEqual(dev.num_programs_compiled(), 1)

    def test_distinct_geometries_get_distinct_programs(self):
        dev = Device(DeviceType.GPU, 0, 0)
        dev.register_op(_accel_conv())
        dev.register_op(_accel_conv(padding="same"))
        self.assertEqual(dev.num_programs_compiled(), 2)

    def test_shared_cache_is_keyed_by_device(self):
        cache = ProgramCache()
        a = Device("gpu:0:0", cache=cache)
        b = Device("gpu:0:1", cache=cache)
        a.register_op(_accel_conv())
        b.register_op(_accel_conv())
        self.assertEqual(a.num_programs_compiled(), 1)
        self.assertEqual(b.num_programs_compiled(), 1)
        self.assertEqual(len(cache), 2)
        cache.reset()
        self.assertEqual(a.num_programs_compiled(), 0)

    def test_device_without_ids_warns(self):
        with self.assertWarns(RuntimeWarning):
            self.assertFalse(Device(DeviceType.CPU).register_op(_accel_conv()))

    def test_non_accelerated_layer_warns(self):
        dev = Device(DeviceType.CPU, 2, 0)
        with self.assertWarns(RuntimeWarning):
            self.assertFalse(dev.register_op(FullyConnectedLayer(3, 2)))
        self.assertEqual(dev.num_programs_compiled(), 0)

    def test_registered_program_matches_local_program(self):
        np.random.seed(4)
        x = np.random.uniform(-1, 1, (2, 25)).astype(np.float32)
        local = _accel_conv()
        local.setup()
        registered = _accel_conv()
        registered.setup()
        for a, b in zip(local.parameters(), registered.parameters()):
            b.set_data(a.data.to_numpy())
        Device("gpu:1:0").register_op(registered)
        np.testing.assert_allclose(
            registered.forward(x)[0].to_numpy(), local.forward(x)[0].to_numpy(), atol=1e-6
        )


if __name__ == "__main__":
    unittest.main()
