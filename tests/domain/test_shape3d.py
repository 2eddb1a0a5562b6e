import unittest

from keynet.domain._errors import ContractViolationError
from keynet.domain._shape import Padding, Shape3D, conv_out_length


class TestShape3D(unittest.TestCase):
    def test_get_index_is_channel_major(self):
        s = Shape3D(2, 2, 3)
        self.assertEqual(s.get_index(0, 0, 0), 0)
        self.assertEqual(s.get_index(1, 0, 0), 1)
        self.assertEqual(s.get_index(0, 1, 0), 2)
        self.assertEqual(s.get_index(0, 0, 1), 4)
        self.assertEqual(s.get_index(1, 1, 2), 11)

    def test_get_index_out_of_range_raises(self):
        s = Shape3D(2, 2, 3)
        with self.assertRaises(ContractViolationError):
            s.get_index(2, 0, 0)
        with self.assertRaises(ContractViolationError):
            s.get_index(0, 0, 3)
        with self.assertRaises(ContractViolationError):
            s.get_index(-1, 0, 0)

    def test_area_and_size(self):
        s = Shape3D(4, 3, 2)
        self.assertEqual(s.area(), 12)
        self.assertEqual(s.size(), 24)
        self.assertEqual(Shape3D().size(), 0)

    def test_negative_extent_raises(self):
        with self.assertRaises(ValueError):
            Shape3D(-1, 2, 2)

    def test_equality_hash_and_str(self):
        a, b = Shape3D(5, 5, 3), Shape3D(5, 5, 3)
        self.assertEqual(a, b)
        self.assertEqual(hash(a), hash(b))
        self.assertNotEqual(a, Shape3D(5, 5, 2))
        self.assertEqual(str(a), "5x5x3")
        self.assertEqual(tuple(a), (5, 5, 3))


class TestPadding(unittest.TestCase):
    def test_parse_accepts_members_and_strings(self):
        self.assertIs(Padding.parse(Padding.SAME), Padding.SAME)
        self.assertIs(Padding.parse("valid"), Padding.VALID)
        self.assertIs(Padding.parse("SAME"), Padding.SAME)

    def test_parse_rejects_unknown(self):
        with self.assertRaises(ValueError):
            Padding.parse("full")

    def test_conv_out_length(self):
        self.assertEqual(conv_out_length(5, 3, 1, Padding.VALID), 3)
        self.assertEqual(conv_out_length(5, 3, 2, Padding.VALID), 2)
        self.assertEqual(conv_out_length(5, 3, 1, Padding.SAME), 5)
        self.assertEqual(conv_out_length(5, 3, 2, Padding.SAME), 3)


if __name__ == "__main__":
    unittest.main()
