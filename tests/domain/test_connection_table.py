import unittest

import numpy as np

from keynet.domain._connection_table import ConnectionTable


class TestConnectionTable(unittest.TestCase):
    def test_empty_table_connects_everything(self):
        t = ConnectionTable()
        self.assertTrue(t.is_empty())
        self.assertTrue(t.is_connected(3, 7))
        np.testing.assert_array_equal(t.as_mask(2, 3), np.ones((2, 3), dtype=bool))
        self.assertIsNone(t.to_list())

    def test_rows_are_inputs_and_cols_are_outputs(self):
        # input 0 -> output 0, input 1 -> outputs 0 and 1
        t = ConnectionTable([True, False, True, True], rows=2, cols=2)
        self.assertTrue(t.is_connected(0, 0))
        self.assertFalse(t.is_connected(1, 0))
        self.assertTrue(t.is_connected(0, 1))
        self.assertTrue(t.is_connected(1, 1))

        mask = t.as_mask(out_channels=2, in_channels=2)
        np.testing.assert_array_equal(mask, [[True, True], [False, True]])

    def test_wrong_length_raises(self):
        with self.assertRaises(ValueError):
            ConnectionTable([True, False, True], rows=2, cols=2)

    def test_mask_for_wrong_channel_counts_raises(self):
        t = ConnectionTable([True] * 6, rows=2, cols=3)
        with self.assertRaises(ValueError):
            t.as_mask(out_channels=2, in_channels=3)

    def test_to_list_round_trip(self):
        flat = [True, False, False, True, True, False]
        t = ConnectionTable(flat, rows=3, cols=2)
        self.assertEqual(ConnectionTable(t.to_list(), 3, 2).to_list(), flat)


if __name__ == "__main__":
    unittest.main()
