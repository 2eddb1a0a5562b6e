import threading
import unittest

from keynet.infrastructure.utils._parallel import for_, for_i


class TestParallelFor(unittest.TestCase):
    def test_blocks_cover_range_exactly_once(self):
        seen = []
        lock = threading.Lock()

        def block(lo, hi):
            with lock:
                seen.extend(range(lo, hi))

        for_(True, 3, 1003, block, grainsize=16)
        self.assertEqual(sorted(seen), list(range(3, 1003)))

    def test_sequential_when_disabled(self):
        calls = []
        for_(False, 0, 100, lambda lo, hi: calls.append((lo, hi)))
        self.assertEqual(calls, [(0, 100)])

    def test_empty_range_is_noop(self):
        calls = []
        for_(True, 5, 5, lambda lo, hi: calls.append((lo, hi)))
        self.assertEqual(calls, [])

    def test_for_i(self):
        out = [0] * 50
        for_i(True, 50, lambda i: out.__setitem__(i, i * i))
        self.assertEqual(out, [i * i for i in range(50)])

    def test_worker_exception_propagates(self):
        def block(lo, hi):
            if lo <= 7 < hi:
                raise KeyError("boom")

        with self.assertRaises(KeyError):
            for_(True, 0, 64, block, grainsize=4)


if __name__ == "__main__":
    unittest.main()
