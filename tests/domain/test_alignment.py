import unittest

from src.cvcore.domain._alignment import MemAlignment, align_up, is_power_of_two
from src.cvcore.domain._errors import ConfigurationError


class TestAlignmentHelpers(unittest.TestCase):
    def test_is_power_of_two(self):
        for v in (1, 2, 4, 32, 256, 1 << 20):
            self.assertTrue(is_power_of_two(v), v)
        for v in (0, -2, 3, 6, 48, 255):
            self.assertFalse(is_power_of_two(v), v)

    def test_align_up_rounds_to_next_multiple(self):
        self.assertEqual(align_up(0, 32), 0)
        self.assertEqual(align_up(1, 32), 32)
        self.assertEqual(align_up(32, 32), 32)
        self.assertEqual(align_up(33, 32), 64)
        self.assertEqual(align_up(96, 256), 256)

    def test_align_up_rejects_non_power_of_two(self):
        with self.assertRaises(ConfigurationError):
            align_up(10, 24)


class TestMemAlignment(unittest.TestCase):
    """
    MemAlignment is an immutable (base, row) pair where 0 means "use the
    configured default" and any other value must be a power of two.
    """

    def test_defaults_are_zero(self):
        a = MemAlignment()
        self.assertEqual(a.base, 0)
        self.assertEqual(a.row, 0)

    def test_rejects_non_power_of_two(self):
        with self.assertRaises(ConfigurationError):
            MemAlignment(base=48)
        with self.assertRaises(ConfigurationError):
            MemAlignment(row=3)
        with self.assertRaises(ConfigurationError):
            MemAlignment(base=-16)

    def test_rejects_non_int(self):
        with self.assertRaises(ConfigurationError):
            MemAlignment(base=32.0)  # type: ignore[arg-type]
        with self.assertRaises(ConfigurationError):
            MemAlignment(row=True)  # type: ignore[arg-type]

    def test_resolved_substitutes_only_zero_entries(self):
        a = MemAlignment(row=64).resolved(256, 32)
        self.assertEqual((a.base, a.row), (256, 64))
        b = MemAlignment(base=512).resolved(256, 32)
        self.assertEqual((b.base, b.row), (512, 32))

    def test_with_base_and_with_row_return_new_values(self):
        a = MemAlignment(base=128, row=16)
        self.assertEqual(a.with_base(1024), MemAlignment(1024, 16))
        self.assertEqual(a.with_row(64), MemAlignment(128, 64))
        self.assertEqual(a, MemAlignment(128, 16))

    def test_equality_and_hash(self):
        self.assertEqual(MemAlignment(256, 32), MemAlignment(256, 32))
        self.assertNotEqual(MemAlignment(256, 32), MemAlignment(256, 64))
        self.assertEqual(len({MemAlignment(256, 32), MemAlignment(256, 32)}), 1)

    def test_is_immutable(self):
        a = MemAlignment(256, 32)
        with self.assertRaises(AttributeError):
            a.base = 64  # type: ignore[misc]


if __name__ == "__main__":
    unittest.main()
