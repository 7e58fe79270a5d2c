import unittest

from src.cvcore.domain._data_type import (
    F16,
    F32,
    S16,
    TYPE_3U8,
    TYPE_4F32,
    U8,
    U64,
    DataKind,
    DataType,
)
from src.cvcore.domain._errors import ConfigurationError


class TestDataType(unittest.TestCase):
    def test_single_channel_properties(self):
        self.assertEqual(U8.kind, DataKind.UNSIGNED)
        self.assertEqual(U8.bits_per_channel, 8)
        self.assertEqual(U8.num_channels, 1)
        self.assertEqual(U8.stride_bytes, 1)
        self.assertEqual(F32.stride_bytes, 4)
        self.assertEqual(U64.bits_per_pixel, 64)

    def test_multi_channel_properties(self):
        self.assertEqual(TYPE_3U8.num_channels, 3)
        self.assertEqual(TYPE_3U8.bits_per_pixel, 24)
        self.assertEqual(TYPE_3U8.stride_bytes, 3)
        self.assertEqual(TYPE_3U8.channel_type, U8)
        self.assertEqual(TYPE_4F32.stride_bytes, 16)
        self.assertEqual(TYPE_4F32.channel_type, F32)

    def test_names(self):
        self.assertEqual(U8.name, "U8")
        self.assertEqual(S16.name, "S16")
        self.assertEqual(F16.name, "F16")
        self.assertEqual(TYPE_3U8.name, "3U8")
        self.assertEqual(str(TYPE_4F32), "4F32")

    def test_invalid_combinations_raise(self):
        with self.assertRaises(ConfigurationError):
            DataType(DataKind.FLOAT, 8)
        with self.assertRaises(ConfigurationError):
            DataType(DataKind.UNSIGNED, 12)
        with self.assertRaises(ConfigurationError):
            DataType(DataKind.UNSIGNED, 8, 5)
        with self.assertRaises(ConfigurationError):
            DataType(DataKind.SIGNED, 8, 0)

    def test_code_is_reversible(self):
        for dt in (U8, S16, F16, F32, U64, TYPE_3U8, TYPE_4F32):
            self.assertEqual(DataType.from_code(dt.code), dt)

    def test_codes_are_distinct(self):
        codes = {dt.code for dt in (U8, S16, F16, F32, U64, TYPE_3U8, TYPE_4F32)}
        self.assertEqual(len(codes), 7)

    def test_from_code_rejects_garbage(self):
        with self.assertRaises(ConfigurationError):
            DataType.from_code(0)
        with self.assertRaises(ConfigurationError):
            DataType.from_code(0x7F0801)

    def test_equality_and_hash(self):
        self.assertEqual(DataType(DataKind.UNSIGNED, 8, 3), TYPE_3U8)
        self.assertNotEqual(U8, TYPE_3U8)
        self.assertEqual(hash(DataType(DataKind.FLOAT, 32)), hash(F32))


if __name__ == "__main__":
    unittest.main()
