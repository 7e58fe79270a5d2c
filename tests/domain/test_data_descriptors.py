import dataclasses
import unittest

from src.cvcore.domain._data import (
    ImageBatchVarShapeDataStridedHost,
    ImageDataStridedCuda,
    ImageDataStridedHost,
    ImagePlaneStrided,
    TensorDataStrided,
    TensorDataStridedCuda,
    TensorDataStridedHost,
)
from src.cvcore.domain._data_type import TYPE_3U8, U8
from src.cvcore.domain._errors import ConfigurationError
from src.cvcore.domain._image_format import FMT_NV12, FMT_RGB8, Size2D
from src.cvcore.domain._tensor_shape import TensorShape


class TestTensorDataStrided(unittest.TestCase):
    def test_valid_descriptor(self):
        d = TensorDataStridedHost(0x1000, TensorShape((2, 3), "HW"), U8, (32, 1))
        self.assertEqual(d.rank, 2)
        self.assertEqual(str(d.layout), "HW")
        self.assertIsInstance(d, TensorDataStrided)

    def test_rejects_null_pointer(self):
        with self.assertRaises(ConfigurationError):
            TensorDataStridedHost(0, TensorShape((2, 3)), U8, (3, 1))

    def test_rejects_stride_count_mismatch(self):
        with self.assertRaises(ConfigurationError):
            TensorDataStridedCuda(0x1000, TensorShape((2, 3)), U8, (3,))

    def test_rejects_negative_strides(self):
        with self.assertRaises(ConfigurationError):
            TensorDataStridedHost(0x1000, TensorShape((2, 3)), U8, (-3, 1))

    def test_is_immutable(self):
        d = TensorDataStridedHost(0x1000, TensorShape((4,)), U8, (1,))
        with self.assertRaises(dataclasses.FrozenInstanceError):
            d.base_ptr = 0x2000  # type: ignore[misc]

    def test_host_and_cuda_descriptors_differ(self):
        args = (0x1000, TensorShape((4,)), U8, (1,))
        self.assertNotEqual(TensorDataStridedHost(*args), TensorDataStridedCuda(*args))
        self.assertEqual(TensorDataStridedHost(*args), TensorDataStridedHost(*args))


class TestImageDataStrided(unittest.TestCase):
    def test_single_plane(self):
        d = ImageDataStridedHost(FMT_RGB8, (ImagePlaneStrided(10, 4, 32, 0x1000),))
        self.assertEqual(d.num_planes, 1)
        self.assertEqual(d.size, Size2D(10, 4))

    def test_plane_count_must_match_format(self):
        with self.assertRaises(ConfigurationError):
            ImageDataStridedCuda(FMT_NV12, (ImagePlaneStrided(10, 4, 32, 0x1000),))

    def test_row_stride_must_hold_a_row(self):
        # 12 RGB8 pixels need 36 bytes per row.
        with self.assertRaises(ConfigurationError):
            ImageDataStridedHost(FMT_RGB8, (ImagePlaneStrided(12, 4, 32, 0x1000),))

    def test_plane_validation(self):
        with self.assertRaises(ConfigurationError):
            ImagePlaneStrided(0, 4, 32, 0x1000)
        with self.assertRaises(ConfigurationError):
            ImagePlaneStrided(4, 4, 0, 0x1000)
        with self.assertRaises(ConfigurationError):
            ImagePlaneStrided(4, 4, 32, 0)


class TestImageBatchData(unittest.TestCase):
    def test_count_must_match_descriptors(self):
        img = ImageDataStridedHost(FMT_RGB8, (ImagePlaneStrided(4, 4, 32, 0x1000),))
        ok = ImageBatchVarShapeDataStridedHost(1, (img,), FMT_RGB8, Size2D(4, 4), 0x2000)
        self.assertEqual(ok.images[0].format, FMT_RGB8)
        with self.assertRaises(ConfigurationError):
            ImageBatchVarShapeDataStridedHost(2, (img,), FMT_RGB8, Size2D(4, 4), 0x2000)

    def test_channel_type_is_preserved(self):
        img = ImageDataStridedHost(FMT_RGB8, (ImagePlaneStrided(4, 4, 32, 0x1000),))
        self.assertEqual(img.format.plane_dtype(0), TYPE_3U8)


if __name__ == "__main__":
    unittest.main()
