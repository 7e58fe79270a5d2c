import ctypes
import unittest

from src.cvcore.domain._alignment import MemAlignment
from src.cvcore.domain._data_type import F32, TYPE_3U8, U8
from src.cvcore.domain._errors import ConfigurationError
from src.cvcore.domain._image_format import (
    FMT_NV12,
    FMT_RGB8,
    FMT_RGB8p,
    FMT_RGBf32p,
    Size2D,
)
from src.cvcore.domain._tensor_layout import TensorLayout
from src.cvcore.domain._tensor_shape import TensorShape
from src.cvcore.infrastructure._config import reload_config
from src.cvcore.infrastructure._requirements_calc import (
    calc_image_batch_requirements,
    calc_image_requirements,
    calc_tensor_requirements,
    calc_tensor_requirements_for_images,
    resolve_alignment,
    row_axis,
)
from src.cvcore.infrastructure.c_abi._structs import CImageBufferStrided
from src.cvcore.infrastructure.tensor import Tensor


def setUpModule():
    reload_config()


class TestTensorRequirements(unittest.TestCase):
    def test_rank3_u8_without_layout(self):
        reqs = calc_tensor_requirements((5, 48, 32), U8)
        self.assertEqual(reqs.strides, (1536, 32, 1))
        self.assertEqual(reqs.total_bytes, 7680)
        self.assertEqual(reqs.alignment, 256)
        self.assertEqual(reqs.row_alignment, 32)
        self.assertEqual(reqs.shape, TensorShape((5, 48, 32)))

    def test_row_pitch_is_rounded_to_row_alignment(self):
        reqs = calc_tensor_requirements((2, 3, 5), U8, MemAlignment(row=64))
        self.assertEqual(reqs.strides, (192, 64, 1))
        self.assertEqual(reqs.total_bytes, 384)

    def test_h_axis_is_the_row_axis(self):
        # HWC: the row pitch is the stride of H, not of the second-to-last axis.
        reqs = calc_tensor_requirements((4, 5, 3), U8, layout="HWC")
        self.assertEqual(reqs.strides, (32, 3, 1))
        self.assertEqual(reqs.total_bytes, 128)
        self.assertEqual(str(reqs.layout), "HWC")

    def test_rank1_has_no_row_padding(self):
        reqs = calc_tensor_requirements((10,), F32)
        self.assertEqual(reqs.strides, (4,))
        self.assertEqual(reqs.total_bytes, 40)

    def test_multichannel_element(self):
        reqs = calc_tensor_requirements((2, 4), TYPE_3U8, layout="HW")
        self.assertEqual(reqs.strides, (32, 3))
        self.assertEqual(reqs.total_bytes, 64)

    def test_row_axis(self):
        self.assertEqual(row_axis(TensorShape((1, 2, 3, 4), "NCHW")), 2)
        self.assertEqual(row_axis(TensorShape((1, 2, 3, 4), "NHWC")), 1)
        self.assertEqual(row_axis(TensorShape((2, 3))), 0)
        self.assertEqual(row_axis(TensorShape((7,))), -1)
        self.assertEqual(row_axis(TensorShape((2, 10, 3), "NWC")), 0)
        self.assertEqual(row_axis(TensorShape((2, 3, 10), "NCW")), 1)
        self.assertEqual(row_axis(TensorShape((10, 3), "WC")), -1)

    def test_nwc_rows_stay_packed(self):
        # The pitch belongs to the axis enclosing W; pixels within a row stay dense.
        reqs = calc_tensor_requirements((2, 10, 3), U8, layout="NWC")
        self.assertEqual(reqs.strides, (32, 3, 1))
        self.assertEqual(reqs.total_bytes, 64)

        reqs = calc_tensor_requirements((1, 100, 4), U8, layout="NWC")
        self.assertEqual(reqs.strides, (416, 4, 1))
        self.assertEqual(reqs.total_bytes, 416)

    def test_leading_w_has_no_row_padding(self):
        reqs = calc_tensor_requirements((10, 3), U8, layout="WC")
        self.assertEqual(reqs.strides, (3, 1))
        self.assertEqual(reqs.total_bytes, 30)

    def test_invalid_inputs(self):
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements((), U8)
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements((3, 0), U8)
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements((3, 4), "u8")
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements((1,) * 16, U8)
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements((3, 4), U8, layout="HWC")
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements(TensorShape((3, 4), "HW"), U8, layout="WH")

    def test_resolve_alignment(self):
        self.assertEqual(resolve_alignment(None), MemAlignment(256, 32))
        self.assertEqual(resolve_alignment(MemAlignment(base=64)), MemAlignment(64, 32))
        with self.assertRaises(ConfigurationError):
            resolve_alignment(256)

    def test_is_deterministic(self):
        a = calc_tensor_requirements((3, 7, 9), F32, MemAlignment(128, 64), layout="CHW")
        b = calc_tensor_requirements((3, 7, 9), F32, MemAlignment(128, 64), layout="CHW")
        self.assertEqual(a, b)


class TestImagesTensorRequirements(unittest.TestCase):
    def test_packed_format_maps_to_nhwc(self):
        reqs = calc_tensor_requirements_for_images(2, Size2D(5, 4), FMT_RGB8)
        self.assertEqual(reqs.layout, TensorLayout.NHWC)
        self.assertEqual(reqs.shape.shape, (2, 4, 5, 3))
        self.assertEqual(reqs.dtype, U8)
        self.assertEqual(reqs.strides, (128, 32, 3, 1))
        self.assertEqual(reqs.total_bytes, 256)

    def test_planar_format_maps_to_nchw(self):
        reqs = calc_tensor_requirements_for_images(1, Size2D(5, 4), FMT_RGB8p)
        self.assertEqual(reqs.layout, TensorLayout.NCHW)
        self.assertEqual(reqs.shape.shape, (1, 3, 4, 5))
        self.assertEqual(reqs.strides, (384, 128, 32, 1))

        f32 = calc_tensor_requirements_for_images(1, Size2D(5, 4), FMT_RGBf32p)
        self.assertEqual(f32.dtype, F32)
        self.assertEqual(f32.strides[-1], 4)

    def test_subsampled_format_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements_for_images(1, Size2D(8, 4), FMT_NV12)

    def test_invalid_counts_and_sizes(self):
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements_for_images(0, Size2D(8, 4), FMT_RGB8)
        with self.assertRaises(ConfigurationError):
            calc_tensor_requirements_for_images(1, Size2D(0, 4), FMT_RGB8)

    def test_tensor_calc_requirements_dispatch(self):
        self.assertEqual(
            Tensor.calc_requirements(2, Size2D(5, 4), FMT_RGB8),
            calc_tensor_requirements_for_images(2, Size2D(5, 4), FMT_RGB8),
        )
        self.assertEqual(
            Tensor.calc_requirements((5, 48, 32), U8),
            calc_tensor_requirements((5, 48, 32), U8),
        )


class TestImageRequirements(unittest.TestCase):
    def test_packed_image(self):
        reqs = calc_image_requirements(Size2D(10, 4), FMT_RGB8)
        self.assertEqual(reqs.plane_row_strides, (32,))
        self.assertEqual(reqs.plane_offsets, (0,))
        self.assertEqual(reqs.total_bytes, 128)
        self.assertEqual(reqs.alignment, 256)

    def test_nv12_planes_start_at_base_alignment(self):
        reqs = calc_image_requirements((8, 4), FMT_NV12)
        self.assertEqual(reqs.size, Size2D(8, 4))
        self.assertEqual(reqs.plane_row_strides, (32, 32))
        self.assertEqual(reqs.plane_offsets, (0, 256))
        self.assertEqual(reqs.total_bytes, 320)

    def test_custom_alignment(self):
        reqs = calc_image_requirements((8, 4), FMT_NV12, MemAlignment(base=64, row=16))
        self.assertEqual(reqs.plane_row_strides, (16, 16))
        self.assertEqual(reqs.plane_offsets, (0, 64))
        self.assertEqual(reqs.total_bytes, 96)
        self.assertEqual((reqs.alignment, reqs.row_alignment), (64, 16))

    def test_invalid_size(self):
        with self.assertRaises(ConfigurationError):
            calc_image_requirements((0, 4), FMT_RGB8)
        with self.assertRaises(ConfigurationError):
            calc_image_requirements((4, 4), U8)


class TestImageBatchRequirements(unittest.TestCase):
    def test_descriptor_list_size(self):
        reqs = calc_image_batch_requirements(3)
        self.assertEqual(reqs.capacity, 3)
        self.assertEqual(reqs.descriptor_bytes, 3 * ctypes.sizeof(CImageBufferStrided))
        self.assertEqual(reqs.alignment, 256)

    def test_capacity_must_be_positive(self):
        for bad in (0, -1, 2.0):
            with self.assertRaises(ConfigurationError):
                calc_image_batch_requirements(bad)


if __name__ == "__main__":
    unittest.main()
