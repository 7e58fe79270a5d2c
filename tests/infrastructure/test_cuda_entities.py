import ctypes
import os
import unittest

import numpy as np

try:
    from dotenv import load_dotenv
except ImportError as e:
    raise ImportError(
        "python-dotenv is required to load .env for CUDA tests. "
        "Install it with: pip install python-dotenv"
    ) from e

# CVCORE_CUDART_PATH may be set in repo_root/.env.
_THIS_DIR = os.path.dirname(os.path.abspath(__file__))
_REPO_ROOT = os.path.abspath(os.path.join(_THIS_DIR, "..", ".."))
load_dotenv(os.path.join(_REPO_ROOT, ".env"))

from src.cvcore.infrastructure._config import reload_config

reload_config()

from src.cvcore.domain._allocator import MemoryKind
from src.cvcore.domain._data import (
    ImageBatchVarShapeDataStridedCuda,
    ImageDataStridedCuda,
    TensorDataStridedCuda,
    TensorDataStridedHost,
)
from src.cvcore.domain._data_type import F32
from src.cvcore.domain._image_format import FMT_NV12, FMT_RGB8
from src.cvcore.infrastructure.alloc._cuda_allocator import CudaMemAllocator
from src.cvcore.infrastructure.c_abi._structs import CImageBufferStrided
from src.cvcore.infrastructure.image._image import Image
from src.cvcore.infrastructure.image._image_batch import ImageBatchVarShape
from src.cvcore.infrastructure.native_cuda.python.cudart_ctypes import (
    cuda_available,
    get_cuda_runtime,
)
from src.cvcore.infrastructure.tensor import Tensor, TensorWrapImage


class TestCudaEntities(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        if not cuda_available():
            raise unittest.SkipTest("CUDA runtime or device unavailable")
        cls.rt = get_cuda_runtime()

    def test_cuda_allocator_alignment(self):
        res = CudaMemAllocator()
        for alignment in (256, 1024, 4096):
            ptr, actual = res.allocate(1000, alignment)
            self.assertGreaterEqual(actual, 1000)
            self.assertEqual(ptr % alignment, 0)
            res.deallocate(ptr, 1000, alignment)
        self.assertEqual(res.num_live_blocks, 0)

    def test_tensor_roundtrip_through_device(self):
        t = Tensor((3, 5), F32, layout="HW")
        data = t.export_data(TensorDataStridedCuda)
        self.assertIsNotNone(data)
        self.assertIsNone(t.export_data(TensorDataStridedHost))

        src = np.arange(15, dtype=np.float32).reshape(3, 5)
        for r in range(3):
            self.rt.memcpy_h2d(data.base_ptr + r * data.strides[0], src[r].ctypes.data, 20)
        np.testing.assert_array_equal(t.cpu(), src)

        iface = t.__cuda_array_interface__
        self.assertEqual(iface["data"][0], data.base_ptr)
        self.assertEqual(iface["strides"], data.strides)
        t.close()

    def test_image_zeros_on_device(self):
        img = Image.zeros((8, 4), FMT_NV12)
        self.assertIsInstance(img.export_data(), ImageDataStridedCuda)
        luma, chroma = img.cpu()
        self.assertFalse(luma.any())
        self.assertFalse(chroma.any())
        img.close()

    def test_tensor_wrap_image_on_device(self):
        img = Image.zeros((5, 4), FMT_RGB8)
        t = TensorWrapImage(img)
        self.assertIs(t.memory, MemoryKind.CUDA)
        np.testing.assert_array_equal(t.cpu(), np.zeros((1, 4, 5, 3), np.uint8))
        t.close()
        img.close()

    def test_batch_descriptor_list_on_device(self):
        batch = ImageBatchVarShape(2)
        img = Image((8, 4), FMT_RGB8)
        batch.push_back(img)
        data = batch.export_data(ImageBatchVarShapeDataStridedCuda)

        entry = CImageBufferStrided()
        self.rt.memcpy_d2h(ctypes.addressof(entry), data.descriptor_ptr, ctypes.sizeof(entry))
        self.assertEqual(entry.format, FMT_RGB8.code)
        self.assertEqual(entry.planes[0].basePtr, img.export_data().planes[0].base_ptr)
        batch.close()
        img.close()

    def test_pinned_host_tensor(self):
        t = Tensor((2, 2), F32, memory=MemoryKind.HOST_PINNED)
        data = t.export_data(TensorDataStridedHost)
        ctypes.memset(data.base_ptr, 0, t.requirements.total_bytes)
        np.testing.assert_array_equal(t.cpu(), np.zeros((2, 2), np.float32))
        t.close()


if __name__ == "__main__":
    unittest.main()
