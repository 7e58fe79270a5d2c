import ctypes
import unittest

from src.cvcore.domain._allocator import IResourceAllocator, MemoryKind
from src.cvcore.domain._errors import (
    ConfigurationError,
    DeviceNotSupportedError,
    ResourceExhaustedError,
)
from src.cvcore.domain.device._device import Device
from src.cvcore.infrastructure.alloc._allocator import Allocator, default_allocator
from src.cvcore.infrastructure.alloc._cuda_allocator import (
    CudaMemAllocator,
    HostPinnedMemAllocator,
)
from src.cvcore.infrastructure.alloc._custom_allocator import CustomMemAllocator
from src.cvcore.infrastructure.alloc._host_allocator import HostMemAllocator
from src.cvcore.infrastructure.native_cuda.python.cudart_ctypes import get_cuda_runtime


class TestHostMemAllocator(unittest.TestCase):
    def setUp(self):
        self.res = HostMemAllocator()

    def test_allocate_is_aligned_and_writable(self):
        for alignment in (1, 16, 256, 4096):
            ptr, actual = self.res.allocate(100, alignment)
            self.assertEqual(ptr % alignment, 0)
            self.assertGreaterEqual(actual, 100)
            ctypes.memset(ptr, 0x5A, 100)
            self.assertEqual(ctypes.string_at(ptr, 100), b"\x5a" * 100)
            self.res.deallocate(ptr, 100, alignment)
        self.assertEqual(self.res.num_live_blocks, 0)

    def test_deallocate_requires_matching_request(self):
        ptr, _ = self.res.allocate(64, 32)
        with self.assertRaises(ValueError):
            self.res.deallocate(ptr, 32, 32)
        with self.assertRaises(ValueError):
            self.res.deallocate(ptr, 64, 64)
        self.assertEqual(self.res.num_live_blocks, 1)
        self.res.deallocate(ptr, 64, 32)
        self.assertEqual(self.res.num_live_blocks, 0)
        with self.assertRaises(ValueError):
            self.res.deallocate(ptr, 64, 32)

    def test_invalid_requests(self):
        with self.assertRaises(ConfigurationError):
            self.res.allocate(0, 32)
        with self.assertRaises(ConfigurationError):
            self.res.allocate(16, 24)
        with self.assertRaises(ConfigurationError):
            self.res.allocate(16, 0)

    def test_satisfies_resource_contract(self):
        self.assertIsInstance(self.res, IResourceAllocator)
        self.assertIs(self.res.kind, MemoryKind.HOST)


class TestCustomMemAllocator(unittest.TestCase):
    def test_delegates_to_user_functions(self):
        host = HostMemAllocator()
        freed = []

        def free_fn(ptr, size, alignment):
            freed.append((ptr, size, alignment))
            host.deallocate(ptr, size, alignment)

        res = CustomMemAllocator(MemoryKind.HOST, host.allocate, free_fn)
        ptr, actual = res.allocate(48, 64)
        self.assertEqual(ptr % 64, 0)
        self.assertGreaterEqual(actual, 48)
        res.deallocate(ptr, 48, 64)
        self.assertEqual(freed, [(ptr, 48, 64)])
        self.assertEqual(host.num_live_blocks, 0)

    def test_exhaustion(self):
        def fail_none(size, alignment):
            return None

        def fail_raise(size, alignment):
            raise MemoryError("arena full")

        for fn in (fail_none, fail_raise, lambda s, a: 0):
            res = CustomMemAllocator(MemoryKind.CUDA, fn, lambda p, s, a: None)
            with self.assertRaises(ResourceExhaustedError) as cm:
                res.allocate(128, 256)
            self.assertEqual(cm.exception.nbytes, 128)
            self.assertEqual(cm.exception.alignment, 256)

    def test_misaligned_block_is_returned_and_rejected(self):
        freed = []
        res = CustomMemAllocator(
            MemoryKind.HOST, lambda s, a: 0x1008, lambda p, s, a: freed.append(p)
        )
        with self.assertRaises(ConfigurationError):
            res.allocate(16, 16)
        self.assertEqual(freed, [0x1008])

    def test_reports_actual_size_from_user_function(self):
        freed = []
        res = CustomMemAllocator(
            MemoryKind.CUDA, lambda s, a: (0x1000, 64), lambda p, s, a: freed.append((p, s, a))
        )
        self.assertEqual(res.allocate(40, 16), (0x1000, 64))
        res.deallocate(0x1000, 40, 16)
        self.assertEqual(freed, [(0x1000, 40, 16)])

    def test_bare_address_reports_requested_size(self):
        res = CustomMemAllocator(MemoryKind.CUDA, lambda s, a: 0x2000, lambda p, s, a: None)
        self.assertEqual(res.allocate(40, 16), (0x2000, 40))

    def test_short_block_is_returned_and_rejected(self):
        freed = []
        res = CustomMemAllocator(
            MemoryKind.CUDA, lambda s, a: (0x1000, 8), lambda p, s, a: freed.append((p, s, a))
        )
        with self.assertRaises(ConfigurationError):
            res.allocate(16, 16)
        self.assertEqual(freed, [(0x1000, 16, 16)])

    def test_malformed_result(self):
        res = CustomMemAllocator(MemoryKind.CUDA, lambda s, a: (0x1000,), lambda p, s, a: None)
        with self.assertRaises(ConfigurationError):
            res.allocate(16, 16)
        res = CustomMemAllocator(MemoryKind.CUDA, lambda s, a: (0, 16), lambda p, s, a: None)
        with self.assertRaises(ResourceExhaustedError):
            res.allocate(16, 16)

    def test_invalid_construction(self):
        with self.assertRaises(ConfigurationError):
            CustomMemAllocator("host", lambda s, a: 1, lambda p, s, a: None)
        with self.assertRaises(ConfigurationError):
            CustomMemAllocator(MemoryKind.HOST, None, lambda p, s, a: None)


class TestCudaResourcesWithoutRuntime(unittest.TestCase):
    @classmethod
    def setUpClass(cls) -> None:
        try:
            get_cuda_runtime()
        except DeviceNotSupportedError:
            return
        raise unittest.SkipTest("CUDA runtime is available")

    def test_allocation_reports_missing_runtime(self):
        with self.assertRaises(DeviceNotSupportedError):
            CudaMemAllocator().allocate(256, 256)
        with self.assertRaises(DeviceNotSupportedError):
            HostPinnedMemAllocator().allocate(256, 256)

    def test_invalid_request_is_rejected_first(self):
        with self.assertRaises(ConfigurationError):
            CudaMemAllocator().allocate(0, 256)


class TestCudaMemAllocatorDevice(unittest.TestCase):
    def test_device_selection(self):
        self.assertEqual(str(CudaMemAllocator().device), "cuda:0")
        self.assertEqual(CudaMemAllocator("cuda:1").device.index, 1)
        self.assertIs(CudaMemAllocator().kind, MemoryKind.CUDA)
        self.assertIs(HostPinnedMemAllocator().kind, MemoryKind.HOST_PINNED)

    def test_accepts_duck_typed_device(self):
        class _Dev:
            type = "cuda"
            index = 3

            def is_cpu(self):
                return False

            def is_cuda(self):
                return True

            def __str__(self):
                return "cuda:3"

        self.assertEqual(CudaMemAllocator(_Dev()).device.index, 3)

    def test_rejects_non_cuda_device(self):
        with self.assertRaises(ConfigurationError):
            CudaMemAllocator("cpu")
        with self.assertRaises(ConfigurationError):
            CudaMemAllocator(42)


class TestAllocator(unittest.TestCase):
    def test_defaults(self):
        alloc = Allocator()
        self.assertIsInstance(alloc.host, HostMemAllocator)
        self.assertIsInstance(alloc.host_pinned, HostPinnedMemAllocator)
        self.assertIsInstance(alloc.cuda, CudaMemAllocator)
        self.assertIs(alloc.get(MemoryKind.HOST), alloc.host)

    def test_custom_resource(self):
        host = HostMemAllocator()
        alloc = Allocator(host=host)
        self.assertIs(alloc.get(MemoryKind.HOST), host)

    def test_kind_mismatch_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            Allocator(cuda=HostMemAllocator())

    def test_resource_device_must_hold_its_kind(self):
        class _MisboundCuda:
            kind = MemoryKind.CUDA
            device = Device("cpu")

            def allocate(self, size, alignment):
                raise AssertionError("never called")

            def deallocate(self, ptr, size, alignment):
                raise AssertionError("never called")

        with self.assertRaises(ConfigurationError):
            Allocator(cuda=_MisboundCuda())

    def test_builtin_resources_report_their_device(self):
        alloc = Allocator()
        self.assertEqual(alloc.host.device, Device("cpu"))
        self.assertEqual(alloc.host_pinned.device, Device("cpu"))
        self.assertEqual(alloc.cuda.device, Device("cuda:0"))

    def test_non_resource_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            Allocator(host=object())

    def test_get_requires_memory_kind(self):
        with self.assertRaises(ConfigurationError):
            Allocator().get("host")

    def test_default_allocator_is_shared(self):
        self.assertIs(default_allocator(), default_allocator())


if __name__ == "__main__":
    unittest.main()
