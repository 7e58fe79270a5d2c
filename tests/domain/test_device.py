import unittest

from src.cvcore.domain._allocator import MemoryKind
from src.cvcore.domain.device._device import Device, DeviceType
from src.cvcore.domain.device._device_protocol import DeviceLike


class TestDevice(unittest.TestCase):
    def test_parsing(self):
        self.assertTrue(Device("cpu").is_cpu())
        self.assertIsNone(Device("cpu").index)
        self.assertEqual(Device("cuda").index, 0)
        self.assertEqual(Device("cuda:2").index, 2)
        self.assertEqual(Device("cuda:1").type, DeviceType.CUDA)
        with self.assertRaises(ValueError):
            Device("gpu")

    def test_equality_and_str(self):
        self.assertEqual(Device("cuda"), Device("cuda:0"))
        self.assertEqual(str(Device("cuda:3")), "cuda:3")
        self.assertEqual(str(Device("cpu")), "cpu")
        self.assertEqual(len({Device("cpu"), Device("cpu")}), 1)

    def test_for_memory(self):
        self.assertEqual(Device.for_memory(MemoryKind.HOST), Device("cpu"))
        self.assertEqual(Device.for_memory(MemoryKind.HOST_PINNED), Device("cpu"))
        self.assertEqual(Device.for_memory(MemoryKind.CUDA, 1), Device("cuda:1"))

    def test_integer_ordinal(self):
        self.assertEqual(Device(2), Device("cuda:2"))
        self.assertEqual(Device(" CUDA:1 "), Device(1))
        with self.assertRaises(ValueError):
            Device(-1)

    def test_memory_kinds(self):
        cpu, gpu = Device("cpu"), Device("cuda")
        self.assertTrue(cpu.can_hold(MemoryKind.HOST))
        self.assertTrue(cpu.can_hold(MemoryKind.HOST_PINNED))
        self.assertFalse(cpu.can_hold(MemoryKind.CUDA))
        self.assertEqual(gpu.memory_kinds, (MemoryKind.CUDA,))
        for kind in MemoryKind:
            self.assertTrue(Device.for_memory(kind).can_hold(kind))

    def test_memory_kind_host_accessibility(self):
        self.assertTrue(MemoryKind.HOST.is_host_accessible)
        self.assertTrue(MemoryKind.HOST_PINNED.is_host_accessible)
        self.assertFalse(MemoryKind.CUDA.is_host_accessible)

    def test_satisfies_device_protocol(self):
        self.assertIsInstance(Device("cuda:0"), DeviceLike)
        self.assertNotIsInstance("cuda:0", DeviceLike)


if __name__ == "__main__":
    unittest.main()
