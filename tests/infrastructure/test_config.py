import os
import unittest
from unittest import mock

from src.cvcore.domain._data_type import U8
from src.cvcore.domain._errors import (
    ConfigurationError,
    FatalCleanupError,
    UnsupportedVersionError,
)
from src.cvcore.domain._version import HIGHEST_API, make_version
from src.cvcore.infrastructure._config import (
    DEFAULT_BASE_ALIGN,
    DEFAULT_ROW_ALIGN,
    fatal_error,
    get_config,
    reload_config,
    set_fatal_error_handler,
)
from src.cvcore.infrastructure._requirements_calc import calc_tensor_requirements

_VARS = (
    "CVCORE_DEFAULT_BASE_ALIGN",
    "CVCORE_DEFAULT_ROW_ALIGN",
    "CVCORE_CUDART_PATH",
    "CVCORE_VERSION_API",
)


class TestConfigFromEnvironment(unittest.TestCase):
    def setUp(self):
        clean = {k: v for k, v in os.environ.items() if k not in _VARS}
        self._env = mock.patch.dict(os.environ, clean, clear=True)
        self._env.start()

    def tearDown(self):
        self._env.stop()
        reload_config()

    def test_defaults(self):
        cfg = reload_config()
        self.assertEqual(cfg.base_alignment, DEFAULT_BASE_ALIGN)
        self.assertEqual(cfg.row_alignment, DEFAULT_ROW_ALIGN)
        self.assertIsNone(cfg.cudart_path)
        self.assertEqual(cfg.version_api, HIGHEST_API)

    def test_config_is_cached_until_reload(self):
        before = reload_config()
        self.assertIs(get_config(), before)
        os.environ["CVCORE_DEFAULT_ROW_ALIGN"] = "64"
        self.assertEqual(get_config().row_alignment, DEFAULT_ROW_ALIGN)
        self.assertEqual(reload_config().row_alignment, 64)
        self.assertEqual(get_config().row_alignment, 64)

    def test_alignment_overrides_feed_requirements(self):
        os.environ["CVCORE_DEFAULT_BASE_ALIGN"] = "0x400"
        os.environ["CVCORE_DEFAULT_ROW_ALIGN"] = "128"
        reload_config()
        reqs = calc_tensor_requirements((2, 3, 5), U8)
        self.assertEqual(reqs.alignment, 1024)
        self.assertEqual(reqs.strides, (384, 128, 1))

    def test_invalid_alignment_values(self):
        for raw in ("48", "abc", "0"):
            with self.subTest(raw=raw):
                os.environ["CVCORE_DEFAULT_ROW_ALIGN"] = raw
                with self.assertRaises(ConfigurationError):
                    reload_config()

    def test_version_selection(self):
        os.environ["CVCORE_VERSION_API"] = "0.2"
        self.assertEqual(reload_config().version_api, make_version(0, 2))
        os.environ["CVCORE_VERSION_API"] = "0.9"
        with self.assertRaises(UnsupportedVersionError):
            reload_config()

    def test_cudart_path(self):
        os.environ["CVCORE_CUDART_PATH"] = "/opt/cuda/lib64/libcudart.so"
        self.assertEqual(reload_config().cudart_path, "/opt/cuda/lib64/libcudart.so")


class TestFatalErrorHandler(unittest.TestCase):
    def test_swap_returns_previous_handler(self):
        seen = []
        previous = set_fatal_error_handler(seen.append)
        try:
            err = FatalCleanupError(0x1000, RuntimeError("boom"))
            with self.assertLogs(level="CRITICAL"):
                fatal_error(err)
            self.assertEqual(seen, [err])
        finally:
            restored = set_fatal_error_handler(previous)
        self.assertEqual(restored, seen.append)


if __name__ == "__main__":
    unittest.main()
