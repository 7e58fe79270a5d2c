"""
cvcore: handle-based tensors, images and image batches over host and CUDA
memory, with explicit memory requirements, pluggable allocators and a fixed
C ABI for buffer descriptors.

The selected API version (``CVCORE_VERSION_API``) is validated when the
package is imported; an unsupported selection raises
`UnsupportedVersionError` here.
"""

from .domain._alignment import MemAlignment, align_up, is_power_of_two
from .domain._allocator import IAllocator, IResourceAllocator, MemoryKind
from .domain._data import (
    ImageBatchVarShapeDataStrided,
    ImageBatchVarShapeDataStridedCuda,
    ImageBatchVarShapeDataStridedHost,
    ImageDataStrided,
    ImageDataStridedCuda,
    ImageDataStridedHost,
    ImagePlaneStrided,
    TensorDataStrided,
    TensorDataStridedCuda,
    TensorDataStridedHost,
)
from .domain._data_access import (
    ImageDataAccess,
    TensorDataAccessStrided,
    TensorDataAccessStridedImage,
    TensorDataAccessStridedImagePlanar,
)
from .domain._data_type import (
    F16,
    F32,
    F64,
    S8,
    S16,
    S32,
    S64,
    TYPE_2F32,
    TYPE_2S16,
    TYPE_2U8,
    TYPE_3F32,
    TYPE_3U8,
    TYPE_3U16,
    TYPE_4F32,
    TYPE_4U8,
    U8,
    U16,
    U32,
    U64,
    DataKind,
    DataType,
)
from .domain._errors import (
    CapacityExceededError,
    ConfigurationError,
    DeviceNotSupportedError,
    FatalCleanupError,
    InvalidHandleError,
    ResourceExhaustedError,
    UnsupportedVersionError,
)
from .domain._image_format import (
    FMT_BGR8,
    FMT_BGR8p,
    FMT_BGRA8,
    FMT_BGRf32,
    FMT_F32,
    FMT_F64,
    FMT_I420,
    FMT_NV12,
    FMT_NV21,
    FMT_RGB8,
    FMT_RGB8p,
    FMT_RGBA8,
    FMT_RGBAf32,
    FMT_RGBf32,
    FMT_RGBf32p,
    FMT_S8,
    FMT_S16,
    FMT_S32,
    FMT_U8,
    FMT_U16,
    ImageFormat,
    PlaneFormat,
    Size2D,
)
from .domain._requirements import (
    ImageBatchVarShapeRequirements,
    ImageRequirements,
    TensorRequirements,
)
from .domain._tensor import EntityMode, IEntity, IImage, IImageBatch, ITensor
from .domain._tensor_layout import TensorLayout
from .domain._tensor_shape import TensorShape
from .domain._version import (
    HIGHEST_API,
    LOWEST_API,
    VERSION,
    VERSION_MAJOR,
    VERSION_MINOR,
    VERSION_PATCH,
    VERSION_STRING,
    VERSION_SUFFIX,
    VERSION_TWEAK,
    api_at_least,
    api_at_most,
    api_in_range,
    api_is,
    check_compatible,
    get_version,
    make_version,
)
from .domain.device._device import Device
from .infrastructure._config import get_config, set_fatal_error_handler
from .infrastructure._handles import lookup
from .infrastructure._requirements_calc import (
    calc_image_batch_requirements,
    calc_image_requirements,
    calc_tensor_requirements,
    calc_tensor_requirements_for_images,
)
from .infrastructure.alloc._allocator import Allocator, default_allocator
from .infrastructure.alloc._cuda_allocator import CudaMemAllocator, HostPinnedMemAllocator
from .infrastructure.alloc._custom_allocator import CustomMemAllocator
from .infrastructure.alloc._host_allocator import HostMemAllocator
from .infrastructure.image._image import Image, ImageWrapData
from .infrastructure.image._image_batch import ImageBatchVarShape
from .infrastructure.interop._dtypes import from_numpy_dtype, to_numpy_dtype
from .infrastructure.interop._numpy_interop import as_image, as_tensor
from .infrastructure.tensor import Tensor, TensorWrapData, TensorWrapHandle, TensorWrapImage

VERSION_API = get_config().version_api

__version__ = VERSION_STRING
