from ._tensor import Tensor, TensorWrapData, TensorWrapHandle, TensorWrapImage

__all__ = [
    Tensor.__name__,
    TensorWrapData.__name__,
    TensorWrapHandle.__name__,
    TensorWrapImage.__name__,
]
