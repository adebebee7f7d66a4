import math
from typing import Any

import numpy as np

__device_name__ = "numpy"


class Array:
    def __init__(self, size: int, dtype: np.dtype | str = np.float64):
        # use numpy array as buffer to store the data
        self.buffer = np.empty(size, dtype=dtype)

    @property
    def size(self) -> int:
        return self.buffer.size

    @property
    def dtype(self) -> np.dtype:
        return self.buffer.dtype

    def ptr(self) -> int:
        return self.buffer.ctypes.data


def _indices(
    shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> np.ndarray:
    """Buffer positions ``offset + sum(idx[i] * strides[i])`` for every index."""
    index = np.full(shape, offset, dtype=np.intp)
    for axis, (dim, stride) in enumerate(zip(shape, strides)):
        coords = np.arange(dim, dtype=np.intp) * stride
        index += coords.reshape((dim,) + (1,) * (len(shape) - axis - 1))
    return index


def to_numpy(
    a: Array, shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> np.ndarray:
    """Return the elements of a strided view of ``a`` as a NumPy array.

    Parameters
    ----------
    a : Array
        Source storage.
    shape : tuple of int
        Desired shape of the returned array.
    strides : tuple of int
        Strides expressed in number of elements (not bytes). Negative and
        zero strides are allowed.
    offset : int
        Element offset of index ``(0, ..., 0)`` into ``a.buffer``.

    Returns
    -------
    numpy.ndarray
        For fixed-width buffers, a view (no copy) sharing memory with
        ``a.buffer``. Object buffers cannot be viewed through raw strides, so
        they are gathered into a copy.
    """
    if math.prod(shape) == 0:
        return np.empty(shape, dtype=a.buffer.dtype)
    if a.buffer.dtype.hasobject:
        gathered = a.buffer[_indices(shape, strides, offset)]
        return np.asarray(gathered, dtype=a.buffer.dtype).reshape(shape)
    itemsize = a.buffer.itemsize
    return np.lib.stride_tricks.as_strided(
        a.buffer[offset:],
        shape,
        tuple(s * itemsize for s in strides),
    )


_MASK64 = (1 << 64) - 1


def _cast(values: Any, dtype: np.dtype) -> Any:
    """Prepare ``values`` for storage in an integer buffer of ``dtype``.

    Integer buffers keep the low bits of every integer, like a C cast:
    ``-1`` stored as ``uint8`` is ``255``. Python ints would otherwise be
    range-checked by numpy.
    """
    if dtype.kind not in "iu":
        return values
    if isinstance(values, (int, np.integer)):
        return np.array(int(values) & _MASK64, dtype=np.uint64).astype(dtype)
    if isinstance(values, np.ndarray) and values.dtype.hasobject:
        return np.array(values.tolist())
    return values


def _assign(
    out: Array,
    shape: tuple[int, ...],
    strides: tuple[int, ...],
    offset: int,
    values: np.ndarray | float,
) -> None:
    """Write ``values`` (array of ``shape`` or scalar) through a strided view."""
    if math.prod(shape) == 0:
        return
    if out.buffer.dtype.hasobject:
        out.buffer[_indices(shape, strides, offset)] = values
    else:
        to_numpy(out, shape, strides, offset)[...] = _cast(values, out.buffer.dtype)


def from_numpy(numpy_array: np.ndarray, out: Array) -> None:
    """Copy values from an arbitrary NumPy array into ``out.buffer``.

    Values are copied in row-major (C-order); the cast to the buffer's dtype
    is unchecked, so integers wrap and floats truncate toward zero.
    """
    out.buffer[:] = _cast(np.asarray(numpy_array).reshape(-1), out.buffer.dtype)


def fill(out: Array, val: float) -> None:
    """Fill the entire ``out.buffer`` with a scalar value."""
    out.buffer.fill(_cast(val, out.buffer.dtype))


def random(out: Array) -> None:
    """Fill the entire ``out.buffer`` with uniform samples from ``[0, 1)``."""
    out.buffer[:] = np.random.random_sample(out.size)


def compact(
    a: Array, out: Array, shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> None:
    """Materialize a non-compact view of ``a`` into a compact buffer ``out``.

    Parameters
    ----------
    a : Array
        Source storage.
    out : Array
        Destination storage that will receive the compact data. Its dtype
        may differ from ``a``'s, in which case values are cast.
    shape : tuple of int
        Shape of the logical view into ``a``.
    strides : tuple of int
        Strides of the logical view into ``a`` in elements.
    offset : int
        Starting element offset into ``a.buffer`` for the view.
    """
    values = to_numpy(a, shape, strides, offset).reshape(-1)
    out.buffer[:] = _cast(values, out.buffer.dtype)


def ewise_setitem(
    a: Array, out: Array, shape: tuple[int, ...], strides: tuple[int, ...], offset: int
) -> None:
    """Write from compact ``a`` into a non-compact view of ``out``.

    Parameters
    ----------
    a : Array
        Source storage. Expected to be compact and of size ``prod(shape)``.
    out : Array
        Destination storage (may be non-compact via ``shape``/``strides``/``offset``).
    shape : tuple of int
        Logical shape of the output view.
    strides : tuple of int
        Output view strides in elements.
    offset : int
        Starting element offset into ``out.buffer`` for the view.
    """
    _assign(out, shape, strides, offset, a.buffer.reshape(shape))


def scalar_setitem(
    size: int,
    val: float,
    out: Array,
    shape: tuple[int, ...],
    strides: tuple[int, ...],
    offset: int,
) -> None:
    """Set every element of a non-compact output view to a scalar value.

    ``size`` is the number of addressed elements, kept for parity with
    ``ewise_setitem``.
    """
    _assign(out, shape, strides, offset, val)


### Element-wise binary operations on compact buffers of equal size.
# Operands arrive already cast to the computation dtype; ``out`` may hold a
# different dtype (comparison masks, integer division results).


def _ewise(ufunc: np.ufunc):
    def ewise(a: Array, b: Array, out: Array) -> None:
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            out.buffer[:] = ufunc(a.buffer, b.buffer)

    ewise.__name__ = f"ewise_{ufunc.__name__}"
    ewise.__doc__ = f"Elementwise ``out = {ufunc.__name__}(a, b)`` for compact buffers."
    return ewise


def _scalar(ufunc: np.ufunc):
    def scalar(a: Array, val: float, out: Array) -> None:
        val = _cast(val, a.buffer.dtype)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            out.buffer[:] = ufunc(a.buffer, val)

    scalar.__name__ = f"scalar_{ufunc.__name__}"
    scalar.__doc__ = f"Elementwise ``out = {ufunc.__name__}(a, val)`` for a scalar."
    return scalar


def _rscalar(ufunc: np.ufunc):
    def rscalar(a: Array, val: float, out: Array) -> None:
        val = _cast(val, a.buffer.dtype)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            out.buffer[:] = ufunc(val, a.buffer)

    rscalar.__name__ = f"rscalar_{ufunc.__name__}"
    rscalar.__doc__ = f"Elementwise ``out = {ufunc.__name__}(val, a)`` for a scalar."
    return rscalar


ewise_add = _ewise(np.add)
scalar_add = _scalar(np.add)
ewise_sub = _ewise(np.subtract)
scalar_sub = _scalar(np.subtract)
rscalar_sub = _rscalar(np.subtract)
ewise_mul = _ewise(np.multiply)
scalar_mul = _scalar(np.multiply)
ewise_div = _ewise(np.true_divide)
scalar_div = _scalar(np.true_divide)
rscalar_div = _rscalar(np.true_divide)
ewise_mod = _ewise(np.mod)
scalar_mod = _scalar(np.mod)
rscalar_mod = _rscalar(np.mod)
ewise_power = _ewise(np.power)
scalar_power = _scalar(np.power)
rscalar_power = _rscalar(np.power)
ewise_maximum = _ewise(np.maximum)
scalar_maximum = _scalar(np.maximum)
ewise_minimum = _ewise(np.minimum)
scalar_minimum = _scalar(np.minimum)
ewise_eq = _ewise(np.equal)
scalar_eq = _scalar(np.equal)
ewise_ne = _ewise(np.not_equal)
scalar_ne = _scalar(np.not_equal)
ewise_lt = _ewise(np.less)
scalar_lt = _scalar(np.less)
ewise_le = _ewise(np.less_equal)
scalar_le = _scalar(np.less_equal)
ewise_gt = _ewise(np.greater)
scalar_gt = _scalar(np.greater)
ewise_ge = _ewise(np.greater_equal)
scalar_ge = _scalar(np.greater_equal)


### Element-wise unary operations on compact buffers.


def _floating(buffer: np.ndarray) -> np.ndarray:
    """View ``buffer`` as floats; object and integer buffers are cast to float64."""
    if buffer.dtype.kind == "f":
        return buffer
    return buffer.astype(np.float64)


def _unary(ufunc: np.ufunc, floating: bool = True):
    def unary(a: Array, out: Array) -> None:
        src = _floating(a.buffer) if floating else a.buffer
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            out.buffer[:] = ufunc(src)

    unary.__name__ = f"ewise_{ufunc.__name__}"
    unary.__doc__ = f"Elementwise ``out = {ufunc.__name__}(a)`` for compact buffers."
    return unary


ewise_exp = _unary(np.exp)
ewise_log = _unary(np.log)
ewise_sqrt = _unary(np.sqrt)
ewise_sin = _unary(np.sin)
ewise_cos = _unary(np.cos)
ewise_tan = _unary(np.tan)
ewise_arcsin = _unary(np.arcsin)
ewise_arccos = _unary(np.arccos)
ewise_arctan = _unary(np.arctan)
ewise_tanh = _unary(np.tanh)
ewise_negative = _unary(np.negative, floating=False)
ewise_abs = _unary(np.absolute, floating=False)


def ewise_round(a: Array, out: Array) -> None:
    """Round half up, ``out = floor(a + 0.5)``; integers are copied as is."""
    if a.buffer.dtype.kind in "iu":
        out.buffer[:] = a.buffer
    elif a.buffer.dtype.hasobject:
        out.buffer[:] = [
            v if isinstance(v, (int, np.integer)) else float(np.floor(v + 0.5))
            for v in a.buffer
        ]
    else:
        out.buffer[:] = np.floor(_floating(a.buffer) + 0.5)


def ewise_sigmoid(a: Array, t: float, out: Array) -> None:
    """Logistic function ``1 / (1 + exp(-t * a))``.

    Elements with ``|t * a| > 30`` saturate to exactly 0 or 1 instead of
    evaluating the exponential.
    """
    z = _floating(a.buffer) * t
    with np.errstate(over="ignore"):
        value = 1.0 / (1.0 + np.exp(-z))
    out.buffer[:] = np.where(z < -30, 0.0, np.where(z > 30, 1.0, value))


def ewise_leaky_relu(a: Array, alpha: float, out: Array) -> None:
    """Leaky rectifier ``out = maximum(alpha * a, a)``."""
    out.buffer[:] = np.maximum(a.buffer * alpha, a.buffer)


def ewise_clip(a: Array, low: float, high: float, out: Array) -> None:
    """Clamp every element into ``[low, high]`` as ``min(max(low, a), high)``."""
    out.buffer[:] = np.minimum(np.maximum(a.buffer, low), high)


### Matrix multiplication and reductions


def matmul(a: Array, b: Array, out: Array, m: int, n: int, p: int) -> None:
    """Matrix multiplication ``out = (A @ B).ravel()`` with compact buffers.

    Parameters
    ----------
    a : Array
        Left matrix storage containing ``A`` flattened with shape ``(m, n)``.
    b : Array
        Right matrix storage containing ``B`` flattened with shape ``(n, p)``.
    out : Array
        Output storage for ``C = A @ B`` flattened with shape ``(m * p,)``.
    m : int
        Number of rows of ``A`` and ``C``.
    n : int
        Shared inner dimension of ``A`` and ``B``.
    p : int
        Number of columns of ``B`` and ``C``.
    """
    out.buffer[:] = np.dot(a.buffer.reshape(m, n), b.buffer.reshape(n, p)).reshape(-1)


def reduce_max(a: Array, out: Array, reduce_size: int) -> None:
    """Reduce the last logical dimension by maximum.

    Parameters
    ----------
    a : Array
        Input (compact), conceptually reshaped to ``(-1, reduce_size)``.
    out : Array
        Output (compact) receiving one max per group; size ``a.size // reduce_size``.
    reduce_size : int
        Size of the reduced dimension. Must be positive.
    """
    out.buffer[:] = np.max(a.buffer.reshape(-1, reduce_size), axis=1)


def reduce_min(a: Array, out: Array, reduce_size: int) -> None:
    """Reduce the last logical dimension by minimum (see :func:`reduce_max`)."""
    out.buffer[:] = np.min(a.buffer.reshape(-1, reduce_size), axis=1)


def reduce_sum(a: Array, out: Array, reduce_size: int) -> None:
    """Reduce the last logical dimension by sum.

    Parameters
    ----------
    a : Array
        Input (compact), conceptually reshaped to ``(-1, reduce_size)``.
    out : Array
        Output (compact) receiving one sum per group; size ``out.size``.
    reduce_size : int
        Size of the reduced dimension.
    """
    out.buffer[:] = np.sum(a.buffer.reshape(out.size, reduce_size), axis=1)


### Fourier transform


def fft(
    sign: int,
    re: Array,
    im: Array,
    shape: tuple[int, ...],
    re_strides: tuple[int, ...],
    re_offset: int,
    im_strides: tuple[int, ...],
    im_offset: int,
) -> None:
    """In-place multi-dimensional discrete Fourier transform of strided views.

    Parameters
    ----------
    sign : int
        ``1`` for the forward transform, ``-1`` for the inverse transform
        (normalised by ``1 / N``).
    re, im : Array
        Storage of the real and imaginary parts (may be the same buffer).
    shape : tuple of int
        Shared logical shape of both views.
    re_strides, im_strides : tuple of int
        Strides of the two views in elements.
    re_offset, im_offset : int
        Element offsets of the two views.
    """
    # a 0-d transform is the identity
    if not shape or math.prod(shape) == 0:
        return
    z = to_numpy(re, shape, re_strides, re_offset).astype(np.float64) + 1j * (
        to_numpy(im, shape, im_strides, im_offset).astype(np.float64)
    )
    z = np.fft.fftn(z) if sign > 0 else np.fft.ifftn(z)
    _assign(re, shape, re_strides, re_offset, z.real)
    _assign(im, shape, im_strides, im_offset, z.imag)
