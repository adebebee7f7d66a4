"""Fourier transforms and 'valid'-mode N-dimensional convolution.

Complex data is stored with an extra trailing axis of length 2 holding the
real and imaginary channels, so an ``(n, m)`` complex signal is an
``(n, m, 2)`` array.
"""

import itertools
from typing import Any

from loguru import logger

import numstride.backend.ndarray as nd
from numstride import dtypes
from numstride.ops.ops_mathematic import asarray


def _channel(z: nd.NDArray, index: int) -> nd.NDArray:
    """View of the real (0) or imaginary (1) channel of a complex array."""
    return z.pick(*([None] * (z.ndim - 1)), index)


def _check_complex(x: nd.NDArray) -> None:
    if x.ndim == 0 or x.shape[-1] != 2:
        raise ValueError(
            f"expected a trailing axis of length 2 (real, imag), got shape {x.shape}"
        )


def _transform(z: nd.NDArray, sign: int) -> nd.NDArray:
    """Transform the complex array ``z`` in place through the device FFT."""
    re, im = _channel(z, 0), _channel(z, 1)
    z.device.fft(
        sign,
        re._handle,
        im._handle,
        re.shape,
        re.strides,
        re.offset,
        im.strides,
        im.offset,
    )
    return z


def fft(x: Any) -> nd.NDArray:
    """Forward discrete Fourier transform over every axis but the last.

    Parameters
    ----------
    x : NDArray | array_like
        Complex input whose last axis holds ``(real, imag)``.

    Returns
    -------
    NDArray
        New float64 array of the same shape.

    Raises
    ------
    ValueError
        If the last axis does not have length 2.
    """
    x = asarray(x)
    _check_complex(x)
    return _transform(x.astype("float64"), 1)


def ifft(x: Any) -> nd.NDArray:
    """Inverse of :func:`fft`, normalised by ``1 / N``."""
    x = asarray(x)
    _check_complex(x)
    return _transform(x.astype("float64"), -1)


def _check_kernel(x: nd.NDArray, kernel: nd.NDArray) -> tuple[int, ...]:
    """Shape of the valid-mode output of convolving ``x`` with ``kernel``."""
    if x.ndim != kernel.ndim:
        raise ValueError(
            f"convolution operands must have the same rank, got {x.ndim} and {kernel.ndim}"
        )
    for n, k in zip(x.shape, kernel.shape):
        if k > n:
            raise ValueError(
                f"kernel of shape {kernel.shape} is larger than input of shape {x.shape}"
            )
    return tuple(n - k + 1 for n, k in zip(x.shape, kernel.shape))


def convolve(x: Any, kernel: Any) -> nd.NDArray:
    """Direct 'valid'-mode convolution.

    ``out[i] = sum_j x[i + j] * kernel[K - 1 - j]`` over the kernel footprint,
    i.e. a true convolution with the kernel flipped along every axis. Each
    kernel tap adds one shifted window of ``x``, so the cost is
    ``O(size(out) * size(kernel))``.

    Raises
    ------
    ValueError
        If the ranks differ or the kernel is larger than ``x`` on some axis.
    """
    x, kernel = asarray(x), asarray(kernel)
    out_shape = _check_kernel(x, kernel)
    out = nd.NDArray.make(out_shape, device=x.device, dtype=dtypes.promote(x.dtype, kernel.dtype))
    out.fill(0)
    flipped = kernel.step(*([-1] * kernel.ndim))
    for tap in itertools.product(*(range(k) for k in kernel.shape)):
        window = x.lo(*tap).hi(*out_shape)
        out.add(window * flipped.get(*tap), copy=False)
    return out


def _spectrum(x: nd.NDArray, pad_shape: tuple[int, ...]) -> nd.NDArray:
    """Forward transform of ``x`` zero-padded to ``pad_shape``."""
    z = nd.NDArray.make(pad_shape + (2,), device=x.device, dtype="float64")
    z.fill(0)
    _channel(z, 0).hi(*x.shape).assign(x, copy=False)
    return _transform(z, 1)


def fftconvolve(x: Any, kernel: Any) -> nd.NDArray:
    """'valid'-mode convolution computed through the Fourier domain.

    Both operands are zero-padded to ``n + k - 1`` along every axis and
    transformed; the spectra are multiplied as complex numbers and the
    inverse transform is cropped to the region starting at ``k - 1``. Agrees
    with :func:`convolve` up to floating-point rounding.

    Raises
    ------
    ValueError
        If the ranks differ or the kernel is larger than ``x`` on some axis.
    """
    x, kernel = asarray(x), asarray(kernel)
    out_shape = _check_kernel(x, kernel)
    pad_shape = tuple(n + k - 1 for n, k in zip(x.shape, kernel.shape))
    logger.debug("fftconvolve {} * {} padded to {}", x.shape, kernel.shape, pad_shape)

    fx, fk = _spectrum(x, pad_shape), _spectrum(kernel, pad_shape)
    a, b = _channel(fx, 0), _channel(fx, 1)
    c, d = _channel(fk, 0), _channel(fk, 1)

    product = nd.NDArray.make(pad_shape + (2,), device=x.device, dtype="float64")
    _channel(product, 0).assign(a * c - b * d, copy=False)
    _channel(product, 1).assign(a * d + b * c, copy=False)
    _transform(product, -1)

    start = tuple(k - 1 for k in kernel.shape)
    return _channel(product, 0).lo(*start).hi(*out_shape).clone()
