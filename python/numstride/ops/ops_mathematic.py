"""Element-wise operators and reductions as free functions.

Every function accepts NDArrays or array-likes (nested sequences, numpy
arrays, scalars) and returns a new NDArray unless noted otherwise. The
typed fast path is the backend's ``ewise_*``/``scalar_*`` routines; ``cwise``
lifts an arbitrary per-element Python function onto broadcast arrays.
"""

import functools
from collections.abc import Callable
from typing import Any

import numpy as np

import numstride.backend.ndarray as nd
from numstride import dtypes, shapes


def asarray(x: Any, dtype: Any = None) -> nd.NDArray:
    """Return ``x`` itself if it is an NDArray (of ``dtype``), otherwise a new one."""
    if isinstance(x, nd.NDArray):
        if dtype is None or dtypes.normalize(dtype) == x.dtype:
            return x
        return x.astype(dtype)
    return nd.NDArray(x, dtype=dtype)


def cwise(
    func: Callable[..., Any], nin: int = 1, dtype: str | None = None
) -> Callable[..., nd.NDArray]:
    """Compile a scalar function into an element-wise operator.

    Parameters
    ----------
    func : callable
        Function of ``nin`` Python numbers returning a number.
    nin : int, optional
        Number of array operands.
    dtype : str | None, optional
        dtype of the result. Defaults to the promoted dtype of the operands.

    Returns
    -------
    callable
        ``op(*arrays)`` broadcasting its ``nin`` operands against each other
        and applying ``func`` to every aligned tuple of elements.
    """
    ufunc = np.frompyfunc(func, nin, 1)

    def op(*args: Any) -> nd.NDArray:
        if len(args) != nin:
            raise TypeError(f"{func.__name__} expects {nin} operands, got {len(args)}")
        arrays = [asarray(a) for a in args]
        shape = functools.reduce(shapes.broadcast_shape, (a.shape for a in arrays))
        out_dtype = dtype or functools.reduce(dtypes.promote, (a.dtype for a in arrays))
        result = ufunc(*(a.broadcast_to(shape).numpy() for a in arrays))
        values = np.asarray(result, dtype=object).reshape(shape)
        return nd.NDArray(values, dtype=out_dtype)

    op.__name__ = getattr(func, "__name__", "cwise")
    op.__doc__ = func.__doc__
    return op


### Binary arithmetic


def add(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).add(b)


def subtract(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).subtract(b)


def multiply(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).multiply(b)


def divide(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).divide(b)


def mod(a: Any, b: Any) -> nd.NDArray:
    """Floor modulo: the result has the sign of ``b``."""
    return asarray(a).mod(b)


remainder = mod


def power(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).pow(b)


def maximum(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).maximum(b)


def minimum(a: Any, b: Any) -> nd.NDArray:
    return asarray(a).minimum(b)


### Unary functions


def negative(x: Any) -> nd.NDArray:
    return asarray(x).negative()


def abs(x: Any) -> nd.NDArray:
    return asarray(x).abs()


def exp(x: Any) -> nd.NDArray:
    return asarray(x).exp()


def log(x: Any) -> nd.NDArray:
    return asarray(x).log()


def sqrt(x: Any) -> nd.NDArray:
    return asarray(x).sqrt()


def sin(x: Any) -> nd.NDArray:
    return asarray(x).sin()


def cos(x: Any) -> nd.NDArray:
    return asarray(x).cos()


def tan(x: Any) -> nd.NDArray:
    return asarray(x).tan()


def arcsin(x: Any) -> nd.NDArray:
    return asarray(x).arcsin()


def arccos(x: Any) -> nd.NDArray:
    return asarray(x).arccos()


def arctan(x: Any) -> nd.NDArray:
    return asarray(x).arctan()


def tanh(x: Any) -> nd.NDArray:
    return asarray(x).tanh()


def round(x: Any) -> nd.NDArray:
    """Round to the nearest integer, halves rounding up."""
    return asarray(x).round()


### Activations


def sigmoid(x: Any, t: float = 1) -> nd.NDArray:
    """Logistic function ``1 / (1 + exp(-t * x))``.

    Elements where ``|t * x| > 30`` saturate to exactly 0 or 1.
    """
    x = asarray(x)
    return x.ewise("sigmoid", t, dtype=dtypes.float_result(x.dtype))


def leaky_relu(x: Any, alpha: float = 1e-3) -> nd.NDArray:
    """``max(alpha * x, x)`` element-wise."""
    x = asarray(x)
    return x.ewise("leaky_relu", alpha, dtype=dtypes.scalar_promote(x.dtype, alpha))


def clip(x: Any, min: float = 0, max: float = 1) -> nd.NDArray:
    """Clamp every element into ``[min, max]``."""
    x = asarray(x)
    dtype = dtypes.scalar_promote(dtypes.scalar_promote(x.dtype, min), max)
    return x.ewise("clip", min, max, dtype=dtype)


def softmax(x: Any) -> nd.NDArray:
    """``exp(x) / sum(exp(x))`` over the whole array."""
    e = asarray(x).exp()
    return e.divide(e.sum())


### Reductions


def sum(x: Any, axis: int | None = None, keepdims: bool = False) -> Any:
    return asarray(x).sum(axis=axis, keepdims=keepdims)


def mean(x: Any, axis: int | None = None, keepdims: bool = False) -> Any:
    return asarray(x).mean(axis=axis, keepdims=keepdims)


def std(x: Any, ddof: int = 0) -> float:
    return asarray(x).std(ddof=ddof)


def max(x: Any, axis: int | None = None, keepdims: bool = False) -> Any:
    return asarray(x).max(axis=axis, keepdims=keepdims)


def min(x: Any, axis: int | None = None, keepdims: bool = False) -> Any:
    return asarray(x).min(axis=axis, keepdims=keepdims)


def equal(a: Any, b: Any) -> bool:
    """True if ``a`` and ``b`` have the same shape and elements."""
    return asarray(a).equal(b)
