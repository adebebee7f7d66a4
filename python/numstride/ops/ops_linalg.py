"""Linear algebra and axis manipulation: products, joins and rotations."""

from collections.abc import Sequence
from typing import Any

import numstride.backend.ndarray as nd
from numstride import dtypes, shapes
from numstride.errors import ShapeError
from numstride.ops.ops_mathematic import asarray


def dot(a: Any, b: Any) -> Any:
    """Dot product of vectors and/or matrices (see ``NDArray.dot``)."""
    return asarray(a).dot(b)


def transpose(x: Any, axes: Sequence[int] | None = None) -> nd.NDArray:
    """Permute axes (reverse them by default); a view."""
    x = asarray(x)
    return x.transpose() if axes is None else x.transpose(tuple(axes))


def reshape(x: Any, shape: int | Sequence[int]) -> nd.NDArray:
    return asarray(x).reshape(shape)


def flatten(x: Any) -> nd.NDArray:
    return asarray(x).flatten()


def diag(x: Any) -> nd.NDArray:
    return asarray(x).diag()


def broadcast(shape1: Sequence[int], shape2: Sequence[int]) -> tuple[int, ...] | None:
    """Shape two operands broadcast to, or None if they are incompatible."""
    try:
        return shapes.broadcast_shape(shape1, shape2)
    except ShapeError:
        return None


def identity(n: int, dtype: Any = None) -> nd.NDArray:
    """``n x n`` matrix of zeros with ones on the diagonal."""
    out = nd.NDArray.make((n, n), dtype=dtypes.normalize(dtype))
    out.fill(0)
    out.diag().fill(1)
    return out


def concatenate(*arrays: Any) -> nd.NDArray:
    """Join arrays along their last axis.

    Accepts the arrays as varargs or as a single sequence. Scalars become
    one-element 1-D arrays. All inputs must share the same rank (1, 2 or 3)
    and agree on every axis but the last.

    Raises
    ------
    ValueError
        On rank mismatch, unsupported rank or mismatched leading axes.
    """
    if len(arrays) == 1 and isinstance(arrays[0], (list, tuple)):
        arrays = tuple(arrays[0])
    if not arrays:
        raise ValueError("need at least one array to concatenate")
    parts = [asarray(a) for a in arrays]

    first = parts[0]
    for part in parts[1:]:
        if part.ndim != first.ndim:
            raise ValueError("all the input arrays must have same number of dimensions")
        if part.shape[:-1] != first.shape[:-1]:
            raise ValueError(f"cannot concatenate {first.shape} with {part.shape}")
    if not 1 <= first.ndim <= 3:
        raise ValueError(f"concatenate supports 1 to 3 dimensions, got {first.ndim}")

    dtype = first.dtype
    for part in parts[1:]:
        dtype = dtypes.promote(dtype, part.dtype)
    total = 0
    for part in parts:
        total += part.shape[-1]
    out = nd.NDArray.make(first.shape[:-1] + (total,), dtype=dtype)
    start = 0
    for part in parts:
        width = part.shape[-1]
        out[..., start : start + width] = part
        start += width
    return out


def stack(arrays: Sequence[Any], axis: int = 0) -> nd.NDArray:
    """Join same-shaped arrays along a new axis.

    Stacking scalars yields a 1-D array. The new axis is inserted first and
    then moved to ``axis`` (negative values count from the end of the result).

    Raises
    ------
    ValueError
        If ``arrays`` is empty or the shapes differ.
    """
    if not arrays:
        raise ValueError("need at least one array to stack")
    if all(nd.is_scalar(a) for a in arrays):
        return concatenate(list(arrays))
    parts = [asarray(a) for a in arrays]
    expected = parts[0].shape
    if any(p.shape != expected for p in parts[1:]):
        raise ValueError("all input arrays must have the same shape")

    dtype = parts[0].dtype
    for part in parts[1:]:
        dtype = dtypes.promote(dtype, part.dtype)
    stacked = nd.NDArray.make((len(parts),) + expected, dtype=dtype)
    for i, part in enumerate(parts):
        stacked.pick(i).assign(part, copy=False)

    axis = shapes.normalize_axis(axis, stacked.ndim)
    if axis == 0:
        return stacked
    order = tuple(i + 1 if i < axis else 0 if i == axis else i for i in range(stacked.ndim))
    return stacked.transpose(order)


def flip(m: Any, axis: int) -> nd.NDArray:
    """Reverse the entries along ``axis``; an O(1) view.

    Raises
    ------
    ValueError
        If ``axis`` does not name an axis of ``m``.
    """
    m = asarray(m)
    axis = shapes.normalize_axis(axis, m.ndim)
    steps = [None] * m.ndim
    steps[axis] = -1
    return m.step(*steps)


def rot90(m: Any, k: int = 1, axes: Sequence[int] = (0, 1)) -> nd.NDArray:
    """Rotate by 90 degrees ``k`` times in the plane given by ``axes``.

    Rotation goes from the first axis towards the second. The result is a
    view of ``m``.

    Raises
    ------
    ValueError
        If ``axes`` does not hold two different axes of ``m``.
    """
    m = asarray(m)
    axes = tuple(axes)
    if len(axes) != 2:
        raise ValueError("len(axes) must be 2")
    if m.ndim < 2:
        raise ValueError(f"rot90 requires at least 2 dimensions, got {m.ndim}")
    first, second = (shapes.normalize_axis(a, m.ndim) for a in axes)
    if first == second:
        raise ValueError("axes must be different")

    k %= 4
    if k == 0:
        return m
    if k == 2:
        return flip(flip(m, first), second)
    order = list(range(m.ndim))
    order[first], order[second] = order[second], order[first]
    if k == 1:
        return flip(m, second).transpose(order)
    return flip(m.transpose(order), second)
