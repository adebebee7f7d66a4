"""Pure shape arithmetic shared by every array operation.

Nothing in here touches a buffer: the functions take and return tuples of
ints (or ``None`` when a question has no answer) so they can be reused by
views, element-wise operations, reductions and the signal routines alike.
"""

import math
from collections.abc import Sequence
from typing import Any

import numpy as np

from .errors import ShapeError


def shape_size(shape: Sequence[int]) -> int:
    """Number of elements addressed by ``shape``; ``()`` addresses one."""
    return math.prod(shape)


def broadcast_shape(
    shape1: Sequence[int], shape2: Sequence[int]
) -> tuple[int, ...]:
    """Infer the shape two operands broadcast to.

    Shapes are aligned on their trailing dimension. For every aligned pair the
    result takes ``d2`` when ``d1`` is missing or 1, ``d1`` when ``d2`` is
    missing or 1, and ``d1`` when both are equal.

    Parameters
    ----------
    shape1, shape2 : sequence of int
        Operand shapes.

    Returns
    -------
    tuple of int
        Broadcast shape of rank ``max(len(shape1), len(shape2))``.

    Raises
    ------
    ShapeError
        If some aligned pair differs and neither side is 1.
    """
    reversed1 = tuple(reversed(shape1))
    reversed2 = tuple(reversed(shape2))
    out = []
    for i in range(max(len(reversed1), len(reversed2))):
        d1 = reversed1[i] if i < len(reversed1) else None
        d2 = reversed2[i] if i < len(reversed2) else None
        if d1 is None or d1 == 1:
            out.append(d2 if d2 is not None else d1)
        elif d2 is None or d2 == 1:
            out.append(d1)
        elif d1 == d2:
            out.append(d1)
        else:
            raise ShapeError(tuple(shape1), tuple(shape2))
    return tuple(reversed(out))


def compact_strides(shape: Sequence[int], order: str = "C") -> tuple[int, ...]:
    """Strides (in elements) of a contiguous layout for ``shape``.

    Parameters
    ----------
    shape : sequence of int
        Target shape.
    order : {"C", "F"}
        Row-major (last axis fastest) or column-major (first axis fastest).
    """
    if order not in ("C", "F"):
        raise ValueError(f"order must be 'C' or 'F', got {order!r}")
    dims = range(len(shape) - 1, -1, -1) if order == "C" else range(len(shape))
    stride = 1
    strides = [0] * len(shape)
    for i in dims:
        strides[i] = stride
        stride *= shape[i]
    return tuple(strides)


def normalize_axis(axis: int, ndim: int) -> int:
    """Wrap a negative axis into ``[0, ndim)``.

    Raises
    ------
    ValueError
        If the axis is still out of range after wrapping.
    """
    normalized = axis
    if ndim > 0:
        while normalized < 0:
            normalized += ndim
    if not 0 <= normalized < ndim:
        raise ValueError(
            f"axis {axis} is out of bounds for array of dimension {ndim}"
        )
    return normalized


def _is_sequence(obj: Any) -> bool:
    if isinstance(obj, np.ndarray):
        return obj.ndim > 0
    return isinstance(obj, Sequence) and not isinstance(obj, (str, bytes))


def infer_shape(nested: Any) -> tuple[int, ...]:
    """Infer the shape of a nested sequence of numbers.

    The shape is read from the nesting depth and the lengths of first
    elements, then every row is checked against it.

    Raises
    ------
    ValueError
        If rows at the same depth have different lengths or depths.
    """
    shape = []
    probe = nested
    while _is_sequence(probe):
        shape.append(len(probe))
        if len(probe) == 0:
            break
        probe = probe[0]
    _check_regular(nested, tuple(shape), 0)
    return tuple(shape)


def _check_regular(nested: Any, shape: tuple[int, ...], depth: int) -> None:
    if depth == len(shape):
        if _is_sequence(nested):
            raise ValueError("irregular nesting: inconsistent row depth")
        return
    if not _is_sequence(nested) or len(nested) != shape[depth]:
        raise ValueError(
            f"irregular nesting: expected {shape[depth]} elements at depth {depth}"
        )
    for item in nested:
        _check_regular(item, shape, depth + 1)


def resolve_shape(shape: Sequence[int], size: int) -> tuple[int, ...]:
    """Replace a single ``-1`` in ``shape`` by the dimension implied by ``size``.

    Raises
    ------
    ValueError
        If more than one dimension is unknown, or the known dimensions cannot
        account for ``size``.
    """
    unknown = [i for i, d in enumerate(shape) if d < 0]
    if len(unknown) > 1:
        raise ValueError("can only specify one unknown dimension")
    if unknown:
        known = math.prod(d for d in shape if d >= 0)
        if known == 0 or size % known != 0:
            raise ValueError(
                f"cannot reshape array of size {size} into shape {tuple(shape)}"
            )
        shape = tuple(size // known if d < 0 else d for d in shape)
    if math.prod(shape) != size:
        raise ValueError(
            f"cannot reshape array of size {size} into shape {tuple(shape)}"
        )
    return tuple(shape)


def nocopy_strides(
    shape: Sequence[int], strides: Sequence[int], new_shape: Sequence[int]
) -> tuple[int, ...] | None:
    """Strides reading a strided view as ``new_shape`` without moving data.

    Groups of old axes are matched to groups of new axes with the same
    element count; each old group must be row-major contiguous with respect
    to its own strides for the reshape to stay a view.

    Returns
    -------
    tuple of int or None
        New strides, or ``None`` when the reshape needs a copy.
    """
    # size-1 axes carry no layout information
    old = [(d, s) for d, s in zip(shape, strides) if d != 1]
    olddims = [d for d, _ in old]
    oldstrides = [s for _, s in old]
    newdims = list(new_shape)
    if math.prod(olddims) != math.prod(newdims):
        return None
    if math.prod(newdims) == 0:
        return compact_strides(newdims)

    newstrides = [0] * len(newdims)
    oi, oj, ni, nj = 0, 1, 0, 1
    while ni < len(newdims) and oi < len(olddims):
        np_ = newdims[ni]
        op = olddims[oi]
        while np_ != op:
            if np_ < op:
                np_ *= newdims[nj]
                nj += 1
            else:
                op *= olddims[oj]
                oj += 1

        for ok in range(oi, oj - 1):
            if oldstrides[ok] != olddims[ok + 1] * oldstrides[ok + 1]:
                return None

        newstrides[nj - 1] = oldstrides[oj - 1]
        for nk in range(nj - 1, ni, -1):
            newstrides[nk - 1] = newstrides[nk] * newdims[nk]

        ni = nj
        nj += 1
        oi = oj
        oj += 1

    # trailing size-1 axes of the new shape
    last_stride = newstrides[ni - 1] if ni >= 1 else 1
    for nk in range(ni, len(newdims)):
        newstrides[nk] = last_stride
    return tuple(newstrides)
