"""Registry of the element types an array buffer can hold.

Each tag names a numpy dtype used for the flat buffer. ``"array"`` is the
unconstrained type: the buffer holds plain Python numbers (so integers keep
arbitrary precision) in a numpy object array.
"""

from typing import Any

import numpy as np
from loguru import logger

DTYPES: dict[str, np.dtype] = {
    "int8": np.dtype(np.int8),
    "uint8": np.dtype(np.uint8),
    "int16": np.dtype(np.int16),
    "uint16": np.dtype(np.uint16),
    "int32": np.dtype(np.int32),
    "uint32": np.dtype(np.uint32),
    "float32": np.dtype(np.float32),
    "float64": np.dtype(np.float64),
    "array": np.dtype(object),
}

INTEGER_DTYPES = frozenset(
    ("int8", "uint8", "int16", "uint16", "int32", "uint32")
)


def get_type(dtype: str | None = None) -> np.dtype:
    """Return the numpy dtype backing ``dtype`` (the configured default if None).

    Raises
    ------
    ValueError
        If the tag is not registered.
    """
    return DTYPES[normalize(dtype)]


def normalize(dtype: Any = None) -> str:
    """Resolve a tag, numpy dtype or Python type to a registered tag."""
    if dtype is None:
        from .config import CONF

        return CONF.default_dtype
    if isinstance(dtype, str):
        if dtype not in DTYPES:
            raise ValueError(
                f"unknown dtype {dtype!r}, expected one of {sorted(DTYPES)}"
            )
        return dtype
    if dtype is int or dtype is float:
        return "array"
    tag = from_numpy(np.dtype(dtype))
    if tag is None:
        raise ValueError(f"unsupported dtype {dtype!r}")
    return tag


def from_numpy(np_dtype: np.dtype) -> str | None:
    """Registered tag for a numpy dtype, or None if it has no entry."""
    for tag, registered in DTYPES.items():
        if registered == np_dtype:
            return tag
    return None


def infer(np_dtype: np.dtype) -> str:
    """Tag for data arriving as a numpy array of ``np_dtype``.

    Registered dtypes map to themselves, booleans to ``uint8``, wider integers
    to ``array`` (to keep their precision) and anything else to ``float64``.
    """
    tag = from_numpy(np_dtype)
    if tag is not None:
        return tag
    if np_dtype.kind == "b":
        return "uint8"
    if np_dtype.kind in "iu":
        return "array"
    return "float64"


def is_integer(dtype: str) -> bool:
    return dtype in INTEGER_DTYPES


def promote(dtype1: str, dtype2: str) -> str:
    """Result tag of a binary operation between two tags.

    ``array`` absorbs everything; integer with float gives float; two integer
    widths give the wider one. Combinations numpy can only express with a
    64-bit integer (e.g. ``int32`` with ``uint32``) fall back to ``float64``.
    """
    if dtype1 == dtype2:
        return dtype1
    if "array" in (dtype1, dtype2):
        return "array"
    promoted = np.promote_types(DTYPES[dtype1], DTYPES[dtype2])
    tag = from_numpy(promoted)
    if tag is None:
        logger.debug(
            "no registered dtype for {} ({} with {}), using float64",
            promoted,
            dtype1,
            dtype2,
        )
        return "float64"
    return tag


def scalar_promote(dtype: str, value: Any) -> str:
    """Result tag of a binary operation between an array tag and a scalar.

    Python ints keep the array's tag; Python floats lift integer tags to
    ``float64``.
    """
    if dtype == "array":
        return dtype
    if isinstance(value, (float, np.floating)) and is_integer(dtype):
        return "float64"
    return dtype


def float_result(dtype: str) -> str:
    """Tag of a transcendental function applied to ``dtype``."""
    return "float64" if is_integer(dtype) else dtype
