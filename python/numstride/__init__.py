"""
numstride (N-dimensional strided arrays)

Arrays are cheap views ``(buffer, shape, strides, offset)`` over a flat typed
buffer: slicing, transposing, flipping and rotating share memory, while
arithmetic produces new arrays. Broadcasting, reductions, dot products,
FFTs and 'valid'-mode convolutions are built on top of the view engine.
"""

from importlib.metadata import PackageNotFoundError as _PkgNotFoundError
from importlib.metadata import version as _pkg_version

from loguru import logger

from . import config, errors
from .backend import NDArray
from .config import CONF
from .errors import ConfigError, ShapeError
from .init import (
    ArangeSpec,
    arange,
    array,
    empty,
    float32,
    float64,
    int8,
    int16,
    int32,
    ones,
    random,
    uint8,
    uint16,
    uint32,
    zeros,
)
from .ops import (
    abs,
    add,
    arccos,
    arcsin,
    arctan,
    broadcast,
    clip,
    concatenate,
    convolve,
    cos,
    cwise,
    diag,
    divide,
    dot,
    equal,
    exp,
    fft,
    fftconvolve,
    flatten,
    flip,
    identity,
    ifft,
    leaky_relu,
    log,
    max,
    mean,
    min,
    mod,
    multiply,
    negative,
    power,
    remainder,
    reshape,
    rot90,
    round,
    sigmoid,
    sin,
    softmax,
    sqrt,
    stack,
    std,
    subtract,
    sum,
    tan,
    tanh,
    transpose,
)

logger.disable("numstride")

__all__ = [
    "__version__",
    "NDArray",
    "CONF",
    "config",
    "errors",
    "ConfigError",
    "ShapeError",
    "array",
    "empty",
    "zeros",
    "ones",
    "random",
    "ArangeSpec",
    "arange",
    "identity",
    "int8",
    "uint8",
    "int16",
    "uint16",
    "int32",
    "uint32",
    "float32",
    "float64",
    "cwise",
    "add",
    "subtract",
    "multiply",
    "divide",
    "mod",
    "remainder",
    "power",
    "negative",
    "abs",
    "exp",
    "log",
    "sqrt",
    "sin",
    "cos",
    "tan",
    "arcsin",
    "arccos",
    "arctan",
    "tanh",
    "round",
    "sigmoid",
    "leaky_relu",
    "clip",
    "softmax",
    "sum",
    "mean",
    "std",
    "max",
    "min",
    "equal",
    "dot",
    "transpose",
    "reshape",
    "flatten",
    "diag",
    "broadcast",
    "concatenate",
    "stack",
    "flip",
    "rot90",
    "convolve",
    "fftconvolve",
    "fft",
    "ifft",
]

try:
    __version__ = _pkg_version("numstride")
except _PkgNotFoundError:
    # Fallback for editable installs before metadata is written
    __version__ = "0.1.0"
