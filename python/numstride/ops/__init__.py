from .ops_linalg import (
    broadcast,
    concatenate,
    diag,
    dot,
    flatten,
    flip,
    identity,
    reshape,
    rot90,
    stack,
    transpose,
)
from .ops_mathematic import (
    abs,
    add,
    arccos,
    arcsin,
    arctan,
    asarray,
    clip,
    cos,
    cwise,
    divide,
    equal,
    exp,
    leaky_relu,
    log,
    max,
    maximum,
    mean,
    min,
    minimum,
    mod,
    multiply,
    negative,
    power,
    remainder,
    round,
    sigmoid,
    sin,
    softmax,
    sqrt,
    std,
    subtract,
    sum,
    tan,
    tanh,
)
from .ops_signal import convolve, fft, fftconvolve, ifft

__all__ = [
    "asarray",
    "cwise",
    "add",
    "subtract",
    "multiply",
    "divide",
    "mod",
    "remainder",
    "power",
    "maximum",
    "minimum",
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
    "identity",
    "concatenate",
    "stack",
    "flip",
    "rot90",
    "convolve",
    "fftconvolve",
    "fft",
    "ifft",
]
