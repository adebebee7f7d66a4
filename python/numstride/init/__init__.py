from .init_basic import (
    ArangeSpec,
    arange,
    array,
    constant,
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

__all__ = [
    "array",
    "empty",
    "constant",
    "zeros",
    "ones",
    "random",
    "ArangeSpec",
    "arange",
    "int8",
    "uint8",
    "int16",
    "uint16",
    "int32",
    "uint32",
    "float32",
    "float64",
]
