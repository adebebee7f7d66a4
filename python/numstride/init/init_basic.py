import dataclasses
import math
from collections.abc import Sequence
from typing import Any, Optional

from numstride import dtypes
from numstride.backend.device import Device, default_device
from numstride.backend.ndarray import NDArray, array


def _as_shape(shape: int | Sequence[int]) -> tuple[int, ...]:
    if isinstance(shape, int):
        shape = (shape,)
    shape = tuple(shape)
    if any(d < 0 for d in shape):
        raise ValueError(f"negative dimensions are not allowed, got {shape}")
    return shape


def empty(
    shape: int | Sequence[int],
    dtype: Any = None,
    device: Optional[Device] = None,
) -> NDArray:
    """Allocate an array without initializing its values"""
    return NDArray.make(_as_shape(shape), device=device, dtype=dtypes.normalize(dtype))


def constant(
    shape: int | Sequence[int],
    c: float = 1.0,
    dtype: Any = None,
    device: Optional[Device] = None,
) -> NDArray:
    """Generate an array filled with ``c``"""
    out = empty(shape, dtype=dtype, device=device)
    out.fill(c)
    return out


def zeros(
    shape: int | Sequence[int],
    dtype: Any = None,
    device: Optional[Device] = None,
) -> NDArray:
    """Generate all-zeros array"""
    return constant(shape, c=0, dtype=dtype, device=device)


def ones(
    shape: int | Sequence[int],
    dtype: Any = None,
    device: Optional[Device] = None,
) -> NDArray:
    """Generate all-ones array"""
    return constant(shape, c=1, dtype=dtype, device=device)


def random(*shape: Any, device: Optional[Device] = None) -> NDArray:
    """Generate float64 samples uniform over ``[0, 1)``.

    The shape may be given as varargs or a single int/tuple; without one a
    single sample of shape ``(1,)`` is drawn.
    """
    if not shape:
        shape = (1,)
    elif len(shape) == 1 and not isinstance(shape[0], int):
        shape = tuple(shape[0])
    device = default_device() if device is None else device
    out = empty(shape, dtype="float64", device=device)
    device.random(out._handle)
    return out


@dataclasses.dataclass(frozen=True)
class ArangeSpec:
    """Evenly spaced values ``start, start + step, ...`` up to (excluding) ``stop``.

    A negative ``step`` counts down; ``step == 0`` is rejected.
    """

    start: float = 0
    stop: float = 0
    step: float = 1
    dtype: Any = None

    def __post_init__(self) -> None:
        if self.step == 0:
            raise ValueError("arange step must be non-zero")

    @property
    def count(self) -> int:
        return max(0, math.ceil((self.stop - self.start) / self.step))

    def build(self, device: Optional[Device] = None) -> NDArray:
        values = [self.start + i * self.step for i in range(self.count)]
        out = empty(len(values), dtype=self.dtype, device=device)
        if values:
            out.assign(values, copy=False)
        return out


def arange(
    start: float,
    stop: Optional[float] = None,
    step: float = 1,
    dtype: Any = None,
    device: Optional[Device] = None,
) -> NDArray:
    """1-D array of ``range``-like values; ``arange(n)`` counts ``0 .. n-1``."""
    if stop is None:
        start, stop = 0, start
    return ArangeSpec(start, stop, step, dtype).build(device=device)


def _caster(dtype: str):
    def cast(data: Any) -> NDArray:
        if isinstance(data, NDArray):
            return data.astype(dtype)
        return NDArray(data, dtype=dtype)

    cast.__name__ = dtype
    cast.__doc__ = f"Convert ``data`` to a new {dtype} array."
    return cast


int8 = _caster("int8")
uint8 = _caster("uint8")
int16 = _caster("int16")
uint16 = _caster("uint16")
int32 = _caster("int32")
uint32 = _caster("uint32")
float32 = _caster("float32")
float64 = _caster("float64")
