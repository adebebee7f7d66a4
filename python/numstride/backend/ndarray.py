import math
from collections.abc import Iterator, Sequence
from typing import Any, Union

import numpy as np
from loguru import logger

from .. import dtypes, shapes
from ..config import CONF
from ..errors import ShapeError
from .device import Device, default_device

Scalar = Union[int, float]
Operand = Union["NDArray", Scalar, Sequence[Any], np.ndarray]

_SCALAR_TYPES = (int, float, bool, np.number, np.bool_)


def is_scalar(value: Any) -> bool:
    return isinstance(value, _SCALAR_TYPES)


def _as_ndarray(value: Any, device: Device | None = None) -> "NDArray":
    return value if isinstance(value, NDArray) else NDArray(value, device=device)


def _flat_values(x: Any) -> np.ndarray:
    return np.asarray(x.numpy() if isinstance(x, NDArray) else x).reshape(-1)


def _exact_on_ints(op: str, left: Any, right: Any) -> bool:
    """Whether ``left <op> right`` on ``array`` data can stay on Python ints.

    Any float operand, a zero divisor or a negative exponent moves the whole
    operation to float64, where those cases give IEEE ``nan``/``inf``.
    """
    lhs, rhs = _flat_values(left), _flat_values(right)
    for part in (lhs, rhs):
        if part.dtype.kind in "fc":
            return False
        if part.dtype.hasobject and not all(
            isinstance(v, (int, np.integer)) for v in part
        ):
            return False
    if op == "mod":
        return bool(np.all(rhs != 0))
    return bool(np.all(rhs >= 0))


def _parse_dims(args: tuple[Any, ...]) -> tuple[Any, ...]:
    """Accept both ``f(2, 3)`` and ``f((2, 3))`` call styles."""
    if len(args) == 1 and isinstance(args[0], (tuple, list)):
        return tuple(args[0])
    return tuple(args)


class NDArray:
    """Strided N-dimensional array over a flat, typed buffer.

    An array is a view ``(buffer, shape, strides, offset)``: the element at
    multi-index ``idx`` lives at ``offset + sum(idx[i] * strides[i])`` in the
    buffer. Slicing, picking, stepping, transposing, flipping and contiguous
    reshapes only rewrite this tuple and share the buffer with the source;
    arithmetic, ``clone`` and non-contiguous reshapes allocate a new buffer.
    Mutating a view is therefore visible through every other view of the
    same buffer.
    """

    _shape: tuple[int, ...]
    _strides: tuple[int, ...]
    _offset: int
    _device: Device
    _handle: Any
    _dtype: str

    def __init__(
        self,
        other: Any,
        dtype: Any = None,
        shape: Sequence[int] | int | None = None,
        device: Device | None = None,
    ) -> None:
        """Construct an NDArray from another NDArray, NumPy array, or array-like.

        Parameters
        ----------
        other : NDArray | numpy.ndarray | nested sequence | scalar
            Source to create from. Data are always copied. A scalar becomes a
            one-element 1-D array.
        dtype : str | None, optional
            dtype tag of the new buffer. Defaults to ``other``'s dtype for
            arrays and to ``CONF.default_dtype`` for Python data.
        shape : tuple of int | int | None, optional
            Reinterpret the data (read in row-major order) with this shape.
            One dimension may be ``-1``.
        device : Device | None, optional
            Target device. If omitted and ``other`` is an NDArray, the other's
            device is used; otherwise the global default device is used.

        Raises
        ------
        ValueError
            If nested sequences are irregular or ``shape`` does not match the
            number of elements.
        """
        if isinstance(other, NDArray):
            array = other.to(device) if device is not None else other
            array = array.astype(array.dtype if dtype is None else dtype)
        else:
            if isinstance(other, np.ndarray):
                tag = dtypes.infer(other.dtype) if dtype is None else dtypes.normalize(dtype)
                data = other
            else:
                if is_scalar(other):
                    other = [other]
                shapes.infer_shape(other)
                tag = dtypes.normalize(dtype)
                np_type = dtypes.get_type(tag)
                # fixed-width buffers take the values through from_numpy's cast
                data = np.array(other, dtype=np_type if np_type.hasobject else None)
            array = NDArray.make(data.shape, device=device, dtype=tag)
            array.device.from_numpy(data, array._handle)
        if shape is not None:
            if isinstance(shape, int):
                shape = (shape,)
            array = array.reshape(shapes.resolve_shape(shape, array.size))
        self._init(array)

    def _init(self, other: "NDArray") -> None:
        """Initialize this instance by taking metadata and handle from ``other``."""
        self._shape = other._shape
        self._strides = other._strides
        self._offset = other._offset
        self._device = other._device
        self._handle = other._handle
        self._dtype = other._dtype

    @staticmethod
    def make(
        shape: Sequence[int],
        strides: Sequence[int] | None = None,
        device: Device | None = None,
        handle: Any = None,
        offset: int = 0,
        dtype: str | None = None,
    ) -> "NDArray":
        """Create a new NDArray with explicit metadata and optional existing storage.

        Parameters
        ----------
        shape : sequence of int
            Desired logical shape.
        strides : sequence of int | None, optional
            Strides in elements. If None, compact row-major strides are used.
        device : Device | None, optional
            Target device. Defaults to the global default device.
        handle : Any, optional
            Existing backend handle representing the storage. If None, new
            storage of ``dtype`` is allocated.
        offset : int, optional
            Element offset into ``handle`` storage. Defaults to 0.
        dtype : str | None, optional
            dtype tag. Defaults to the handle's dtype when a handle is given
            and to ``CONF.default_dtype`` otherwise.

        Returns
        -------
        NDArray
            A new NDArray with the specified layout and storage.
        """
        array = NDArray.__new__(NDArray)
        array._shape = tuple(int(d) for d in shape)
        array._strides = (
            shapes.compact_strides(array._shape)
            if strides is None
            else tuple(int(s) for s in strides)
        )
        array._offset = offset
        array._device = device if device is not None else default_device()
        if handle is None:
            array._dtype = dtypes.normalize(dtype)
            array._handle = array.device.Array(
                math.prod(array._shape), dtypes.get_type(array._dtype)
            )
        else:
            array._dtype = (
                dtypes.normalize(dtype)
                if dtype is not None
                else dtypes.infer(handle.dtype)
            )
            array._handle = handle
        return array

    ### Properties and string representations
    @property
    def shape(self) -> tuple[int, ...]:
        """tuple[int, ...]: Logical shape of the array."""
        return self._shape

    @property
    def strides(self) -> tuple[int, ...]:
        """tuple[int, ...]: Strides in elements for each dimension."""
        return self._strides

    @property
    def offset(self) -> int:
        """int: Buffer position of the first element."""
        return self._offset

    @property
    def device(self) -> Device:
        """Device: The device on which this array's storage resides."""
        return self._device

    @property
    def dtype(self) -> str:
        """str: dtype tag of the underlying buffer."""
        return self._dtype

    @property
    def ndim(self) -> int:
        """int: Number of dimensions."""
        return len(self._shape)

    @property
    def size(self) -> int:
        """int: Total number of elements as the product of ``shape``."""
        return math.prod(self._shape)

    @property
    def T(self) -> "NDArray":
        """NDArray: View with the axes reversed."""
        return self.transpose()

    def __repr__(self) -> str:
        body = self._format(prefix="array(")
        return f"array({body}, dtype={self.dtype})"

    def __str__(self) -> str:
        return self._format()

    def _format(self, prefix: str = "") -> str:
        with np.printoptions(
            threshold=CONF.print_threshold,
            edgeitems=max(1, CONF.print_threshold // 2),
            precision=CONF.n_floating_values,
        ):
            return np.array2string(self.numpy(), separator=", ", prefix=prefix)

    def __len__(self) -> int:
        if self.ndim == 0:
            raise TypeError("len() of unsized array")
        return self._shape[0]

    def __iter__(self) -> Iterator[Any]:
        if self.ndim == 0:
            raise TypeError("iteration over a 0-d array")
        for i in range(self._shape[0]):
            yield self[i]

    def __array__(self, dtype: Any = None, copy: bool | None = None) -> np.ndarray:
        out = self.numpy()
        return out if dtype is None else out.astype(dtype)

    ### Basic array manipulation
    def fill(self, value: Scalar) -> None:
        """Fill every element addressed by this view with a scalar value."""
        if self.is_compact():
            self.device.fill(self._handle, value)
            return
        self.device.scalar_setitem(
            self.size, value, self._handle, self.shape, self.strides, self._offset
        )

    def to(self, device: Device) -> "NDArray":
        """Move or copy the array to another device.

        Returns
        -------
        NDArray
            ``self`` if already on ``device``; otherwise a new NDArray on ``device``.
        """
        if self.device == device:
            return self
        else:
            return NDArray(self.numpy(), dtype=self.dtype, device=device)

    def numpy(self) -> np.ndarray:
        """Convert to a NumPy ndarray (host representation).

        Returns
        -------
        numpy.ndarray
            A NumPy view or copy of this array on the host. Fixed-width
            buffers are returned as views; treat the result as read-only.
        """
        return self.device.to_numpy(self._handle, self.shape, self.strides, self._offset)

    def tolist(self) -> Any:
        """Nested Python lists of Python numbers."""
        return self.numpy().tolist()

    def item(self) -> Scalar:
        """The single element of a one-element array as a Python number."""
        if self.size != 1:
            raise ValueError("can only convert an array of size 1 to a Python scalar")
        value = self.numpy().reshape(-1)[0]
        return value.item() if isinstance(value, np.generic) else value

    def __bool__(self) -> bool:
        if self.size != 1:
            raise ValueError(
                "the truth value of an array with more than one element is ambiguous"
            )
        return bool(self.item())

    def is_compact(self) -> bool:
        """Return whether the array is compact in memory.

        The array is compact if its strides match compact row-major strides and
        the underlying storage size equals ``prod(shape)``.
        """
        return (
            self._strides == shapes.compact_strides(self._shape)
            and math.prod(self.shape) == self._handle.size
        )

    def compact(self) -> "NDArray":
        """Return a compact copy if needed, otherwise return ``self``."""
        if self.is_compact():
            return self
        else:
            out = NDArray.make(self.shape, device=self.device, dtype=self.dtype)
            self.device.compact(
                self._handle, out._handle, self.shape, self.strides, self._offset
            )
            return out

    def astype(self, dtype: Any) -> "NDArray":
        """Compact copy of this array with its values cast to ``dtype``."""
        out = NDArray.make(self.shape, device=self.device, dtype=dtypes.normalize(dtype))
        self.device.compact(
            self._handle, out._handle, self.shape, self.strides, self._offset
        )
        return out

    def clone(self) -> "NDArray":
        """Copy into a new contiguous row-major buffer with offset 0."""
        return self.astype(self.dtype)

    def as_strided(self, shape: tuple[int, ...], strides: tuple[int, ...]) -> "NDArray":
        """Create a new view with given shape and strides (no data copy)."""
        if len(shape) != len(strides):
            raise ValueError("shape and strides must have the same length")
        return NDArray.make(
            shape,
            strides=strides,
            device=self.device,
            handle=self._handle,
            offset=self._offset,
            dtype=self.dtype,
        )

    def _view(
        self, shape: Sequence[int], strides: Sequence[int], offset: int
    ) -> "NDArray":
        return NDArray.make(
            shape, strides, self.device, self._handle, offset, dtype=self.dtype
        )

    def reshape(self, *new_shape: Any) -> "NDArray":
        """Give the array a new shape.

        Parameters
        ----------
        *new_shape : int or tuple of int
            Target shape, given as varargs, a tuple, or a single int for a
            1-D result. One dimension may be ``-1`` and is inferred.

        Returns
        -------
        NDArray
            A view sharing storage when the current layout can be re-read in
            row-major order, otherwise a reshaped compact copy.

        Raises
        ------
        ValueError
            If the product of the new shape differs from ``size``.
        """
        shape = shapes.resolve_shape(_parse_dims(new_shape), self.size)
        if self.is_compact():
            return self._view(shape, shapes.compact_strides(shape), self._offset)
        strides = shapes.nocopy_strides(self.shape, self.strides, shape)
        if strides is not None:
            return self._view(shape, strides, self._offset)
        logger.debug("reshape {} -> {} needs a copy", self.shape, shape)
        return self.compact().reshape(shape)

    def flatten(self) -> "NDArray":
        """Collapse into one dimension in row-major order (a view when contiguous)."""
        return self.reshape(self.size)

    def transpose(self, *axes: Any) -> "NDArray":
        """Permute dimensions without copying memory.

        Parameters
        ----------
        *axes : int or tuple of int
            A permutation of ``range(ndim)``; negative axes wrap. Defaults to
            reversing the axes.

        Raises
        ------
        ValueError
            If ``axes`` is not a permutation of the array's axes.
        """
        parsed = _parse_dims(axes)
        if not parsed:
            parsed = tuple(range(self.ndim - 1, -1, -1))
        if len(parsed) != self.ndim:
            raise ValueError(f"axes {parsed} don't match array of dimension {self.ndim}")
        order = tuple(shapes.normalize_axis(a, self.ndim) for a in parsed)
        if sorted(order) != list(range(self.ndim)):
            raise ValueError(f"axes {parsed} are not a permutation of the array axes")

        new_shape = tuple(self.shape[i] for i in order)
        new_strides = tuple(self.strides[i] for i in order)
        return self._view(new_shape, new_strides, self._offset)

    permute = transpose

    def broadcast_to(self, new_shape: Sequence[int]) -> "NDArray":
        """Broadcast to ``new_shape`` by adjusting strides (no copy).

        Missing leading axes are added, and size-1 axes are stretched with a
        zero stride.

        Raises
        ------
        ShapeError
            If a non-singleton dimension would change.
        """
        new_shape = tuple(new_shape)
        if len(new_shape) < self.ndim:
            raise ShapeError(self.shape, new_shape)
        pad = len(new_shape) - self.ndim
        old_shape = (1,) * pad + self.shape
        old_strides = (0,) * pad + self.strides
        for x, y in zip(old_shape, new_shape):
            if x != y and x != 1:
                raise ShapeError(self.shape, new_shape)

        new_strides = tuple(
            0 if x != y else s for x, y, s in zip(old_shape, new_shape, old_strides)
        )
        return self._view(new_shape, new_strides, self._offset)

    ### Views selecting parts of the array

    def _check_index(self, index: int, axis: int) -> int:
        dim = self.shape[axis]
        normalized = index + dim if index < 0 else index
        if not 0 <= normalized < dim:
            raise ValueError(
                f"index {index} is out of bounds for axis {axis} with size {dim}"
            )
        return normalized

    def _check_arity(self, args: tuple[Any, ...], name: str) -> None:
        if len(args) > self.ndim:
            raise ValueError(
                f"{name} got {len(args)} arguments for a {self.ndim}-dimensional array"
            )

    def pick(self, *indices: int | None) -> "NDArray":
        """Fix axes to an index, dropping them from the result.

        ``None`` (or omitted trailing positions) keeps an axis as-is. The
        result shares storage with this array.
        """
        self._check_arity(indices, "pick")
        shape, strides = [], []
        offset = self._offset
        for axis, index in enumerate(indices + (None,) * (self.ndim - len(indices))):
            if index is None:
                shape.append(self.shape[axis])
                strides.append(self.strides[axis])
            else:
                offset += self._check_index(index, axis) * self.strides[axis]
        return self._view(shape, strides, offset)

    def step(self, *steps: int | None) -> "NDArray":
        """Take every ``steps[i]``-th element along each axis.

        A negative step walks the axis backwards from its last element;
        ``None`` keeps an axis. The result shares storage with this array.

        Raises
        ------
        ValueError
            If a step is zero.
        """
        self._check_arity(steps, "step")
        shape, strides = list(self.shape), list(self.strides)
        offset = self._offset
        for axis, step in enumerate(steps):
            if step is None:
                continue
            if step == 0:
                raise ValueError("step must be non-zero")
            if step < 0 and shape[axis] > 0:
                offset += strides[axis] * (shape[axis] - 1)
            shape[axis] = math.ceil(shape[axis] / abs(step))
            strides[axis] *= step
        return self._view(shape, strides, offset)

    def hi(self, *shape: int | None) -> "NDArray":
        """View truncated to the first ``shape[i]`` elements of each axis."""
        self._check_arity(shape, "hi")
        new_shape = list(self.shape)
        for axis, dim in enumerate(shape):
            if dim is None:
                continue
            if not 0 <= dim <= self.shape[axis]:
                raise ValueError(f"hi({dim}) is out of bounds for axis {axis}")
            new_shape[axis] = dim
        return self._view(new_shape, self.strides, self._offset)

    def lo(self, *offsets: int | None) -> "NDArray":
        """View starting at ``offsets[i]`` along each axis."""
        self._check_arity(offsets, "lo")
        new_shape = list(self.shape)
        offset = self._offset
        for axis, start in enumerate(offsets):
            if start is None:
                continue
            if not 0 <= start <= self.shape[axis]:
                raise ValueError(f"lo({start}) is out of bounds for axis {axis}")
            offset += start * self.strides[axis]
            new_shape[axis] -= start
        return self._view(new_shape, self.strides, offset)

    def slice(self, *specs: int | Sequence[int | None] | None) -> "NDArray":
        """View selecting ``[start, stop, step)`` along each axis.

        Each spec is an int start, a ``(start, stop[, step])`` sequence, or
        ``None`` to keep the axis; negative values count from the end.
        """
        self._check_arity(specs, "slice")
        slices = []
        for spec in specs:
            if spec is None:
                slices.append(slice(None))
            elif isinstance(spec, int):
                slices.append(slice(spec, None))
            else:
                slices.append(slice(*spec))
        return self._select(tuple(slices))

    def _select(self, idxs: Any) -> "NDArray":
        """Strided view for an int/slice/Ellipsis index expression."""
        if not isinstance(idxs, tuple):
            idxs = (idxs,)
        if any(i is Ellipsis for i in idxs):
            at = idxs.index(Ellipsis)
            fill = self.ndim - (len(idxs) - 1)
            idxs = idxs[:at] + (slice(None),) * fill + idxs[at + 1 :]
        self._check_arity(idxs, "index")
        idxs = idxs + (slice(None),) * (self.ndim - len(idxs))

        shape, strides = [], []
        offset = self._offset
        for axis, idx in enumerate(idxs):
            stride = self.strides[axis]
            if isinstance(idx, slice):
                start, stop, step = idx.indices(self.shape[axis])
                length = len(range(start, stop, step))
                if length > 0:
                    offset += start * stride
                shape.append(length)
                strides.append(stride * step)
            elif isinstance(idx, (int, np.integer)):
                offset += self._check_index(int(idx), axis) * stride
            else:
                raise TypeError(f"unsupported index {idx!r}")
        return self._view(shape, strides, offset)

    def __getitem__(self, idxs: Any) -> Any:
        """Return a strided view per the given index/slice specification.

        Integers drop their axis, slices keep it. Indexing every axis with an
        integer returns the element itself.
        """
        view = self._select(idxs)
        if view.ndim == 0:
            return view.item()
        return view

    def __setitem__(self, idxs: Any, other: Operand) -> None:
        """Assign in place to the strided view specified by ``idxs``."""
        self._select(idxs).assign(other, copy=False)

    def get(self, *index: int) -> Any:
        """Element at a full multi-index, or a sub-view for a partial one.

        Raises
        ------
        ValueError
            If a coordinate is out of range or too many are given.
        """
        self._check_arity(index, "get")
        view = self.pick(*index)
        return view.item() if len(index) == self.ndim else view

    def set(self, *args: Any) -> "NDArray":
        """``set(*index, value)``: write ``value`` at ``index`` (or broadcast it
        into the sub-view a partial index selects). Returns ``self``."""
        if not args:
            raise ValueError("set requires a value")
        *index, value = args
        self._check_arity(tuple(index), "set")
        self.pick(*index).assign(value, copy=False)
        return self

    def iteraxis(self, axis: int) -> Iterator["NDArray"]:
        """Yield the sub-views obtained by fixing ``axis`` to each index."""
        axis = shapes.normalize_axis(axis, self.ndim)
        for i in range(self.shape[axis]):
            yield self.pick(*([None] * axis + [i]))

    def assign(self, other: Operand, copy: bool = True) -> "NDArray":
        """Write ``other`` (broadcast to this shape) into the elements.

        Parameters
        ----------
        other : NDArray | array_like | scalar
            Source values.
        copy : bool, optional
            If True (default), write into a clone and return it; otherwise
            write in place and return ``self``.
        """
        target = self.clone() if copy else self
        if is_scalar(other):
            target.fill(other)
            return target
        source = _as_ndarray(other, device=target.device).broadcast_to(target.shape)
        if source._handle is target._handle:
            source = source.clone()
        self.device.ewise_setitem(
            source.compact()._handle,
            target._handle,
            target.shape,
            target.strides,
            target._offset,
        )
        return target

    ### Element-wise and scalar operations

    def _binary(
        self,
        other: Operand,
        op: str,
        kind: str = "arithmetic",
        copy: bool = True,
        reflected: bool = False,
    ) -> "NDArray":
        """Broadcasting binary operation through the backend ``ewise_``/``scalar_`` routines.

        ``kind`` selects the dtype rule: ``"arithmetic"`` computes and returns
        the promoted dtype, ``"divide"`` computes in float, ``"compare"``
        returns a ``uint8`` mask. With ``copy=False`` the result is written
        back into ``self`` (whose shape must be the broadcast shape).
        """
        if is_scalar(other):
            promoted = dtypes.scalar_promote(self.dtype, other)
            operands = (self,)
            shape = self.shape
        else:
            other = _as_ndarray(other, device=self.device)
            if reflected:
                return other._binary(self, op, kind, copy=copy)
            promoted = dtypes.promote(self.dtype, other.dtype)
            shape = shapes.broadcast_shape(self.shape, other.shape)
            operands = (self.broadcast_to(shape), other.broadcast_to(shape))

        compute_dtype, out_dtype = promoted, promoted
        if kind == "divide":
            if promoted == "array" or dtypes.is_integer(promoted):
                compute_dtype = "float64"
            if dtypes.is_integer(promoted):
                out_dtype = "float64"
        elif kind == "compare":
            out_dtype = "uint8"
            # out-of-range int scalars must not wrap before comparing
            if is_scalar(other) and dtypes.is_integer(promoted):
                compute_dtype = "float64"
        elif op in ("mod", "power"):
            left, right = (other, self) if reflected else (self, other)
            if promoted == "array" and not _exact_on_ints(op, left, right):
                compute_dtype = "float64"
            elif (
                op == "power"
                and dtypes.is_integer(promoted)
                and bool(np.any(_flat_values(right) < 0))
            ):
                compute_dtype, out_dtype = "float64", "float64"

        handles = [
            (a if a.dtype == compute_dtype else a.astype(compute_dtype)).compact()._handle
            for a in operands
        ]
        out = NDArray.make(shape, device=self.device, dtype=out_dtype)
        if len(handles) == 2:
            getattr(self.device, f"ewise_{op}")(handles[0], handles[1], out._handle)
        else:
            prefix = "rscalar" if reflected and op in ("sub", "div", "mod", "power") else "scalar"
            getattr(self.device, f"{prefix}_{op}")(handles[0], other, out._handle)

        if copy:
            return out
        if shape != self.shape:
            raise ValueError(
                f"in-place result of shape {shape} does not fit array of shape {self.shape}"
            )
        return self.assign(out, copy=False)

    def add(self, other: Operand, copy: bool = True) -> "NDArray":
        """Elementwise addition."""
        return self._binary(other, "add", copy=copy)

    def subtract(self, other: Operand, copy: bool = True) -> "NDArray":
        """Elementwise subtraction."""
        return self._binary(other, "sub", copy=copy)

    def multiply(self, other: Operand, copy: bool = True) -> "NDArray":
        """Elementwise multiplication."""
        return self._binary(other, "mul", copy=copy)

    def divide(self, other: Operand, copy: bool = True) -> "NDArray":
        """Elementwise true division; integer operands give float64."""
        return self._binary(other, "div", kind="divide", copy=copy)

    def mod(self, other: Operand, copy: bool = True) -> "NDArray":
        """Elementwise floor modulo; the result has the sign of the divisor."""
        return self._binary(other, "mod", copy=copy)

    def pow(self, other: Operand, copy: bool = True) -> "NDArray":
        """Elementwise power."""
        return self._binary(other, "power", copy=copy)

    def maximum(self, other: Operand) -> "NDArray":
        """Elementwise maximum."""
        return self._binary(other, "maximum")

    def minimum(self, other: Operand) -> "NDArray":
        """Elementwise minimum."""
        return self._binary(other, "minimum")

    def __add__(self, other: Operand) -> "NDArray":
        return self.add(other)

    __radd__ = __add__

    def __sub__(self, other: Operand) -> "NDArray":
        return self.subtract(other)

    def __rsub__(self, other: Operand) -> "NDArray":
        return self._binary(other, "sub", reflected=True)

    def __mul__(self, other: Operand) -> "NDArray":
        return self.multiply(other)

    __rmul__ = __mul__

    def __truediv__(self, other: Operand) -> "NDArray":
        return self.divide(other)

    def __rtruediv__(self, other: Operand) -> "NDArray":
        return self._binary(other, "div", kind="divide", reflected=True)

    def __mod__(self, other: Operand) -> "NDArray":
        return self.mod(other)

    def __rmod__(self, other: Operand) -> "NDArray":
        return self._binary(other, "mod", reflected=True)

    def __pow__(self, other: Operand) -> "NDArray":
        return self.pow(other)

    def __rpow__(self, other: Operand) -> "NDArray":
        return self._binary(other, "power", reflected=True)

    def __iadd__(self, other: Operand) -> "NDArray":
        return self.add(other, copy=False)

    def __isub__(self, other: Operand) -> "NDArray":
        return self.subtract(other, copy=False)

    def __imul__(self, other: Operand) -> "NDArray":
        return self.multiply(other, copy=False)

    def __itruediv__(self, other: Operand) -> "NDArray":
        return self.divide(other, copy=False)

    def __imod__(self, other: Operand) -> "NDArray":
        return self.mod(other, copy=False)

    def __neg__(self) -> "NDArray":
        return self.negative()

    def __abs__(self) -> "NDArray":
        return self.abs()

    def __matmul__(self, other: Operand) -> Any:
        return self.dot(other)

    ### Comparisons, returning uint8 masks (1 or 0)
    def __eq__(self, other: Operand) -> "NDArray":  # type: ignore[override]
        return self._binary(other, "eq", kind="compare")

    def __ne__(self, other: Operand) -> "NDArray":  # type: ignore[override]
        return self._binary(other, "ne", kind="compare")

    def __lt__(self, other: Operand) -> "NDArray":
        return self._binary(other, "lt", kind="compare")

    def __le__(self, other: Operand) -> "NDArray":
        return self._binary(other, "le", kind="compare")

    def __gt__(self, other: Operand) -> "NDArray":
        return self._binary(other, "gt", kind="compare")

    def __ge__(self, other: Operand) -> "NDArray":
        return self._binary(other, "ge", kind="compare")

    __hash__ = None  # type: ignore[assignment]

    ### Element-wise unary operations

    def ewise(
        self, name: str, *params: Any, dtype: str | None = None, copy: bool = True
    ) -> "NDArray":
        """Apply the backend routine ``ewise_<name>`` to every element.

        Parameters
        ----------
        name : str
            Routine suffix, e.g. ``"exp"`` or ``"sigmoid"``.
        *params : Any
            Extra scalar parameters passed before the output buffer.
        dtype : str | None, optional
            dtype of the result; defaults to this array's dtype.
        copy : bool, optional
            If False, the result is written back into this array (keeping its
            dtype) and ``self`` is returned.
        """
        out = NDArray.make(
            self.shape, device=self.device, dtype=self.dtype if dtype is None else dtype
        )
        getattr(self.device, f"ewise_{name}")(
            self.compact()._handle, *params, out._handle
        )
        if copy:
            return out
        return self.assign(out, copy=False)

    def _transcendental(self, name: str, copy: bool) -> "NDArray":
        return self.ewise(name, dtype=dtypes.float_result(self.dtype), copy=copy)

    def exp(self, copy: bool = True) -> "NDArray":
        """Elementwise exponential."""
        return self._transcendental("exp", copy)

    def log(self, copy: bool = True) -> "NDArray":
        """Elementwise natural logarithm."""
        return self._transcendental("log", copy)

    def sqrt(self, copy: bool = True) -> "NDArray":
        """Elementwise square root."""
        return self._transcendental("sqrt", copy)

    def sin(self, copy: bool = True) -> "NDArray":
        return self._transcendental("sin", copy)

    def cos(self, copy: bool = True) -> "NDArray":
        return self._transcendental("cos", copy)

    def tan(self, copy: bool = True) -> "NDArray":
        return self._transcendental("tan", copy)

    def arcsin(self, copy: bool = True) -> "NDArray":
        return self._transcendental("arcsin", copy)

    def arccos(self, copy: bool = True) -> "NDArray":
        return self._transcendental("arccos", copy)

    def arctan(self, copy: bool = True) -> "NDArray":
        return self._transcendental("arctan", copy)

    def tanh(self, copy: bool = True) -> "NDArray":
        """Elementwise hyperbolic tangent."""
        return self._transcendental("tanh", copy)

    def negative(self, copy: bool = True) -> "NDArray":
        """Elementwise negation."""
        return self.ewise("negative", copy=copy)

    def abs(self, copy: bool = True) -> "NDArray":
        """Elementwise absolute value."""
        return self.ewise("abs", copy=copy)

    def round(self, copy: bool = True) -> "NDArray":
        """Round to the nearest integer, halves rounding up."""
        return self.ewise("round", copy=copy)

    ### Matrix products

    def _matmul(self, other: "NDArray") -> "NDArray":
        """Product of two 2D arrays with matching inner dimensions."""
        dtype = dtypes.promote(self.dtype, other.dtype)
        a = self if self.dtype == dtype else self.astype(dtype)
        b = other if other.dtype == dtype else other.astype(dtype)
        m, n, p = a.shape[0], a.shape[1], b.shape[1]
        out = NDArray.make((m, p), device=self.device, dtype=dtype)
        self.device.matmul(a.compact()._handle, b.compact()._handle, out._handle, m, n, p)
        return out

    def dot(self, other: Operand) -> Any:
        """Dot product.

        Supported operand ranks are vector·vector (returns a Python number),
        matrix·vector and vector·matrix (return a vector) and matrix·matrix.

        Raises
        ------
        ValueError
            On other ranks or mismatched inner dimensions.
        """
        other = _as_ndarray(other, device=self.device)
        ranks = (self.ndim, other.ndim)
        if ranks not in ((1, 1), (2, 1), (1, 2), (2, 2)):
            raise ValueError(f"dot is not supported for arrays of rank {ranks}")
        inner_a = self.shape[-1]
        inner_b = other.shape[0]
        if inner_a != inner_b:
            raise ValueError(
                f"shapes {self.shape} and {other.shape} not aligned: "
                f"{inner_a} (dim {self.ndim - 1}) != {inner_b} (dim 0)"
            )
        a = self if self.ndim == 2 else self.reshape(1, inner_a)
        b = other if other.ndim == 2 else other.reshape(inner_b, 1)
        out = a._matmul(b)
        if ranks == (1, 1):
            return out.item()
        if ranks == (2, 1):
            return out.reshape(out.shape[0])
        if ranks == (1, 2):
            return out.reshape(out.shape[1])
        return out

    def diag(self) -> "NDArray":
        """Diagonal view of a 2D array, or a new diagonal matrix from a 1D array.

        Raises
        ------
        ValueError
            If the array is neither 1D nor 2D.
        """
        if self.ndim == 1:
            n = self.shape[0]
            out = NDArray.make((n, n), device=self.device, dtype=self.dtype)
            out.fill(0)
            out._view((n,), (n + 1,), 0).assign(self, copy=False)
            return out
        if self.ndim == 2:
            return self._view(
                (min(self.shape),), (self.strides[0] + self.strides[1],), self._offset
            )
        raise ValueError("diag requires a 1-D or 2-D array")

    ### Convolution

    def convolve(self, kernel: Operand) -> "NDArray":
        """Direct 'valid'-mode convolution with ``kernel`` (see ``ops.convolve``)."""
        from ..ops.ops_signal import convolve  # lazy to avoid circular import

        return convolve(self, kernel)

    def fftconvolve(self, kernel: Operand) -> "NDArray":
        """FFT-based 'valid'-mode convolution (see ``ops.fftconvolve``)."""
        from ..ops.ops_signal import fftconvolve  # lazy to avoid circular import

        return fftconvolve(self, kernel)

    ### Reductions, i.e., sum/max over all elements or over a given axis
    def reduce_view_out(
        self, axis: int | None, keepdims: bool = False, dtype: str | None = None
    ) -> tuple["NDArray", "NDArray"]:
        """Prepare a compact reduction view and corresponding output array.

        Parameters
        ----------
        axis : int | None
            Axis to reduce over; ``None`` reduces over all elements.
        keepdims : bool, optional
            If True, keep the reduced dimension with size 1.
        dtype : str | None, optional
            dtype of the output; defaults to this array's dtype.

        Returns
        -------
        tuple[NDArray, NDArray]
            A tuple of (view, out), where ``view`` is a permuted/reshaped input
            such that the last dimension is reduced, and ``out`` is the output
            array with appropriate shape.
        """
        dtype = self.dtype if dtype is None else dtype
        if axis is None:
            view = self.compact().reshape(self.size)
            out = NDArray.make((1,), device=self.device, dtype=dtype)
        else:
            axis = shapes.normalize_axis(axis, self.ndim)
            view = self.permute(
                tuple(a for a in range(self.ndim) if a != axis) + (axis,)
            )
            out = NDArray.make(
                tuple(1 if i == axis else s for i, s in enumerate(self.shape))
                if keepdims
                else tuple(s for i, s in enumerate(self.shape) if i != axis),
                device=self.device,
                dtype=dtype,
            )

        return view, out

    def _accumulator_dtype(self) -> str:
        return "array" if dtypes.is_integer(self.dtype) else self.dtype

    def sum(self, axis: int | None = None, keepdims: bool = False) -> Any:
        """Sum of array elements.

        Parameters
        ----------
        axis : int | None, optional
            Axis to reduce over. If None, sum over all elements and return a
            Python number.
        keepdims : bool, optional
            If True, keep the reduced dimension with size 1.

        Returns
        -------
        number | NDArray
            The reduced value or array. Integer dtypes accumulate exactly into
            the ``array`` dtype.
        """
        view, out = self.reduce_view_out(
            axis, keepdims=keepdims, dtype=self._accumulator_dtype()
        )
        self.device.reduce_sum(view.compact()._handle, out._handle, view.shape[-1])
        return out.item() if axis is None else out

    def mean(self, axis: int | None = None, keepdims: bool = False) -> Any:
        """Arithmetic mean, ``sum / count``; ``nan`` for an empty array."""
        if axis is None:
            count = self.size
            return self.sum() / count if count else math.nan
        total = self.sum(axis=axis, keepdims=keepdims)
        return total / self.shape[shapes.normalize_axis(axis, self.ndim)]

    def std(self, ddof: int = 0) -> float:
        """Standard deviation ``sqrt(sum((x - mean)**2) / (count - ddof))``.

        ``count <= ddof`` follows IEEE division semantics and yields ``nan``
        or ``inf`` rather than raising.
        """
        count = self.size
        centered = self.astype("float64") - self.mean()
        squares = (centered * centered).sum()
        with np.errstate(divide="ignore", invalid="ignore"):
            variance = np.float64(squares) / np.float64(count - ddof)
            return float(np.sqrt(variance))

    def _extremum(self, name: str, axis: int | None, keepdims: bool) -> Any:
        view, out = self.reduce_view_out(axis, keepdims=keepdims)
        if view.shape[-1] == 0:
            raise ValueError(
                f"zero-size array to reduction operation {name} which has no identity"
            )
        getattr(self.device, f"reduce_{name}")(
            view.compact()._handle, out._handle, view.shape[-1]
        )
        return out.item() if axis is None else out

    def max(self, axis: int | None = None, keepdims: bool = False) -> Any:
        """Maximum of array elements.

        Raises
        ------
        ValueError
            If the array (or the reduced axis) is empty.
        """
        return self._extremum("max", axis, keepdims)

    def min(self, axis: int | None = None, keepdims: bool = False) -> Any:
        """Minimum of array elements (see :meth:`max`)."""
        return self._extremum("min", axis, keepdims)

    def equal(self, other: Operand) -> bool:
        """True if ``other`` has the same shape (no broadcasting) and elements."""
        other = _as_ndarray(other, device=self.device)
        if self.shape != other.shape:
            return False
        if self.size == 0:
            return True
        return bool((self == other).min() == 1)


def array(
    a: Any,
    dtype: Any = None,
    shape: Sequence[int] | None = None,
    device: Device | None = None,
) -> NDArray:
    """Convenience constructor matching ``numpy.array``; always copies."""
    return NDArray(a, dtype=dtype, shape=shape, device=device)
