from typing import Any, Callable

import numpy as np
import pytest

import numstride as ns
from numstride.backend import device as backend_device
from numstride.backend import ndarray as nd

_DEVICES = [backend_device.cpu_numpy()]
_DEVICE_IDS = ["numpy"]


def compare_strides(a_np: np.ndarray, a_nd: nd.NDArray) -> None:
    size = a_np.itemsize
    assert tuple([x // size for x in a_np.strides]) == a_nd.strides


def check_same_memory(original: nd.NDArray, view: nd.NDArray) -> None:
    assert original._handle.ptr() == view._handle.ptr()


def as_float(a: nd.NDArray) -> np.ndarray:
    # object buffers hold Python numbers
    return np.asarray(a.numpy(), dtype=np.float64)


view_params = [
    {
        "shape": (6, 5),
        "np_fn": lambda X: X[::-2, ::3],
        "nd_fn": lambda X: X.step(-2, 3),
    },
    {
        "shape": (7, 8),
        "np_fn": lambda X: X[2:5, 1:4],
        "nd_fn": lambda X: X.lo(2, 1).hi(3, 3),
    },
    {
        "shape": (4, 5, 6),
        "np_fn": lambda X: X[:, 2, :].T,
        "nd_fn": lambda X: X.pick(None, 2).T,
    },
    {
        "shape": (3, 4),
        "np_fn": lambda X: X[:, ::-1],
        "nd_fn": lambda X: ns.flip(X, -1),
    },
    {
        "shape": (3, 4),
        "np_fn": lambda X: np.rot90(X),
        "nd_fn": lambda X: ns.rot90(X),
    },
    {
        "shape": (4, 4),
        "np_fn": lambda X: np.diag(X),
        "nd_fn": lambda X: X.diag(),
    },
    {
        "shape": (5,),
        "np_fn": lambda X: np.broadcast_to(X, (3, 5)),
        "nd_fn": lambda X: X.broadcast_to((3, 5)),
    },
    {
        "shape": (6, 4),
        "np_fn": lambda X: X[::2].reshape(12),
        "nd_fn": lambda X: X.step(2).reshape(12),
    },
    {
        "shape": (2, 3, 4),
        "np_fn": lambda X: X[..., ::-1][1, 1:],
        "nd_fn": lambda X: X[..., ::-1][1, 1:],
    },
]
view_ids = [
    "negative_step",
    "lo_hi",
    "pick_transpose",
    "flip",
    "rot90",
    "diag",
    "broadcast_new_axis",
    "step_reshape",
    "ellipsis_reversed",
]


@pytest.mark.parametrize("dtype", ["float64", "array"])
@pytest.mark.parametrize("params", view_params, ids=view_ids)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_compact(
    params: dict[str, Any], dtype: str, device: backend_device.Device
) -> None:
    shape, np_fn, nd_fn = params["shape"], params["np_fn"], params["nd_fn"]
    _A = np.random.randn(*shape)
    A = nd.array(_A, dtype=dtype, device=device)

    lhs = nd_fn(A).compact()
    assert lhs.is_compact(), "array is not compact"
    assert lhs.dtype == dtype
    np.testing.assert_allclose(as_float(lhs), np_fn(_A), atol=1e-12)


reduce_params = [
    {"dims": (10,), "axis": 0},
    {"dims": (4, 5, 6), "axis": 1},
    {"dims": (4, 5, 6), "axis": -1},
    {"dims": (3, 1, 2), "axis": 1},
]


@pytest.mark.parametrize("dtype", ["int8", "int32", "array"])
@pytest.mark.parametrize("params", reduce_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_reduce_sum_integers(
    params: dict[str, Any], dtype: str, device: backend_device.Device
) -> None:
    dims, axis = params["dims"], params["axis"]
    _A = np.random.randint(-50, 50, size=dims)
    A = nd.array(_A, dtype=dtype, device=device)
    out = A.sum(axis=axis, keepdims=True)
    assert out.dtype == "array"
    np.testing.assert_array_equal(
        np.array(out.tolist()), _A.sum(axis=axis, keepdims=True)
    )
    np.testing.assert_array_equal(
        np.array(A.sum(axis=axis).tolist()), _A.sum(axis=axis)
    )


@pytest.mark.parametrize("dtype", ["float64", "int16", "array"])
@pytest.mark.parametrize("params", reduce_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_reduce_extrema(
    params: dict[str, Any], dtype: str, device: backend_device.Device
) -> None:
    dims, axis = params["dims"], params["axis"]
    _A = np.random.randint(-100, 100, size=dims)
    A = nd.array(_A, dtype=dtype, device=device)
    out = A.max(axis=axis, keepdims=True)
    assert out.dtype == dtype
    np.testing.assert_array_equal(
        np.array(out.tolist()), _A.max(axis=axis, keepdims=True)
    )
    np.testing.assert_array_equal(
        np.array(A.min(axis=axis).tolist()), _A.min(axis=axis)
    )


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_reduce_of_reversed_view(device: backend_device.Device) -> None:
    _A = np.random.randn(4, 6)
    A = nd.array(_A, device=device)
    view = A.step(-1, -2)
    np.testing.assert_allclose(
        view.sum(axis=0).numpy(), _A[::-1, ::-2].sum(axis=0), atol=1e-12
    )
    np.testing.assert_allclose(
        view.max(axis=1).numpy(), _A[::-1, ::-2].max(axis=1)
    )


setitem_params = [
    {
        "lhs_shape": (4, 5, 6),
        "lhs": (slice(1, 3), slice(2, 5), slice(2, 6)),
        "rhs_shape": (7, 7, 7),
        "rhs": (slice(None, 2), slice(None, 3), slice(None, 4)),
    },
    {
        "lhs_shape": (4, 5, 6),
        "lhs": (slice(None, None, -1), 0, slice(None)),
        "rhs_shape": (7, 7, 7),
        "rhs": (slice(0, 4), 2, slice(1, 7)),
    },
    {
        "lhs_shape": (4, 5, 6),
        "lhs": (Ellipsis, 1),
        "rhs_shape": (7, 7, 7),
        "rhs": (slice(6, 2, -1), slice(2, 7), 3),
    },
]


@pytest.mark.parametrize("params", setitem_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_setitem_ewise(params: dict[str, Any], device: backend_device.Device) -> None:
    _A = np.random.randn(*params["lhs_shape"])
    _B = np.random.randn(*params["rhs_shape"])
    A = nd.array(_A, device=device)
    B = nd.array(_B, device=device)
    start_ptr = A._handle.ptr()
    A[params["lhs"]] = B[params["rhs"]]
    _A[params["lhs"]] = _B[params["rhs"]]
    assert A._handle.ptr() == start_ptr, "assignment must be in place"
    compare_strides(_A, A)
    np.testing.assert_allclose(A.numpy(), _A)


@pytest.mark.parametrize(
    "index",
    [
        (1, 2, 3),
        (slice(1, 4), 2, 3),
        (slice(None, None, -2), slice(2, 5), Ellipsis),
        (Ellipsis, slice(None, None, 2)),
    ],
)
@pytest.mark.parametrize("dtype", ["float64", "array"])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_setitem_scalar(
    index: tuple[Any, ...], dtype: str, device: backend_device.Device
) -> None:
    _A = np.random.randn(4, 5, 6)
    A = nd.array(_A, dtype=dtype, device=device)
    start_ptr = A._handle.ptr()
    _A[index] = 4.0
    A[index] = 4.0
    assert A._handle.ptr() == start_ptr, "assignment must be in place"
    np.testing.assert_allclose(as_float(A), _A)


OPS = {
    "multiply": lambda a, b: a * b,
    "divide": lambda a, b: a / b,
    "add": lambda a, b: a + b,
    "subtract": lambda a, b: a - b,
    "mod": lambda a, b: a % b,
    "power": lambda a, b: abs(a) ** b,
}


@pytest.mark.parametrize("fn", list(OPS.values()), ids=list(OPS))
@pytest.mark.parametrize("dtype", ["float64", "array"])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_ewise_fn(
    fn: Callable[[Any, Any], Any], dtype: str, device: backend_device.Device
) -> None:
    _A = np.random.randn(4, 5)
    _B = np.random.randn(4, 5)
    A = nd.array(_A, dtype=dtype, device=device)
    B = nd.array(_B, dtype=dtype, device=device)
    np.testing.assert_allclose(as_float(fn(A, B)), fn(_A, _B), atol=1e-10, rtol=1e-10)
    # strided operands
    np.testing.assert_allclose(
        as_float(fn(A.T, B.step(-1, -1).T)),
        fn(_A.T, _B[::-1, ::-1].T),
        atol=1e-10,
        rtol=1e-10,
    )


COMPARISONS = {
    "equal": lambda a, b: a == b,
    "not_equal": lambda a, b: a != b,
    "less": lambda a, b: a < b,
    "less_equal": lambda a, b: a <= b,
    "greater": lambda a, b: a > b,
    "greater_equal": lambda a, b: a >= b,
}


@pytest.mark.parametrize("fn", list(COMPARISONS.values()), ids=list(COMPARISONS))
@pytest.mark.parametrize("dtype", ["float64", "int16", "array"])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_ewise_compare(
    fn: Callable[[Any, Any], Any], dtype: str, device: backend_device.Device
) -> None:
    _A = np.random.randint(0, 3, size=(4, 5))
    _B = np.random.randint(0, 3, size=(4, 5))
    A = nd.array(_A, dtype=dtype, device=device)
    B = nd.array(_B, dtype=dtype, device=device)
    out = fn(A, B)
    assert out.dtype == "uint8"
    np.testing.assert_array_equal(out.numpy(), fn(_A, _B))
    np.testing.assert_array_equal(fn(A, 1).numpy(), fn(_A, 1))
    np.testing.assert_array_equal(fn(1, A).numpy(), fn(1, _A))


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_ewise_max(device: backend_device.Device) -> None:
    _A = np.random.randn(4, 1, 6)
    _B = np.random.randn(5, 1)
    A = nd.array(_A, device=device)
    B = nd.array(_B, device=device)
    np.testing.assert_allclose(A.maximum(B).numpy(), np.maximum(_A, _B))
    np.testing.assert_allclose(A.minimum(B).numpy(), np.minimum(_A, _B))


transpose_params = [
    {"dims": (4, 5, 6), "axes": (0, 1, 2)},
    {"dims": (4, 5, 6), "axes": (-1, 0, 1)},
    {"dims": (4, 5, 6), "axes": (2, -2, 0)},
]


@pytest.mark.parametrize("params", transpose_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_transpose(device: backend_device.Device, params: dict[str, Any]) -> None:
    dims, axes = params["dims"], params["axes"]
    _A = np.random.randn(*dims)
    A = nd.array(_A, device=device)
    lhs = np.transpose(_A, axes=[a % len(dims) for a in axes])
    rhs = A.transpose(*axes)
    np.testing.assert_allclose(rhs.numpy(), lhs)
    compare_strides(lhs, rhs)
    check_same_memory(A, rhs)


reshape_params = [
    {"shape": (8, 16), "view": lambda X: X, "new_shape": (2, 4, 16)},
    {"shape": (8, 16), "view": lambda X: X, "new_shape": (-1, 32)},
    {"shape": (6, 8), "view": lambda X: X[:, :4], "new_shape": (6, 2, 2)},
    {"shape": (4, 6), "view": lambda X: X.T, "new_shape": (3, 2, 4)},
    {"shape": (8, 4), "view": lambda X: X[::2], "new_shape": (2, 2, 4)},
]


@pytest.mark.parametrize("params", reshape_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_reshape_without_copy(
    device: backend_device.Device, params: dict[str, Any]
) -> None:
    view, new_shape = params["view"], params["new_shape"]
    _A = np.random.randn(*params["shape"])
    A = nd.array(_A, device=device)
    lhs = view(_A).reshape(*new_shape)
    rhs = view(A).reshape(new_shape)
    np.testing.assert_allclose(rhs.numpy(), lhs)
    compare_strides(lhs, rhs)
    check_same_memory(A, rhs)


getitem_params = [
    {"fn": lambda X: X[::-1, 1]},
    {"fn": lambda X: X[..., 2:]},
    {"fn": lambda X: X[-2:, ::-2]},
    {"fn": lambda X: X[1, ::-1]},
    {"fn": lambda X: X[3:0:-1, 4]},
    {"fn": lambda X: X[:, -1]},
]


@pytest.mark.parametrize("params", getitem_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_getitem(device: backend_device.Device, params: dict[str, Any]) -> None:
    fn = params["fn"]
    _A = np.random.randn(5, 5)
    A = nd.array(_A, device=device)
    lhs = fn(_A)
    rhs = fn(A)
    np.testing.assert_allclose(rhs.numpy(), lhs)
    compare_strides(lhs, rhs)
    check_same_memory(A, rhs)


broadcast_params = [
    {"from_shape": (1, 3, 4), "to_shape": (6, 3, 4)},
    {"from_shape": (3, 1), "to_shape": (2, 3, 4)},
    {"from_shape": (1,), "to_shape": (5,)},
]


@pytest.mark.parametrize("params", broadcast_params)
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_broadcast_to(device: backend_device.Device, params: dict[str, Any]) -> None:
    from_shape, to_shape = params["from_shape"], params["to_shape"]
    _A = np.random.randn(*from_shape)
    A = nd.array(_A, device=device)
    lhs = np.broadcast_to(_A, shape=to_shape)
    rhs = A.broadcast_to(to_shape)
    np.testing.assert_allclose(rhs.numpy(), lhs)
    compare_strides(lhs, rhs)
    check_same_memory(A, rhs)


@pytest.mark.parametrize("dtype", ["float64", "int32", "array"])
@pytest.mark.parametrize("m,n,p", [(1, 2, 3), (3, 4, 5), (8, 8, 8), (17, 9, 4)])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_matmul(
    m: int, n: int, p: int, dtype: str, device: backend_device.Device
) -> None:
    _A = np.random.randint(-5, 5, size=(m, n))
    _B = np.random.randint(-5, 5, size=(n, p))
    A = nd.array(_A, dtype=dtype, device=device)
    B = nd.array(_B, dtype=dtype, device=device)
    out = A @ B
    assert out.dtype == dtype
    np.testing.assert_array_equal(np.array(out.tolist()), _A @ _B)


SCALAR_OPS = {
    "mul": lambda X: X * 5.0,
    "rmul": lambda X: 5.0 * X,
    "div": lambda X: X / 5.0,
    "rdiv": lambda X: 5.0 / X,
    "sub": lambda X: X - 2.0,
    "rsub": lambda X: 2.0 - X,
    "pow": lambda X: X**3.0,
    "fractional_pow": lambda X: X**0.5,
    "rpow": lambda X: 2.0**X,
    "mod": lambda X: X % 1.5,
    "rmod": lambda X: 1.5 % X,
}


@pytest.mark.parametrize("fn", list(SCALAR_OPS.values()), ids=list(SCALAR_OPS))
@pytest.mark.parametrize("dtype", ["float64", "array"])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_scalar_ops(
    fn: Callable[[Any], Any], dtype: str, device: backend_device.Device
) -> None:
    _A = np.random.randn(5, 5)
    A = nd.array(_A, dtype=dtype, device=device)
    with np.errstate(invalid="ignore"):
        expected = fn(_A)
    np.testing.assert_allclose(as_float(fn(A)), expected, atol=1e-10, rtol=1e-10)


@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_scalar_maximum(device: backend_device.Device) -> None:
    _A = np.random.randn(5, 5)
    A = nd.array(_A, device=device)
    C = float(np.median(_A))
    np.testing.assert_allclose(A.maximum(C).numpy(), np.maximum(_A, C))
    np.testing.assert_allclose(A.minimum(C).numpy(), np.minimum(_A, C))
    np.testing.assert_array_equal((A == _A[0, 1].item()).numpy(), _A == _A[0, 1])
    np.testing.assert_array_equal((A >= C).numpy(), _A >= C)


UNARY = {
    "exp": (np.exp, lambda X: X.exp()),
    "tanh": (np.tanh, lambda X: X.tanh()),
    "sin": (np.sin, lambda X: X.sin()),
    "cos": (np.cos, lambda X: X.cos()),
    "tan": (np.tan, lambda X: X.tan()),
    "arctan": (np.arctan, lambda X: X.arctan()),
    "negative": (np.negative, lambda X: -X),
    "abs": (np.abs, lambda X: abs(X)),
    "round": (lambda X: np.floor(X + 0.5), lambda X: X.round()),
}


@pytest.mark.parametrize("fns", list(UNARY.values()), ids=list(UNARY))
@pytest.mark.parametrize("dtype", ["float64", "array"])
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_ewise_unary(
    fns: tuple[Callable, Callable], dtype: str, device: backend_device.Device
) -> None:
    np_fn, nd_fn = fns
    _A = np.random.randn(5, 5)
    A = nd.array(_A, dtype=dtype, device=device)
    out = nd_fn(A.T)
    assert out.dtype == dtype
    np.testing.assert_allclose(as_float(out), np_fn(_A.T), atol=1e-12)


DOMAIN_UNARY = {
    "log": (np.log, lambda X: X.log(), lambda A: np.abs(A) + 0.1),
    "sqrt": (np.sqrt, lambda X: X.sqrt(), lambda A: np.abs(A)),
    "arcsin": (np.arcsin, lambda X: X.arcsin(), np.tanh),
    "arccos": (np.arccos, lambda X: X.arccos(), np.tanh),
}


@pytest.mark.parametrize("fns", list(DOMAIN_UNARY.values()), ids=list(DOMAIN_UNARY))
@pytest.mark.parametrize("device", _DEVICES, ids=_DEVICE_IDS)
def test_ewise_unary_domain(
    fns: tuple[Callable, Callable, Callable], device: backend_device.Device
) -> None:
    np_fn, nd_fn, domain = fns
    _A = domain(np.random.randn(5, 5))
    A = nd.array(_A, device=device)
    np.testing.assert_allclose(nd_fn(A).numpy(), np_fn(_A), atol=1e-12)
    # integer input is promoted
    ints = nd.array([1, 0], dtype="int8", device=device)
    assert nd_fn(ints).dtype == "float64"
