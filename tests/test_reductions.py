import math

import numpy as np
import pytest

import numstride as ns


def test_sum_zeros() -> None:
    assert ns.sum(ns.zeros((3, 3))) == 0


def test_sum_exact_integers() -> None:
    A = ns.array([100, 100, 100], dtype="int8")
    assert A.sum() == 300
    big = ns.array([2**62, 2**62, 2**62])
    assert big.sum() == 3 * 2**62


def test_mean() -> None:
    assert ns.mean([1, 2, 3, 4]) == 2.5
    assert math.isnan(ns.mean(ns.zeros(0)))


def test_mean_axis() -> None:
    _A = np.arange(12, dtype=np.float64).reshape(3, 4)
    A = ns.array(_A)
    np.testing.assert_allclose(A.mean(axis=0).numpy(), _A.mean(axis=0))
    np.testing.assert_allclose(
        A.mean(axis=1, keepdims=True).numpy(), _A.mean(axis=1, keepdims=True)
    )


def test_std() -> None:
    assert math.isclose(ns.std([2, 4, 4, 4, 5, 5, 7, 9]), 2.0)
    _A = np.random.randn(4, 5)
    assert math.isclose(ns.std(_A), _A.std())
    assert math.isclose(ns.std(_A, ddof=1), _A.std(ddof=1))


def test_std_degenerate() -> None:
    assert math.isnan(ns.std([3.0], ddof=1))
    assert ns.std([1.0, 3.0], ddof=2) == math.inf


def test_min_max() -> None:
    A = ns.array([[3, -1], [7, 2]])
    assert ns.max(A) == 7
    assert ns.min(A) == -1
    assert A.max(axis=0).tolist() == [7, 2]
    assert A.min(axis=1).tolist() == [-1, 2]


def test_min_max_empty() -> None:
    with pytest.raises(ValueError):
        ns.max(ns.zeros(0))
    with pytest.raises(ValueError):
        ns.min(ns.zeros((2, 0)), axis=1)
    assert ns.zeros((0, 3)).max(axis=1).shape == (0,)


def test_reduction_of_views() -> None:
    _A = np.arange(20, dtype=np.float64).reshape(4, 5)
    A = ns.array(_A)
    assert A.T[1:3].sum() == _A.T[1:3].sum()
    assert ns.flip(A, 1).max(axis=1).tolist() == _A.max(axis=1).tolist()
    assert A.step(2, -2).min() == _A[::2, ::-2].min()


def test_axis_out_of_range() -> None:
    with pytest.raises(ValueError):
        ns.zeros((2, 2)).sum(axis=2)


def test_equal() -> None:
    A = ns.array([[1, 2], [3, 4]])
    assert ns.equal(A, [[1, 2], [3, 4]])
    assert not ns.equal(A, [[1, 2], [3, 5]])
    # no broadcasting
    assert not ns.equal(ns.ones((2, 2)), ns.ones(2))
    assert ns.equal(A.T.T, A.clone())
    assert ns.equal(ns.zeros(0), ns.zeros(0))
