import numpy as np
import pytest

from paramlt.views import StridedView, column_major_strides


def test_column_major_strides():
    assert column_major_strides((2, 3, 4)) == (1, 2, 6)
    assert column_major_strides(()) == ()


def test_of_wraps_array_without_copy():
    base = np.arange(12.0).reshape(3, 4)
    view = StridedView.of(base)
    assert view.shape == (3, 4)
    assert view.strides == (4, 1)
    arr = view.array()
    np.testing.assert_array_equal(arr, base)
    assert np.shares_memory(arr, base)


def test_reshape_aliases_base_storage():
    base = np.arange(12.0)
    view = StridedView.of(base).reshape((3, 4))
    np.testing.assert_array_equal(view.array(), base.reshape((3, 4), order="F"))
    view.array()[0, 1] = -1.0
    assert base[3] == -1.0


def test_offset_views():
    base = np.arange(10.0)
    view = StridedView(base, (2,), (1,), offset=5)
    np.testing.assert_array_equal(view.array(), [5.0, 6.0])
    inner = view.reshape((1,), (1,), offset=1)
    assert inner.offset == 6
    np.testing.assert_array_equal(inner.array(), [6.0])


def test_view_outside_base_extent_raises():
    base = np.arange(12.0)
    with pytest.raises(ValueError, match="outside base extent"):
        StridedView(base, (4, 4), (1, 4))
    with pytest.raises(ValueError, match="outside base extent"):
        StridedView(base, (3,), (1,), offset=10)
    with pytest.raises(ValueError, match="same length"):
        StridedView(base, (3, 4), (1,))


def test_empty_views_skip_extent_check():
    base = np.arange(4.0)
    assert StridedView(base, (0, 10), (1, 1)).array().shape == (0, 10)


def test_negative_stride_base():
    base = np.arange(6.0)[::-1]
    view = StridedView.of(base)
    assert view.strides == (-1,)
    np.testing.assert_array_equal(view.array(), base)
    np.testing.assert_array_equal(
        view.reshape((2,), (-1,), offset=-4).array(), [1.0, 0.0]
    )


def test_lmul_transpose_and_rmul_update_in_place():
    rng = np.random.default_rng(0)
    L = np.tril(rng.standard_normal((2, 2)))
    M = rng.standard_normal((2, 5))
    expected = L.T @ M
    StridedView.of(M).lmul_transpose(L)
    assert np.allclose(M, expected)

    N = rng.standard_normal((4, 2))
    expected = N @ L
    StridedView.of(N).rmul(L)
    assert np.allclose(N, expected)
