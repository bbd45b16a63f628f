"""
SquareMatrix 测试：构造校验、只读、访问接口、比较
"""

import numpy as np
import pytest
from scipy.sparse import csr_matrix

from MinPlusShortcut.matrix import (
    OUT_OF_RANGE_SENTINEL,
    EntryLookup,
    ShapeMismatchError,
    SquareMatrix,
)


class TestConstruction:
    """构造与形状校验"""

    def test_from_nested_lists(self):
        m = SquareMatrix([[1, 2], [3, 4]])
        assert m.size == 2
        assert len(m) == 2
        assert m.dtype == np.float64
        assert m.tolist() == [[1.0, 2.0], [3.0, 4.0]]

    def test_from_ndarray_copies_input(self):
        data = np.array([[0.0, 1.0], [2.0, 0.0]])
        m = SquareMatrix(data)
        data[0, 1] = 99.0
        assert m.get_entry(0, 1) == 1.0

    def test_single_entry(self):
        assert SquareMatrix([[5.0]]).size == 1

    @pytest.mark.parametrize("data", [
        [[1, 2], [3]],
        [[1, 2, 3], [4, 5, 6]],
        [],
        np.zeros((2, 3)),
        np.zeros(3),
        np.zeros((0, 0)),
        [1, 2],
    ])
    def test_non_square_rejected(self, data):
        """非方阵在构造时立即报错"""
        with pytest.raises(ShapeMismatchError):
            SquareMatrix(data)

    def test_shape_error_is_value_error(self):
        with pytest.raises(ValueError):
            SquareMatrix([[1, 2]])

    def test_nan_rejected(self):
        with pytest.raises(ValueError, match="NaN"):
            SquareMatrix([[0, float('nan')], [1, 0]])

    def test_inf_allowed(self):
        m = SquareMatrix([[0, np.inf], [1, 0]])
        assert m.get_entry(0, 1) == np.inf

    def test_integer_ndarray_converted(self):
        """整数数组按 dtype 复制为浮点，调用方的数组保持可写"""
        data = np.array([[0, 1], [1, 0]])
        m = SquareMatrix(data)
        assert m.dtype == np.float64
        assert data.flags.writeable
        assert m.shortcut_parallel(workers=2) == SquareMatrix([[0, 1], [1, 0]])

    def test_integer_dtype_rejected(self):
        with pytest.raises(ValueError, match="dtype"):
            SquareMatrix([[0, 1], [1, 0]], dtype=np.int64)

    def test_no_copy_argument(self):
        with pytest.raises(TypeError):
            SquareMatrix(np.zeros((2, 2)), copy=False)

    def test_float32_storage(self):
        m = SquareMatrix([[0, 1], [1, 0]], dtype=np.float32)
        assert m.dtype == np.float32


class TestReadOnly:
    """构造之后不可修改"""

    def test_backing_array_not_writeable(self):
        m = SquareMatrix([[0, 1], [1, 0]])
        with pytest.raises(ValueError):
            m.to_numpy()[0, 0] = 3.0

    def test_not_hashable(self):
        with pytest.raises(TypeError):
            hash(SquareMatrix([[0.0]]))


class TestEntryAccess:
    """get_entry 哨兵值与 lookup 显式结果"""

    def test_in_range_entries(self):
        m = SquareMatrix([[1, 2], [3, 4]])
        assert m.get_entry(0, 0) == 1.0
        assert m.get_entry(0, 1) == 2.0
        assert m.get_entry(1, 0) == 3.0
        assert m.get_entry(1, 1) == 4.0

    @pytest.mark.parametrize("i, j", [(-1, 0), (0, -1), (2, 0), (0, 2), (5, 5), (-3, -3)])
    def test_out_of_range_returns_sentinel(self, i, j):
        m = SquareMatrix([[1, 2], [3, 4]])
        assert m.get_entry(i, j) == -1
        assert OUT_OF_RANGE_SENTINEL == -1

    def test_lookup_distinguishes_real_minus_one(self):
        """合法的 -1 与越界在 lookup 中可以区分"""
        m = SquareMatrix([[-1, 0], [0, 0]])
        assert m.get_entry(0, 0) == m.get_entry(9, 9) == -1
        assert m.lookup(0, 0) == EntryLookup(True, -1.0)
        assert m.lookup(9, 9).valid is False

    def test_lookup_value_is_python_float(self):
        found = SquareMatrix([[2.5]]).lookup(0, 0)
        assert found.valid
        assert isinstance(found.value, float)


class TestEquality:
    """相等比较"""

    def test_equal_matrices(self):
        assert SquareMatrix([[0, 1], [2, 0]]) == SquareMatrix(np.array([[0, 1], [2, 0]]))
        assert SquareMatrix([[0, 1], [2, 0]]).equals(SquareMatrix([[0, 1], [2, 0]]))

    def test_same_object(self):
        m = SquareMatrix([[0.0]])
        assert m == m

    def test_different_entry(self):
        assert SquareMatrix([[0, 1], [2, 0]]) != SquareMatrix([[0, 1], [2.5, 0]])

    def test_different_size(self):
        assert not SquareMatrix([[0.0]]).equals(SquareMatrix([[0, 0], [0, 0]]))

    def test_other_types(self):
        m = SquareMatrix([[0.0]])
        assert m != [[0.0]]
        assert not m.equals("matrix")

    def test_allclose_tolerates_rounding(self):
        a = SquareMatrix([[0.1 + 0.2, np.inf], [1, 0]])
        b = SquareMatrix([[0.3, np.inf], [1, 0]])
        assert a != b
        assert a.allclose(b)
        assert not a.allclose(SquareMatrix([[0.0]]))


class TestFactories:
    """random / from_sparse"""

    def test_random_diagonal_zero_and_range(self):
        m = SquareMatrix.random(12, seed=3)
        data = m.to_numpy()
        assert m.size == 12
        assert np.all(np.diag(data) == 0)
        off = data[~np.eye(12, dtype=bool)]
        assert np.all((off >= 0.0) & (off < 1.0))

    def test_random_reproducible(self):
        assert SquareMatrix.random(8, seed=1) == SquareMatrix.random(8, seed=1)

    def test_from_sparse(self):
        graph = csr_matrix(np.array([[0.0, 2.0, 0.0], [0.0, 0.0, 3.0], [4.0, 0.0, 0.0]]))
        m = SquareMatrix.from_sparse(graph)
        assert m.tolist() == [[0.0, 2.0, np.inf], [np.inf, 0.0, 3.0], [4.0, np.inf, 0.0]]

    def test_from_sparse_rejects_rectangular(self):
        with pytest.raises(ShapeMismatchError):
            SquareMatrix.from_sparse(csr_matrix(np.ones((2, 3))))

    def test_transpose_method(self):
        m = SquareMatrix([[1, 2], [3, 4]])
        assert m.transpose() == SquareMatrix([[1, 3], [2, 4]])
