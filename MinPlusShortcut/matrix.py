from typing import NamedTuple

import numpy as np
from scipy import sparse


class ShapeMismatchError(ValueError):
    """输入数据不是 n×n (n >= 1) 的方阵"""


class EntryLookup(NamedTuple):
    """lookup 的返回值：valid 为 False 表示下标越界，此时 value 无意义"""
    valid: bool
    value: float


# 越界访问时 get_entry 返回的哨兵值
OUT_OF_RANGE_SENTINEL = -1.0


class SquareMatrix:
    """
    只读的 n×n 浮点方阵。

    构造时总是复制并冻结底层 numpy 数组，之后任何引擎都不会修改它。
    +inf 表示两节点之间没有边；NaN 不允许出现。
    """

    __hash__ = None

    def __init__(self, data, dtype=np.float64):
        """
        参数:
            data: 嵌套序列或 np.ndarray，形状必须为 (n, n)
            dtype: 浮点存储精度
        """
        if not np.issubdtype(np.dtype(dtype), np.floating):
            raise ValueError(f"dtype 必须是浮点类型，实际为 {np.dtype(dtype)}")
        if isinstance(data, np.ndarray):
            array = np.array(data, dtype=dtype, copy=True)
        else:
            try:
                rows = [list(row) for row in data]
            except TypeError as exc:
                raise ShapeMismatchError("需要二维嵌套序列") from exc
            if len(rows) == 0:
                raise ShapeMismatchError("矩阵不能为空")
            for idx, row in enumerate(rows):
                if len(row) != len(rows):
                    raise ShapeMismatchError(
                        f"第 {idx} 行有 {len(row)} 个元素，期望 {len(rows)} 个")
            array = np.array(rows, dtype=dtype)

        self._data = self._freeze(array)

    @staticmethod
    def _freeze(array):
        if array.ndim != 2 or array.shape[0] != array.shape[1] or array.shape[0] == 0:
            raise ShapeMismatchError(f"需要 n×n 方阵 (n >= 1)，实际形状 {array.shape}")
        if np.isnan(array).any():
            raise ValueError("矩阵中存在 NaN")
        array.flags.writeable = False
        return array

    @classmethod
    def _adopt(cls, array):
        """
        不复制地接管包内新分配的浮点数组（生成器、转置、引擎结果缓冲区）。
        调用方之后不得再持有可写引用。
        """
        if not np.issubdtype(array.dtype, np.floating):
            raise ValueError(f"dtype 必须是浮点类型，实际为 {array.dtype}")
        matrix = cls.__new__(cls)
        matrix._data = cls._freeze(array)
        return matrix

    # ============================================================
    # 构造方法
    # ============================================================

    @classmethod
    def random(cls, size, seed=None):
        """随机方阵：非对角元素取自 [0.0, 1.0)，对角线为 0"""
        import MinPlusShortcut.utils as utils
        return utils.create_random_matrix(size, seed)

    @classmethod
    def from_sparse(cls, graph, dtype=np.float64):
        """
        从 scipy 稀疏邻接矩阵构造距离矩阵。

        参数:
            graph: scipy.sparse 矩阵，graph[i, j] 为 i->j 的边权
        返回:
            SquareMatrix: 未存储的位置为 +inf，对角线为 0
        """
        coo = sparse.coo_matrix(graph)
        n, m = coo.shape
        if n != m or n == 0:
            raise ShapeMismatchError(f"需要 n×n 方阵 (n >= 1)，实际形状 {coo.shape}")
        dense = np.full((n, n), np.inf, dtype=dtype)
        dense[coo.row, coo.col] = coo.data
        np.fill_diagonal(dense, 0)
        return cls._adopt(dense)

    # ============================================================
    # 访问接口
    # ============================================================

    @property
    def size(self):
        return self._data.shape[0]

    def __len__(self):
        return self.size

    @property
    def dtype(self):
        return self._data.dtype

    def get_entry(self, i, j):
        """返回 matrix[i][j]；任一下标越界时返回 -1（与合法的 -1 无法区分，新代码请用 lookup）"""
        found = self.lookup(i, j)
        return found.value if found.valid else OUT_OF_RANGE_SENTINEL

    def lookup(self, i, j):
        n = self.size
        if 0 <= i < n and 0 <= j < n:
            return EntryLookup(True, float(self._data[i, j]))
        return EntryLookup(False, OUT_OF_RANGE_SENTINEL)

    def to_numpy(self):
        """只读视图，不复制"""
        return self._data

    def tolist(self):
        return self._data.tolist()

    def transpose(self):
        import MinPlusShortcut.utils as utils
        return utils.transpose_matrix(self)

    def is_non_negative(self):
        return bool((self._data >= 0).all())

    # ============================================================
    # 比较
    # ============================================================

    def __eq__(self, other):
        if other is self:
            return True
        if not isinstance(other, SquareMatrix):
            return NotImplemented
        return self.size == other.size and bool(np.array_equal(self._data, other._data))

    def equals(self, other):
        return self.__eq__(other) is True

    def allclose(self, other, rtol=1e-9, atol=1e-12):
        """考虑浮点误差的比较，inf 与 inf 视为相等"""
        if self.size != other.size:
            return False
        return bool(np.allclose(self._data, other._data, rtol=rtol, atol=atol))

    def __repr__(self):
        return f"SquareMatrix(size={self.size}, dtype={self.dtype})"

    # ============================================================
    # 引擎入口
    # ============================================================

    def shortcut_baseline(self):
        from MinPlusShortcut.baseline import shortcut_baseline
        return shortcut_baseline(self)

    def shortcut_parallel(self, **options):
        from MinPlusShortcut.core import shortcut_parallel
        return shortcut_parallel(self, **options)
