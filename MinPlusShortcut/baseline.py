import numpy as np

from MinPlusShortcut.matrix import SquareMatrix


def shortcut_baseline(matrix):
    """
    顺序三重循环计算 (min, +) 乘积，作为其他引擎的参照。

    R[i][j] = min_k { M[i][k] + M[k][j] }

    参数:
        matrix (SquareMatrix): 输入方阵，不会被修改

    返回:
        SquareMatrix: 同阶的捷径矩阵 R
    """
    # 转成 Python 列表，避免逐元素访问 ndarray 的开销
    M = matrix.tolist()
    N = len(M)
    R = np.empty((N, N), dtype=matrix.dtype)

    for i in range(N):
        row = M[i]
        for j in range(N):
            min_val = float('inf')
            # 严格小于：相等时保留 k 最小的那个
            for k in range(N):
                z = row[k] + M[k][j]
                if z < min_val:
                    min_val = z
            R[i, j] = min_val

    return SquareMatrix._adopt(R)
