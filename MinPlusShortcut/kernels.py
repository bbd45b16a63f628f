import numpy as np
import torch

# k 方向每次向量化扫描的列数；early exit 在块边界生效，block_size=1 时逐个 k 检查
DEFAULT_BLOCK_SIZE = 128

# 稠密方法一次生成的 (B, N, N) 路径张量的元素上限，约 128MB (float64)
DENSE_BLOCK_ELEMENTS = 1 << 24


# ============================================================
# 方法1：逐行分块扫描（worker 使用）
# ============================================================

def min_plus_row_numpy(row, transposed, out_row, early_exit, block_size):
    """
    计算一行: out_row[j] = min_k { row[k] + transposed[j, k] }

    k 方向按 block_size 分块。early_exit 时每块结束后剔除已经
    取到 0 的列，这些 (i, j) 不再继续扫描；所有列都到 0 时直接结束。
    前提：所有元素非负，0 是任何路径和的下界。
    """
    N = row.shape[0]
    best = np.full(N, np.inf, dtype=out_row.dtype)
    active = np.arange(N)

    for k_start in range(0, N, block_size):
        k_end = min(k_start + block_size, N)

        # [j, k] = row[k] + transposed[j, k]，两个操作数都按行读取
        with np.errstate(invalid='ignore'):
            path_costs = row[np.newaxis, k_start:k_end] + transposed[active, k_start:k_end]
        # -inf + inf 为 NaN，按无效路径处理（与逐个比较的基线一致）
        path_costs[np.isnan(path_costs)] = np.inf
        best[active] = np.minimum(best[active], path_costs.min(axis=1))

        if early_exit:
            active = active[best[active] != 0]
            if active.size == 0:
                break

    out_row[:] = best


def min_plus_row_torch(row, transposed, out_row, early_exit, block_size):
    """min_plus_row_numpy 的 torch (CPU) 版本，语义相同"""
    N = row.shape[0]
    best = torch.full((N,), float('inf'), dtype=out_row.dtype)
    active = torch.arange(N)

    for k_start in range(0, N, block_size):
        k_end = min(k_start + block_size, N)

        path_costs = row[k_start:k_end].unsqueeze(0) + transposed[active, k_start:k_end]
        path_costs.masked_fill_(torch.isnan(path_costs), float('inf'))
        best[active] = torch.minimum(best[active], path_costs.min(dim=1).values)

        if early_exit:
            active = active[best[active] != 0]
            if active.numel() == 0:
                break

    out_row.copy_(best)


ROW_KERNELS = {
    'numpy': min_plus_row_numpy,
    'torch': min_plus_row_torch,
}


def compute_rows(rows, matrix, transposed, out, early_exit=True,
                 block_size=DEFAULT_BLOCK_SIZE, backend='numpy', token=None):
    """
    worker：计算 rows 区间内每一行的 (min, +) 结果。

    参数:
        rows (RowRange): 分配给该 worker 的半开行区间
        matrix: 源矩阵数组 (N, N)，只读
        transposed: 源矩阵的转置 (N, N)，只读
        out: 只属于该 worker 的输出切片 (rows.length, N)，
             out[i - rows.start] 对应结果的第 i 行
        early_exit (bool): 取到 0 时提前结束扫描，要求输入非负
        block_size (int): k 方向分块大小，为 1 时每个 k 之后都检查是否已到 0
        backend (str): 'numpy' 或 'torch'
        token: 取消令牌，每行开始前检查

    返回:
        int: 实际计算的行数
    """
    kernel = ROW_KERNELS[backend]
    if out.shape[0] != rows.length:
        raise ValueError(f"输出切片有 {out.shape[0]} 行，区间 {rows} 需要 {rows.length} 行")

    for i in rows.rows():
        if token is not None:
            token.raise_if_cancelled()
        kernel(matrix[i], transposed, out[i - rows.start], early_exit, block_size)

    return rows.length


# ============================================================
# 方法2：稠密张量方法（同时返回 witness）
# ============================================================

def min_plus_dense(W, W_T=None, block_rows=None):
    """
    稠密版本的 (min, +) 平方，同时给出 witness 矩阵

    参数:
        W: torch.Tensor, shape (N, N)
        W_T: torch.Tensor, W 的转置（C 连续），None 时现场计算
        block_rows: int, 每次处理的行数，None 时按 DENSE_BLOCK_ELEMENTS 推算

    返回:
        D_new: torch.Tensor (N, N), D_new[i, j] = min_k { W[i, k] + W[k, j] }
        best_k: torch.Tensor (N, N), 取得最小值的 k；结果为 inf 时为 -1
    """
    N = W.shape[0]
    if W_T is None:
        W_T = W.T.contiguous()
    if block_rows is None:
        block_rows = max(1, DENSE_BLOCK_ELEMENTS // (N * N))

    D_new = torch.empty((N, N), dtype=W.dtype)
    best_k = torch.empty((N, N), dtype=torch.long)

    for row_start in range(0, N, block_rows):
        row_end = min(row_start + block_rows, N)

        # W[rows].unsqueeze(1): (B, 1, N) - 对应 W[i, k]
        # W_T.unsqueeze(0):     (1, N, N) - 对应 W_T[j, k] = W[k, j]
        # 相加结果: (B, N, N) - [i, j, k]
        path_costs = W[row_start:row_end].unsqueeze(1) + W_T.unsqueeze(0)
        path_costs.masked_fill_(torch.isnan(path_costs), float('inf'))

        # 沿着 k 维度(dim=2)取最小值
        values, indices = torch.min(path_costs, dim=2)
        D_new[row_start:row_end] = values
        best_k[row_start:row_end] = indices

    best_k[torch.isposinf(D_new)] = -1
    return D_new, best_k
