import os
from typing import NamedTuple

import numpy as np
from scipy.sparse import csr_matrix

from MinPlusShortcut.matrix import SquareMatrix


# ============================================================
# 1. 矩阵生成
# ============================================================

def create_random_matrix(N, seed=None):
    """
    随机方阵：非对角元素服从 [0.0, 1.0) 均匀分布，对角线为 0。

    参数:
        N (int): 矩阵阶数
        seed (int, optional): 随机数种子
    """
    if N < 1:
        raise ValueError(f"矩阵阶数必须 >= 1，实际为 {N}")
    rng = np.random.default_rng(seed)
    data = rng.random((N, N))
    np.fill_diagonal(data, 0)
    return SquareMatrix._adopt(data)


def create_base_network(N, k, seed=None):
    """
    创建基于k-近邻的有向图，并返回其距离矩阵。

    参数:
        N (int): 节点数量
        k (int): 每个节点的出度（向外连接的邻居数量）
        seed (int, optional): 随机数种子

    返回:
        SquareMatrix: N×N 距离矩阵，无边处为 inf，对角线为 0
    """
    if not 0 <= k < N:
        raise ValueError(f"出度 k={k} 必须满足 0 <= k < N={N}")
    rng = np.random.default_rng(seed)

    # 生成节点坐标
    node_list = rng.random((N, 2))

    rows, cols, costs = [], [], []
    for i in range(N):
        distance = np.linalg.norm(node_list[i] - node_list, axis=1)

        # 找到k个最近邻居（排除自己）
        neighbors = np.argsort(distance)[1:(k+1)]

        # 边权服从对数均匀分布 [0.5, 5]
        weights = np.exp(rng.random(k) * (np.log(5) - np.log(0.5)) + np.log(0.5))

        rows.extend([i] * k)
        cols.extend(neighbors.tolist())
        costs.extend(weights.tolist())

    graph = csr_matrix((costs, (rows, cols)), shape=(N, N))
    return SquareMatrix.from_sparse(graph)


# ============================================================
# 2. 转置
# ============================================================

def transpose_matrix(matrix):
    """
    返回转置副本，entry(j, i) = matrix(i, j)。

    副本是 C 连续的，因此原矩阵的第 j 列在转置中是连续的一行，
    内层循环可以按行顺序同时扫描两个操作数。
    """
    return SquareMatrix._adopt(np.ascontiguousarray(matrix.to_numpy().T))


# ============================================================
# 3. 行划分
# ============================================================

class RowRange(NamedTuple):
    """半开区间 [start, end)"""
    start: int
    end: int

    @property
    def length(self):
        return self.end - self.start

    def rows(self):
        return range(self.start, self.end)


def hardware_concurrency():
    """可用的 CPU 核数（至少为 1）"""
    if hasattr(os, "sched_getaffinity"):
        return max(1, len(os.sched_getaffinity(0)))
    return max(1, os.cpu_count() or 1)


def partition_rows(n, worker_count):
    """
    把 [0, n) 划分为 worker_count 个连续区间。

    前 n % worker_count 个区间长度为 n // worker_count + 1，其余为
    n // worker_count，任意两个区间的长度最多相差 1。
    worker_count > n 时末尾的区间为空。

    返回:
        list[RowRange]: 长度恰好为 worker_count
    """
    if n < 0:
        raise ValueError(f"行数不能为负: {n}")
    if worker_count < 1:
        raise ValueError(f"worker 数必须 >= 1，实际为 {worker_count}")

    base, remainder = divmod(n, worker_count)
    ranges = []
    start = 0
    for idx in range(worker_count):
        length = base + 1 if idx < remainder else base
        ranges.append(RowRange(start, start + length))
        start += length
    return ranges


# ============================================================
# 4. 两跳路径重建
# ============================================================

def reconstruct_hop(witness, src, dst):
    """
    根据 witness 矩阵重建 src 到 dst 的最短两跳路径

    参数:
        witness: np.ndarray, witness[i, j] 为取得最小值的中间节点 k
        src, dst: int

    返回:
        list: [src, k, dst]；k 等于端点时退化为 [src, dst]（src == dst 时为 [src]）
    """
    k = int(witness[src, dst])
    if k < 0:
        return None
    path = [src]
    if k != src and k != dst:
        path.append(k)
    if dst != src:
        path.append(dst)
    return path
