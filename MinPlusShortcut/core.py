import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait

import numpy as np
import torch

import MinPlusShortcut.utils as utils
from MinPlusShortcut.kernels import DEFAULT_BLOCK_SIZE, ROW_KERNELS, compute_rows, min_plus_dense
from MinPlusShortcut.matrix import SquareMatrix

DEFAULT_BACKEND = 'numpy'
BACKENDS = tuple(ROW_KERNELS)


# ============================================================
# 异常与取消令牌
# ============================================================

class NegativeWeightError(ValueError):
    """强制开启 early exit，但输入中存在负数"""


class ComputationCancelled(RuntimeError):
    """计算在完成前被取消"""


class WorkerFailure(RuntimeError):
    """某个 worker 抛出了异常，原始异常见 __cause__"""

    def __init__(self, rows, message):
        super().__init__(f"worker {tuple(rows)} 失败: {message}")
        self.rows = rows


class CancellationToken:
    """
    协作式取消令牌，可挂在父令牌下：父令牌取消后子令牌也视为已取消。
    """

    def __init__(self, parent=None):
        self._event = threading.Event()
        self._parent = parent

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self):
        if self._event.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    def raise_if_cancelled(self):
        if self.cancelled:
            raise ComputationCancelled("计算已取消")


# ============================================================
# 并行引擎
# ============================================================

def resolve_early_exit(matrix, early_exit):
    """
    None  -> 当且仅当所有元素非负时开启
    True  -> 开启，输入有负数时报错
    False -> 关闭，完整扫描
    """
    if early_exit is None:
        return matrix.is_non_negative()
    if early_exit and not matrix.is_non_negative():
        raise NegativeWeightError("early exit 要求所有元素非负，输入中存在负数")
    return bool(early_exit)


def _prepare_operands(matrix, transposed, backend):
    """返回 (源矩阵, 转置, 输出缓冲区, 输出缓冲区的 numpy 视图)"""
    N = matrix.size
    out = np.empty((N, N), dtype=matrix.dtype)
    if backend == 'torch':
        # torch.tensor 会复制只读数组；输出与 numpy 缓冲区共享内存
        return (torch.tensor(matrix.to_numpy()),
                torch.tensor(transposed.to_numpy()),
                torch.from_numpy(out),
                out)
    return matrix.to_numpy(), transposed.to_numpy(), out, out


def shortcut_parallel(matrix, workers=None, early_exit=None, backend=DEFAULT_BACKEND,
                      block_size=DEFAULT_BLOCK_SIZE, cancel_token=None, verbose=False):
    """
    多线程计算 (min, +) 平方。

    参数:
        matrix (SquareMatrix): 输入方阵，不会被修改
        workers (int or None): worker 数，None 时为 CPU 核数
        early_exit (bool or None): 见 resolve_early_exit
        backend (str): 'numpy' 或 'torch'（仅 CPU）
        block_size (int): k 方向分块大小
        cancel_token (CancellationToken): 外部取消令牌
        verbose (bool): 打印划分信息

    返回:
        SquareMatrix: 所有 worker 结束后才构造的结果矩阵

    异常:
        ComputationCancelled: cancel_token 被取消
        WorkerFailure: 某个 worker 失败（其余 worker 已全部 join）
    """
    if backend not in ROW_KERNELS:
        raise ValueError(f"未知的 backend: {backend}，可选 {BACKENDS}")
    if block_size < 1:
        raise ValueError(f"block_size 必须 >= 1，实际为 {block_size}")
    if workers is None:
        workers = utils.hardware_concurrency()

    N = matrix.size
    use_early_exit = resolve_early_exit(matrix, early_exit)

    # 1. 转置与行划分
    transposed = utils.transpose_matrix(matrix)
    ranges = [r for r in utils.partition_rows(N, workers) if r.length > 0]
    source, source_T, out, out_array = _prepare_operands(matrix, transposed, backend)

    if verbose:
        print(f"✓ N={N}, backend={backend}, early_exit={use_early_exit}, "
              f"{len(ranges)} 个 worker: {[tuple(r) for r in ranges]}")

    # 2. 调度：每个 worker 只拿到自己那几行的输出切片
    token = CancellationToken(parent=cancel_token)
    with ThreadPoolExecutor(max_workers=len(ranges),
                            thread_name_prefix='shortcut-worker') as executor:
        futures = [
            executor.submit(compute_rows, rows, source, source_T, out[rows.start:rows.end],
                            use_early_exit, block_size, backend, token)
            for rows in ranges
        ]
        try:
            _, not_done = wait(futures, return_when=FIRST_EXCEPTION)
        except BaseException:
            # 等待被中断：通知所有 worker 停止，退出 with 时仍会 join
            token.cancel()
            raise
        if not_done:
            token.cancel()

    # 3. 此时所有 worker 均已结束；全部正常完成时结果有效，即使之后才收到取消
    failures = [(rows, future.exception()) for rows, future in zip(ranges, futures)
                if future.exception() is not None]
    if failures:
        if cancel_token is not None and cancel_token.cancelled:
            raise ComputationCancelled("计算已取消")
        for rows, exc in failures:
            if not isinstance(exc, ComputationCancelled):
                raise WorkerFailure(rows, repr(exc)) from exc

    out_array.flags.writeable = False
    return SquareMatrix._adopt(out_array)


# ============================================================
# 稠密引擎（带 witness）
# ============================================================

def shortcut_dense(matrix, block_rows=None):
    """
    基于 torch 广播的 (min, +) 平方

    返回:
        (SquareMatrix, np.ndarray): 捷径矩阵与 witness 矩阵
        witness[i, j] 为取得最小值的中间节点 k，不可达时为 -1
    """
    W = torch.tensor(matrix.to_numpy())
    W_T = torch.tensor(utils.transpose_matrix(matrix).to_numpy())
    D, best_k = min_plus_dense(W, W_T, block_rows)
    return SquareMatrix._adopt(D.numpy()), best_k.numpy()
