import numpy as np
import pytest

from MinPlusShortcut.matrix import SquareMatrix


def reference_shortcut(data):
    """numpy 广播求 (min, +) 平方: [i, k, j] = A[i, k] + A[k, j]"""
    A = np.asarray(data, dtype=np.float64)
    return np.min(A[:, :, np.newaxis] + A[np.newaxis, :, :], axis=1)


@pytest.fixture
def reference():
    return reference_shortcut


@pytest.fixture
def triangle():
    """直连 0->1 代价为 5，经过节点 2 只需 2"""
    return SquareMatrix([[0, 5, 1], [5, 0, 1], [1, 1, 0]])


@pytest.fixture
def triangle_shortcut():
    return SquareMatrix([[0, 2, 1], [2, 0, 1], [1, 1, 0]])


@pytest.fixture
def random_matrix():
    rng = np.random.default_rng(7)
    return SquareMatrix(rng.random((23, 23)))
