"""
数值计算工具。

提供 2 的幂判断、按行分块、周期性前向差分等功能。
"""

from typing import List

import numpy as np


def is_power_of_two(n: int) -> bool:
    """判断 n 是否为正的 2 的幂。"""
    return n > 0 and (n & (n - 1)) == 0


def row_blocks(n_rows: int, n_blocks: int) -> List[slice]:
    """
    将 n_rows 行划分为至多 n_blocks 个连续块。

    Args:
        n_rows: 总行数
        n_blocks: 期望的块数（通常等于工作线程数）

    Returns:
        行切片列表，按顺序覆盖 [0, n_rows)
    """
    n_blocks = max(1, min(n_blocks, n_rows))
    bounds = np.linspace(0, n_rows, n_blocks + 1).astype(int)
    return [
        slice(int(start), int(stop))
        for start, stop in zip(bounds[:-1], bounds[1:])
        if stop > start
    ]


def forward_difference(field: np.ndarray, axis: int) -> np.ndarray:
    """
    周期性前向差分：f[i+1] - f[i]，边界处 N-1 的下一个是 0。

    axis=1 为 x 方向（列），axis=0 为 z 方向（行）。
    """
    return np.roll(field, -1, axis=axis) - field


def normalize_rows(vectors: np.ndarray) -> np.ndarray:
    """沿最后一个轴归一化向量数组。"""
    length = np.linalg.norm(vectors, axis=-1, keepdims=True)
    return vectors / length
