"""
数据并行工具。

按行分块，把逐单元计算分发到线程池；numpy 内核运行时会释放 GIL。
"""

from concurrent.futures import Executor
from typing import Callable, Optional

from ocean_fft.utils.numerical import row_blocks


def fan_out_rows(
    fn: Callable[[slice], None],
    n_rows: int,
    executor: Optional[Executor] = None,
    workers: int = 1,
) -> None:
    """
    将 [0, n_rows) 划分为行块并对每块调用 fn。

    返回前等待所有块完成（屏障），任一块抛出的异常会在此处重新抛出。

    Args:
        fn: 处理一个行切片的函数，各块之间不得写入共享位置
        n_rows: 总行数
        executor: 线程池，None 表示在当前线程串行执行
        workers: 分块数量
    """
    blocks = row_blocks(n_rows, workers if executor is not None else 1)
    if executor is None:
        for rows in blocks:
            fn(rows)
        return

    futures = [executor.submit(fn, rows) for rows in blocks]
    for future in futures:
        future.result()
