"""
通用工具函数模块。
"""

from ocean_fft.utils.numerical import (
    forward_difference,
    is_power_of_two,
    normalize_rows,
    row_blocks,
)
from ocean_fft.utils.parallel import fan_out_rows

__all__ = [
    "is_power_of_two",
    "row_blocks",
    "forward_difference",
    "normalize_rows",
    "fan_out_rows",
]
