"""
频域到空间域的逆变换服务。

三个频域缓冲区（高度、x 位移、z 位移）分别做二维逆 FFT，互不依赖，并发执行。
"""

from concurrent.futures import Executor
from typing import List, Optional, Sequence

import numpy as np

from ocean_fft.models.buffers import SpatialFields, SpectralBuffers
from ocean_fft.utils.numerical import is_power_of_two


class SpectralTransformEngine:
    """
    逆 FFT 引擎。

    使用未归一化的逆变换约定（与 FFTW BACKWARD 一致），只保留实部；
    残余的虚部直接丢弃，不做共轭对称性检查。
    """

    def __init__(self, resolution: int, executor: Optional[Executor] = None):
        """
        Args:
            resolution: 网格分辨率 N，必须为 2 的幂
            executor: 线程池，None 表示在当前线程依次执行
        """
        if not is_power_of_two(resolution):
            raise ValueError(
                f"resolution must be a positive power of two, got {resolution}"
            )
        self.resolution = resolution
        self.executor = executor

    def inverse(self, spectrum: np.ndarray) -> np.ndarray:
        """
        单个频域数组的未归一化二维逆变换，返回实部。

        Args:
            spectrum: complex, shape: (N, N)

        Returns:
            float, shape: (N, N)
        """
        if spectrum.shape != (self.resolution, self.resolution):
            raise ValueError(
                f"expected spectrum of shape {(self.resolution, self.resolution)}, "
                f"got {spectrum.shape}"
            )
        # norm="forward" 时逆变换不带 1/N² 缩放
        return np.fft.ifft2(spectrum, norm="forward").real

    def transform_many(self, spectra: Sequence[np.ndarray]) -> List[np.ndarray]:
        """
        并发执行多个逆变换，全部完成后返回（屏障）。

        Args:
            spectra: 频域数组序列

        Returns:
            与输入顺序一致的空间域实数场列表
        """
        if self.executor is None:
            return [self.inverse(spectrum) for spectrum in spectra]

        futures = [self.executor.submit(self.inverse, spectrum) for spectrum in spectra]
        return [future.result() for future in futures]

    def transform(self, buffers: SpectralBuffers) -> SpatialFields:
        """将高度谱与两个位移谱变换到空间域。"""
        height, displacement_x, displacement_z = self.transform_many(
            [buffers.height, buffers.displacement_x, buffers.displacement_z]
        )
        return SpatialFields(
            height=height,
            displacement_x=displacement_x,
            displacement_z=displacement_z,
        )
