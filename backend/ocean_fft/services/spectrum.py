"""
波浪谱生成服务。

构建波矢网格，并根据 Philips 谱与高斯随机样本生成初始频谱振幅 h0、h0conj。
"""

import logging
import math
from concurrent.futures import Executor
from typing import Optional, Union

import numpy as np

from ocean_fft.models.spectrum import InitialSpectrum, WaveVectorField
from ocean_fft.schemas.base import GridConfig, SpectrumConfig, WindConfig
from ocean_fft.utils.parallel import fan_out_rows

logger = logging.getLogger(__name__)

# 波矢模长下限，避免除零
K_MAG_FLOOR = 1e-4


class SpectrumGenerator:
    """
    初始频谱生成器。

    波矢网格只使用非负频率索引：kx = 2π·i / world_unit，kz = 2π·j / world_unit。
    """

    def __init__(
        self,
        grid: GridConfig,
        wind: WindConfig,
        spectrum: SpectrumConfig,
        executor: Optional[Executor] = None,
        workers: int = 1,
    ):
        """
        Args:
            grid: 网格配置
            wind: 风场配置
            spectrum: 谱参数
            executor: 工作线程池，None 表示在当前线程串行计算
            workers: 行分块数量
        """
        self.grid = grid
        self.wind = wind
        self.spectrum = spectrum
        self.executor = executor
        self.workers = workers

        self._wind_dir = np.asarray(wind.direction, dtype=np.float64)
        # 最大波长 L = V² / g
        self._L = wind.speed**2 / grid.gravity

    def compute_wave_vectors(self) -> WaveVectorField:
        """
        填充波矢网格与模长数组。

        Returns:
            只读的波矢网格
        """
        n = self.grid.resolution
        k_1d = 2.0 * math.pi * np.arange(n, dtype=np.float64) / self.grid.world_unit

        k = np.empty((n, n, 2), dtype=np.float64)
        k[..., 0] = k_1d[np.newaxis, :]  # kx 随列（i）变化
        k[..., 1] = k_1d[:, np.newaxis]  # kz 随行（j）变化

        k_mag = np.maximum(np.hypot(k[..., 0], k[..., 1]), K_MAG_FLOOR)
        return WaveVectorField(k=k, k_mag=k_mag).freeze()

    def philips_spectrum(
        self, k: np.ndarray, k_mag: Union[float, np.ndarray]
    ) -> Union[float, np.ndarray]:
        """
        Philips 谱。

        P(k) = A · exp(-1 / (|k|²·L²)) / |k|⁴ · (k̂ · ŵ)²

        Args:
            k: 波矢，shape: (..., 2)
            k_mag: 波矢模长（已截断，> 0），shape: (...)

        Returns:
            谱值，非负
        """
        k = np.asarray(k, dtype=np.float64)
        k_mag = np.asarray(k_mag, dtype=np.float64)

        k2 = k_mag * k_mag
        numerator = np.exp(-1.0 / (k2 * self._L * self._L))
        denominator = k2 * k2
        alignment = (
            (k[..., 0] * self._wind_dir[0] + k[..., 1] * self._wind_dir[1]) / k_mag
        ) ** 2

        value = self.spectrum.amplitude * numerator / denominator * alignment
        if value.ndim == 0:
            return float(value)
        return value

    def generate_initial_spectrum(
        self, wave_vectors: Optional[WaveVectorField] = None
    ) -> InitialSpectrum:
        """
        生成初始频谱振幅。

        每个单元抽取 4 个独立标准正态样本：
        h0(k) = (ξ1 + iξ2)·sqrt(P(k)/2)，h0conj = (ξ3 - iξ4)·sqrt(P(-k)/2)。
        每一行使用独立的子随机数发生器，结果与线程数、调度顺序无关。

        Args:
            wave_vectors: 波矢网格，None 时重新计算

        Returns:
            只读的初始频谱
        """
        if wave_vectors is None:
            wave_vectors = self.compute_wave_vectors()

        n = wave_vectors.resolution
        seed_sequence = np.random.SeedSequence(self.spectrum.seed)
        logger.info(
            "Generating initial spectrum: N=%d, seed entropy=%s",
            n,
            seed_sequence.entropy,
        )
        row_seeds = seed_sequence.spawn(n)

        h0 = np.empty((n, n), dtype=np.complex128)
        h0_conj = np.empty((n, n), dtype=np.complex128)

        def fill_rows(rows: slice) -> None:
            k = wave_vectors.k[rows]
            k_mag = wave_vectors.k_mag[rows]
            root_ph = np.sqrt(self.philips_spectrum(k, k_mag) / 2.0)
            root_ph_neg = np.sqrt(self.philips_spectrum(-k, k_mag) / 2.0)

            for offset, row in enumerate(range(rows.start, rows.stop)):
                rng = np.random.default_rng(row_seeds[row])
                xi = rng.standard_normal((4, n))
                h0[row] = (xi[0] + 1j * xi[1]) * root_ph[offset]
                h0_conj[row] = (xi[2] - 1j * xi[3]) * root_ph_neg[offset]

        fan_out_rows(fill_rows, n, self.executor, self.workers)

        return InitialSpectrum(h0=h0, h0_conj=h0_conj).freeze()
