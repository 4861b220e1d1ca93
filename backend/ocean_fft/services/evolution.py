"""
时间演化服务。

根据色散关系 ω = sqrt(g·|k|) 旋转初始频谱的相位，每个 tick 生成高度谱与两个水平位移谱。
提供两种可在运行时选择的策略：连续模式与预计算正余弦缓存模式。
"""

import logging
import math
from abc import ABC, abstractmethod
from concurrent.futures import Executor
from typing import Optional, Tuple

import numpy as np

from ocean_fft.models.buffers import SpectralBuffers
from ocean_fft.models.spectrum import InitialSpectrum, WaveVectorField
from ocean_fft.schemas.base import SolverConfig
from ocean_fft.schemas.data import EvolutionMode
from ocean_fft.utils.parallel import fan_out_rows

logger = logging.getLogger(__name__)


def dispersion(gravity: float, k_mag: np.ndarray) -> np.ndarray:
    """深水色散关系 ω(k) = sqrt(g·|k|)。"""
    return np.sqrt(gravity * k_mag)


class EvolutionStrategy(ABC):
    """时间演化策略：每次 advance() 推进一个 tick，返回 (e^{+iωt}, e^{-iωt})。"""

    mode: EvolutionMode

    def __init__(self, gravity: float):
        self.gravity = gravity
        self.omega: Optional[np.ndarray] = None
        self.ticks = 0

    def prepare(self, wave_vectors: WaveVectorField) -> None:
        """根据波矢网格计算每个单元的角频率。"""
        self.omega = dispersion(self.gravity, wave_vectors.k_mag)

    @property
    @abstractmethod
    def time(self) -> float:
        """当前模拟时间（秒）。"""

    @abstractmethod
    def advance(self) -> Tuple[np.ndarray, np.ndarray]:
        """推进一个 tick 并返回复指数对。"""

    def _ensure_prepared(self) -> None:
        if self.omega is None:
            raise RuntimeError("evolution strategy used before prepare()")


class ContinuousEvolution(EvolutionStrategy):
    """连续模式：每个 tick 直接由模拟时钟计算 exp(iωt)，支持任意时间缩放。"""

    mode = EvolutionMode.CONTINUOUS

    def __init__(self, gravity: float, timescale: float):
        super().__init__(gravity)
        self.timescale = timescale
        self._time = 0.0

    @property
    def time(self) -> float:
        return self._time

    def advance(self) -> Tuple[np.ndarray, np.ndarray]:
        self._ensure_prepared()
        self._time += self.timescale
        self.ticks += 1

        phase = self.omega * self._time
        exp_pos = np.exp(1j * phase)
        return exp_pos, np.conj(exp_pos)


class SinusoidCache:
    """
    每个单元一个周期的正余弦采样缓存。

    采用扁平数组存储：所有单元的样本首尾相接存放在 cos / sin 中，
    offsets、lengths 记录每个单元的起始位置与长度，index 为每个单元的循环读指针。
    """

    def __init__(self, omega: np.ndarray, step: float):
        """
        Args:
            omega: 每个单元的角频率，shape: (N, N)
            step: 采样时间步长（秒）
        """
        self.shape = omega.shape
        self.step = step

        flat_omega = omega.ravel()
        periods = 2.0 * math.pi / flat_omega
        # 每个周期的样本数 floor(period / step)，至少 1 个
        self.lengths = np.maximum(np.floor(periods / step), 1).astype(np.int64)
        self.offsets = np.zeros_like(self.lengths)
        np.cumsum(self.lengths[:-1], out=self.offsets[1:])

        total = int(self.lengths.sum())
        local = np.arange(total, dtype=np.int64) - np.repeat(self.offsets, self.lengths)
        phase = np.repeat(flat_omega, self.lengths) * (local * step)
        self.cos = np.cos(phase)
        self.sin = np.sin(phase)

        self.index = np.zeros(flat_omega.size, dtype=np.int64)

        logger.debug(
            "Sinusoid cache built: %d samples for %d cells (step=%s)",
            total,
            flat_omega.size,
            step,
        )

    @property
    def size(self) -> int:
        """缓存中的样本总数。"""
        return self.cos.size

    def advance(self) -> None:
        """所有单元的读指针前进一格，到达该单元的长度后回绕到 0。"""
        self.index += 1
        self.index[self.index >= self.lengths] = 0

    def lookup(self) -> Tuple[np.ndarray, np.ndarray]:
        """读取当前指针处的 (cos, sin)，shape: (N, N)。"""
        position = self.offsets + self.index
        return (
            self.cos[position].reshape(self.shape),
            self.sin[position].reshape(self.shape),
        )


class CachedEvolution(EvolutionStrategy):
    """
    缓存模式：启动时预计算正余弦，每个 tick 只做查表。

    时间步长隐含在缓存的采样步长中，修改步长需要重建缓存。
    """

    mode = EvolutionMode.CACHED

    def __init__(self, gravity: float, step: float):
        super().__init__(gravity)
        self.step = step
        self.cache: Optional[SinusoidCache] = None

    def prepare(self, wave_vectors: WaveVectorField) -> None:
        super().prepare(wave_vectors)
        self.cache = SinusoidCache(self.omega, self.step)
        self.ticks = 0

    @property
    def time(self) -> float:
        return self.ticks * self.step

    def advance(self) -> Tuple[np.ndarray, np.ndarray]:
        self._ensure_prepared()
        self.cache.advance()
        self.ticks += 1

        cos, sin = self.cache.lookup()
        return cos + 1j * sin, cos - 1j * sin


def build_evolution_strategy(
    solver: SolverConfig, gravity: float
) -> EvolutionStrategy:
    """根据求解器配置选择时间演化策略。"""
    if solver.evolution_mode == EvolutionMode.CONTINUOUS:
        return ContinuousEvolution(gravity, solver.timescale)
    elif solver.evolution_mode == EvolutionMode.CACHED:
        return CachedEvolution(gravity, solver.cache_step)
    else:
        raise ValueError(f"Unknown evolution mode: {solver.evolution_mode}")


class TimeEvolutionEngine:
    """
    时间演化引擎。

    持有每帧频域缓冲区，每个 tick 原地覆盖：
    h̃ = h0·e^{+iωt} + conj(h0conj)·e^{-iωt}，Dx = i·(kx/|k|)·h̃，Dz = i·(kz/|k|)·h̃。
    """

    def __init__(
        self,
        wave_vectors: WaveVectorField,
        initial: InitialSpectrum,
        strategy: EvolutionStrategy,
        executor: Optional[Executor] = None,
        workers: int = 1,
    ):
        self.wave_vectors = wave_vectors
        self.initial = initial
        self.strategy = strategy
        self.executor = executor
        self.workers = workers

        n = wave_vectors.resolution
        self.buffers = SpectralBuffers.allocate(n)

        k_hat = wave_vectors.k / wave_vectors.k_mag[..., np.newaxis]
        self._i_khat_x = 1j * k_hat[..., 0]
        self._i_khat_z = 1j * k_hat[..., 1]

        # 负频率分量使用 h0conj 的共轭
        self._h0_conj_star = np.conj(initial.h0_conj)

        self._exp_pos: Optional[np.ndarray] = None
        self._exp_neg: Optional[np.ndarray] = None

    @property
    def mode(self) -> EvolutionMode:
        return self.strategy.mode

    @property
    def time(self) -> float:
        return self.strategy.time

    @property
    def ticks(self) -> int:
        return self.strategy.ticks

    def tick(self) -> SpectralBuffers:
        """
        推进一个 tick 并填充频域缓冲区。

        Returns:
            原地更新后的频域缓冲区
        """
        exp_pos, exp_neg = self.strategy.advance()
        self._exp_pos, self._exp_neg = exp_pos, exp_neg

        h0 = self.initial.h0
        h0_conj_star = self._h0_conj_star
        out = self.buffers

        def fill_rows(rows: slice) -> None:
            h_tilde = h0[rows] * exp_pos[rows] + h0_conj_star[rows] * exp_neg[rows]
            out.height[rows] = h_tilde
            out.displacement_x[rows] = self._i_khat_x[rows] * h_tilde
            out.displacement_z[rows] = self._i_khat_z[rows] * h_tilde

        fan_out_rows(fill_rows, self.wave_vectors.resolution, self.executor, self.workers)
        return out

    def spectral_energy(self) -> float:
        """当前高度谱的总能量 Σ|h̃|²。"""
        return float(np.sum(np.abs(self.buffers.height) ** 2))

    def component_energy(self) -> float:
        """
        两个相位旋转分量的总能量 Σ|h0·e^{+iωt}|² + Σ|conj(h0conj)·e^{-iωt}|²。

        时间演化只旋转相位，因此该值与时间无关。
        """
        if self._exp_pos is None:
            return float(
                np.sum(np.abs(self.initial.h0) ** 2)
                + np.sum(np.abs(self._h0_conj_star) ** 2)
            )
        return float(
            np.sum(np.abs(self.initial.h0 * self._exp_pos) ** 2)
            + np.sum(np.abs(self._h0_conj_star * self._exp_neg) ** 2)
        )
