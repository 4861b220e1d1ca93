"""
帧编排服务。

启动时生成频谱一次；之后每个 tick 依次执行：时间演化 → 逆变换 → 写入高度缓冲区 → 计算法线，
再把结果发布给渲染方。
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Iterator, Optional

from ocean_fft.core.config import settings
from ocean_fft.models.buffers import FrameBuffers
from ocean_fft.models.spectrum import InitialSpectrum, WaveVectorField
from ocean_fft.schemas.base import OceanConfig, SurfaceConfig
from ocean_fft.schemas.data import HeightView, OrchestratorState
from ocean_fft.services.evolution import TimeEvolutionEngine, build_evolution_strategy
from ocean_fft.services.field_writer import FieldWriter
from ocean_fft.services.normals import NormalFieldComputer, build_normal_computer
from ocean_fft.services.spectrum import SpectrumGenerator
from ocean_fft.services.transform import SpectralTransformEngine
from ocean_fft.utils.numerical import is_power_of_two

logger = logging.getLogger(__name__)


class FrameOrchestrator:
    """
    帧编排器。

    持有线程池与各组件的唯一实例，状态机：UNINITIALIZED → SPECTRUM_READY → EVOLVING。
    输出采用双缓冲：每个 tick 写入后台缓冲区，完成后在锁内与前台交换；
    读取方只能在 frame() 上下文中访问前台缓冲区。
    """

    def __init__(self, config: OceanConfig, workers: Optional[int] = None):
        """
        Args:
            config: 海面核心配置
            workers: 工作线程数，None 时依次使用 solver.workers 与全局配置
        """
        resolution = config.grid.resolution
        if not is_power_of_two(resolution):
            raise ValueError(
                f"resolution must be a positive power of two, got {resolution}"
            )

        self.config = config
        self.resolution = resolution
        self.workers = workers or config.solver.workers or settings.worker_count
        self.state = OrchestratorState.UNINITIALIZED

        self._surface = config.surface
        self._pending_surface: Optional[SurfaceConfig] = None
        self._paused = False
        self._closed = False

        self._executor = ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="ocean-fft"
        )
        self._lock = threading.Lock()
        self._tick_lock = threading.Lock()

        self.wave_vectors: Optional[WaveVectorField] = None
        self.initial_spectrum: Optional[InitialSpectrum] = None
        self.evolution: Optional[TimeEvolutionEngine] = None
        self.transform_engine: Optional[SpectralTransformEngine] = None
        self.field_writer: Optional[FieldWriter] = None
        self.normal_computer: Optional[NormalFieldComputer] = None

        self._front: Optional[FrameBuffers] = None
        self._back: Optional[FrameBuffers] = None

    # ------------------------------------------------------------------
    # 生命周期
    # ------------------------------------------------------------------

    def initialize(self) -> None:
        """
        UNINITIALIZED → SPECTRUM_READY。

        生成波矢网格与初始频谱，并（缓存模式下）构建正余弦缓存。不可重复调用。
        """
        if self.state != OrchestratorState.UNINITIALIZED:
            raise RuntimeError(f"orchestrator already initialized (state={self.state.value})")

        grid = self.config.grid
        solver = self.config.solver
        logger.info(
            "Initializing ocean: N=%d, evolution=%s, normals=%s, workers=%d",
            self.resolution,
            solver.evolution_mode.value,
            solver.normal_mode.value,
            self.workers,
        )

        try:
            generator = SpectrumGenerator(
                grid,
                self.config.wind,
                self.config.spectrum,
                executor=self._executor,
                workers=self.workers,
            )
            self.wave_vectors = generator.compute_wave_vectors()
            self.initial_spectrum = generator.generate_initial_spectrum(
                self.wave_vectors
            )

            strategy = build_evolution_strategy(solver, grid.gravity)
            strategy.prepare(self.wave_vectors)

            self.evolution = TimeEvolutionEngine(
                self.wave_vectors,
                self.initial_spectrum,
                strategy,
                executor=self._executor,
                workers=self.workers,
            )
            self.transform_engine = SpectralTransformEngine(
                self.resolution, executor=self._executor
            )
            self.field_writer = FieldWriter(self.resolution)
            self.normal_computer = build_normal_computer(
                solver, self.wave_vectors, self.transform_engine
            )

            self._front = FrameBuffers.allocate(self.resolution)
            self._back = FrameBuffers.allocate(self.resolution)
        except MemoryError:
            logger.error(
                "Out of memory while allocating %dx%d ocean buffers",
                self.resolution,
                self.resolution,
            )
            raise

        self.state = OrchestratorState.SPECTRUM_READY

    def close(self) -> None:
        """等待正在进行的 tick 结束后关闭线程池，之后不能再 tick。"""
        with self._tick_lock:
            self._closed = True
            self._executor.shutdown(wait=True)

    def __enter__(self) -> "FrameOrchestrator":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------
    # 控制
    # ------------------------------------------------------------------

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> None:
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    @property
    def surface(self) -> SurfaceConfig:
        """当前生效的海面参数。"""
        return self._surface

    def update_surface(
        self,
        choppiness: Optional[float] = None,
        height_adjust: Optional[float] = None,
        foam_intensity: Optional[float] = None,
    ) -> SurfaceConfig:
        """
        暂存海面参数更新，在下一个 tick 开始时生效。

        Returns:
            将在下一个 tick 生效的海面参数
        """
        with self._lock:
            base = self._pending_surface or self._surface
            updates = {
                key: value
                for key, value in (
                    ("choppiness", choppiness),
                    ("height_adjust", height_adjust),
                    ("foam_intensity", foam_intensity),
                )
                if value is not None
            }
            # 经过校验再暂存，非法值在此处抛出
            self._pending_surface = SurfaceConfig(**{**base.model_dump(), **updates})
            return self._pending_surface

    @property
    def time(self) -> float:
        """当前模拟时间（秒）。"""
        if self.evolution is None:
            return 0.0
        return self.evolution.time

    @property
    def ticks(self) -> int:
        """已计算的 tick 数。"""
        if self.evolution is None:
            return 0
        return self.evolution.ticks

    # ------------------------------------------------------------------
    # 每帧
    # ------------------------------------------------------------------

    def tick(self) -> bool:
        """
        SPECTRUM_READY/EVOLVING → EVOLVING，推进一帧。

        暂停时跳过全部计算，上一次发布的缓冲区保持有效。

        Returns:
            本次是否计算并发布了新帧
        """
        if self.state == OrchestratorState.UNINITIALIZED:
            raise RuntimeError("tick() called before initialize()")

        with self._tick_lock:
            if self._closed:
                raise RuntimeError("tick() called after close()")

            self.state = OrchestratorState.EVOLVING
            self._apply_pending_surface()

            if self._paused:
                return False

            surface = self._surface
            back = self._back

            spectra = self.evolution.tick()
            fields = self.transform_engine.transform(spectra)

            if self.config.solver.height_view == HeightView.SPECTRUM:
                self.field_writer.write_spectrum_preview(spectra, back.height)
            else:
                self.field_writer.write_height(fields, back.height)
            self.normal_computer.compute(fields, spectra, surface, back.normal)

            self._publish()
            logger.debug(
                "Tick %d published (t=%.3f)", self._front.generation, self._front.time
            )
            return True

    def _apply_pending_surface(self) -> None:
        with self._lock:
            if self._pending_surface is not None:
                self._surface = self._pending_surface
                self._pending_surface = None

    def _publish(self) -> None:
        """交换前后台缓冲区。"""
        back = self._back
        with self._lock:
            back.generation = self._front.generation + 1
            back.time = self.evolution.time
            self._front, self._back = back, self._front

    @contextmanager
    def frame(self) -> Iterator[FrameBuffers]:
        """
        在锁内访问最近一次发布的输出缓冲区。

        生产方只写后台缓冲区，交换需要同一把锁，因此上下文内读取的数据不会被改写。
        """
        if self._front is None:
            raise RuntimeError("frame() called before initialize()")
        with self._lock:
            yield self._front
