"""
业务服务模块。

包含频谱生成、时间演化、逆变换、输出写入、法线计算与帧编排等服务。
"""

from ocean_fft.services.evolution import (
    CachedEvolution,
    ContinuousEvolution,
    SinusoidCache,
    TimeEvolutionEngine,
    build_evolution_strategy,
)
from ocean_fft.services.field_writer import FieldWriter
from ocean_fft.services.normals import (
    CentralDifferenceNormals,
    NormalFieldComputer,
    SpectralDerivativeNormals,
    build_normal_computer,
    compute_foam_mask,
)
from ocean_fft.services.orchestrator import FrameOrchestrator
from ocean_fft.services.spectrum import SpectrumGenerator
from ocean_fft.services.transform import SpectralTransformEngine

__all__ = [
    "SpectrumGenerator",
    "TimeEvolutionEngine",
    "ContinuousEvolution",
    "CachedEvolution",
    "SinusoidCache",
    "build_evolution_strategy",
    "SpectralTransformEngine",
    "FieldWriter",
    "NormalFieldComputer",
    "CentralDifferenceNormals",
    "SpectralDerivativeNormals",
    "build_normal_computer",
    "compute_foam_mask",
    "FrameOrchestrator",
]
