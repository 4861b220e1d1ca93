"""
内部数据模型模块。

包含波矢网格、频谱振幅、每帧缓冲区、模拟任务等内部数据结构。
"""

from ocean_fft.models.buffers import FrameBuffers, SpatialFields, SpectralBuffers
from ocean_fft.models.simulation import SimulationTask
from ocean_fft.models.spectrum import InitialSpectrum, WaveVectorField

__all__ = [
    "WaveVectorField",
    "InitialSpectrum",
    "SpectralBuffers",
    "SpatialFields",
    "FrameBuffers",
    "SimulationTask",
]
