"""
法线与泡沫场计算服务。

两种可互换的算法：
- 中心差分：在高度场上对相邻单元做有限差分（边界回绕）
- 频域求导：高度谱乘以 i·k 后逆变换，直接得到梯度场

两者使用同一个泡沫判据：水平位移雅可比行列式 < 0 时泡沫掩码为 1。
"""

from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from ocean_fft.models.buffers import SpatialFields, SpectralBuffers
from ocean_fft.models.spectrum import WaveVectorField
from ocean_fft.schemas.base import SolverConfig, SurfaceConfig
from ocean_fft.schemas.data import NormalMode
from ocean_fft.services.transform import SpectralTransformEngine
from ocean_fft.utils.numerical import forward_difference, normalize_rows


def foam_intensity_scale(foam_intensity: float, resolution: int) -> float:
    """雅可比差分的缩放系数 (1 + foam) / N；泡沫强度为 0 时返回 0（不产生泡沫）。"""
    if foam_intensity == 0:
        return 0.0
    return (1.0 + foam_intensity) / resolution


def jacobian_determinant(
    displacement_x: np.ndarray,
    displacement_z: np.ndarray,
    choppiness: float,
    intensity: float,
) -> np.ndarray:
    """
    水平位移场的 2×2 雅可比行列式。

    对 +x、+z 方向相邻单元做前向差分（边界回绕）：
    Jxx = 1 + λs·∂Dx/∂x，Jzz = 1 + λs·∂Dz/∂z，Jxz = λs·∂Dz/∂x，Jzx = λs·∂Dx/∂z。

    Args:
        displacement_x: 未归一化的 x 位移场，shape: (N, N)
        displacement_z: 未归一化的 z 位移场，shape: (N, N)
        choppiness: 水平位移强度 λ
        intensity: 泡沫缩放系数 s

    Returns:
        行列式，shape: (N, N)
    """
    scale = choppiness * intensity
    j_xx = 1.0 + scale * forward_difference(displacement_x, axis=1)
    j_xz = scale * forward_difference(displacement_z, axis=1)
    j_zz = 1.0 + scale * forward_difference(displacement_z, axis=0)
    j_zx = scale * forward_difference(displacement_x, axis=0)
    return j_xx * j_zz - j_xz * j_zx


def compute_foam_mask(
    displacement_x: np.ndarray,
    displacement_z: np.ndarray,
    choppiness: float,
    intensity: float,
) -> np.ndarray:
    """浪尖折叠处（雅可比行列式 < 0）为 1，其余为 0。"""
    determinant = jacobian_determinant(
        displacement_x, displacement_z, choppiness, intensity
    )
    return (determinant < 0).astype(np.float32)


class NormalStrategy(ABC):
    """法线计算策略。"""

    mode: NormalMode

    @abstractmethod
    def compute_normals(
        self, fields: SpatialFields, spectra: SpectralBuffers, height_adjust: float
    ) -> np.ndarray:
        """返回法线 (nx, ny, nz)，ny 为竖直方向，shape: (N, N, 3)。"""


class CentralDifferenceNormals(NormalStrategy):
    """中心差分法线：两条切向量归一化后取叉积。"""

    mode = NormalMode.CENTRAL_DIFFERENCE

    def __init__(self, sample_spacing: float = 2.0):
        self.sample_spacing = sample_spacing

    def compute_normals(
        self, fields: SpatialFields, spectra: SpectralBuffers, height_adjust: float
    ) -> np.ndarray:
        n = fields.height.shape[0]
        heights = fields.height * (height_adjust / n)

        d_x = forward_difference(heights, axis=1)
        d_z = forward_difference(heights, axis=0)
        zeros = np.zeros_like(heights)
        spacing = np.full_like(heights, self.sample_spacing)

        # 切向量在 (x, z, y) 坐标系下表示，第三个分量为高度
        tangent_x = normalize_rows(np.stack([spacing, zeros, d_x], axis=-1))
        tangent_z = normalize_rows(np.stack([zeros, spacing, d_z], axis=-1))
        cross = np.cross(tangent_x, tangent_z)

        # 交换 y、z 轴，使第二个通道为竖直方向
        return cross[..., [0, 2, 1]]


class SpectralDerivativeNormals(NormalStrategy):
    """频域求导法线：多做两次逆变换换取精确梯度。"""

    mode = NormalMode.SPECTRAL_DERIVATIVE

    def __init__(
        self,
        wave_vectors: WaveVectorField,
        transform_engine: SpectralTransformEngine,
    ):
        self.transform_engine = transform_engine
        self._i_kx = 1j * wave_vectors.kx
        self._i_kz = 1j * wave_vectors.kz

    def compute_normals(
        self, fields: SpatialFields, spectra: SpectralBuffers, height_adjust: float
    ) -> np.ndarray:
        n = spectra.height.shape[0]
        gradient_x, gradient_z = self.transform_engine.transform_many(
            [self._i_kx * spectra.height, self._i_kz * spectra.height]
        )
        scale = height_adjust / n

        normals = np.empty(gradient_x.shape + (3,), dtype=np.float64)
        normals[..., 0] = -gradient_x * scale
        normals[..., 1] = 1.0
        normals[..., 2] = -gradient_z * scale
        return normalize_rows(normals)


class NormalFieldComputer:
    """法线/泡沫场计算器，写入 (nx, ny, nz, foam)。"""

    def __init__(self, strategy: NormalStrategy):
        self.strategy = strategy

    @property
    def mode(self) -> NormalMode:
        return self.strategy.mode

    def compute(
        self,
        fields: SpatialFields,
        spectra: SpectralBuffers,
        surface: SurfaceConfig,
        out: np.ndarray,
    ) -> np.ndarray:
        """
        计算法线与泡沫掩码并写入输出缓冲区。

        Args:
            fields: 逆变换得到的空间域场（未归一化）
            spectra: 本帧的频域缓冲区
            surface: 海面参数（λ、高度缩放、泡沫强度）
            out: 目标缓冲区，shape: (N, N, 4)

        Returns:
            out
        """
        n = fields.height.shape[0]
        out[..., :3] = self.strategy.compute_normals(
            fields, spectra, surface.height_adjust
        )
        out[..., 3] = compute_foam_mask(
            fields.displacement_x,
            fields.displacement_z,
            surface.choppiness,
            foam_intensity_scale(surface.foam_intensity, n),
        )
        return out


def build_normal_computer(
    solver: SolverConfig,
    wave_vectors: WaveVectorField,
    transform_engine: Optional[SpectralTransformEngine] = None,
) -> NormalFieldComputer:
    """根据求解器配置选择法线算法。"""
    if solver.normal_mode == NormalMode.CENTRAL_DIFFERENCE:
        strategy = CentralDifferenceNormals(solver.sample_spacing)
    elif solver.normal_mode == NormalMode.SPECTRAL_DERIVATIVE:
        if transform_engine is None:
            transform_engine = SpectralTransformEngine(wave_vectors.resolution)
        strategy = SpectralDerivativeNormals(wave_vectors, transform_engine)
    else:
        raise ValueError(f"Unknown normal mode: {solver.normal_mode}")
    return NormalFieldComputer(strategy)
