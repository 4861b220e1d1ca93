"""
输出缓冲区写入服务。
"""

import numpy as np

from ocean_fft.models.buffers import SpatialFields, SpectralBuffers

# 频谱预览的放大系数
SPECTRUM_PREVIEW_GAIN = 50.0


class FieldWriter:
    """把空间域实数场打包为高度缓冲区 (dispX, height, dispZ, 1)。"""

    def __init__(self, resolution: int):
        self.resolution = resolution
        self._scale = 1.0 / resolution

    def write_height(self, fields: SpatialFields, out: np.ndarray) -> np.ndarray:
        """
        写入高度缓冲区，按 1/N 缩放以修正未归一化的逆变换幅值。

        Args:
            fields: 逆变换得到的空间域场
            out: 目标缓冲区，shape: (N, N, 4)

        Returns:
            out
        """
        out[..., 0] = fields.displacement_x * self._scale
        out[..., 1] = fields.height * self._scale
        out[..., 2] = fields.displacement_z * self._scale
        out[..., 3] = 1.0
        return out

    def write_spectrum_preview(
        self,
        buffers: SpectralBuffers,
        out: np.ndarray,
        gain: float = SPECTRUM_PREVIEW_GAIN,
    ) -> np.ndarray:
        """调试视图：写入频域 h̃ 的实部与虚部 (Re·gain, Im·gain, 0, 1)。"""
        out[..., 0] = buffers.height.real * gain
        out[..., 1] = buffers.height.imag * gain
        out[..., 2] = 0.0
        out[..., 3] = 1.0
        return out
