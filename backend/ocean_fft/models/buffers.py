"""
每帧缓冲区模型定义。
"""

from dataclasses import dataclass

import numpy as np

# 输出缓冲区每个单元的通道数
CHANNELS = 4


@dataclass
class SpectralBuffers:
    """每帧频域缓冲区（由演化引擎持有，每个 tick 原地覆盖）。"""

    height: np.ndarray  # h̃(k, t)
    displacement_x: np.ndarray  # x 方向位移谱
    displacement_z: np.ndarray  # z 方向位移谱

    @classmethod
    def allocate(cls, resolution: int) -> "SpectralBuffers":
        shape = (resolution, resolution)
        return cls(
            height=np.zeros(shape, dtype=np.complex128),
            displacement_x=np.zeros(shape, dtype=np.complex128),
            displacement_z=np.zeros(shape, dtype=np.complex128),
        )


@dataclass
class SpatialFields:
    """逆变换后的空间域实数场（未归一化）。"""

    height: np.ndarray
    displacement_x: np.ndarray
    displacement_z: np.ndarray


@dataclass
class FrameBuffers:
    """交给渲染方的输出缓冲区。"""

    height: np.ndarray  # (dispX, height, dispZ, 1)，shape: (N, N, 4)
    normal: np.ndarray  # (nx, ny, nz, foam)，shape: (N, N, 4)
    generation: int = 0  # 已发布的帧序号，0 表示尚未计算
    time: float = 0.0  # 该帧对应的模拟时间（秒）

    @classmethod
    def allocate(cls, resolution: int) -> "FrameBuffers":
        shape = (resolution, resolution, CHANNELS)
        height = np.zeros(shape, dtype=np.float32)
        height[..., 3] = 1.0
        normal = np.zeros(shape, dtype=np.float32)
        normal[..., 1] = 1.0
        return cls(height=height, normal=normal)

    @property
    def resolution(self) -> int:
        return self.height.shape[0]
