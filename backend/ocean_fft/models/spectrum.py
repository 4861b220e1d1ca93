"""
频域模型定义。

波矢网格与初始频谱振幅，生成后在进程生命周期内保持不变。
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class WaveVectorField:
    """波矢网格。"""

    k: np.ndarray  # 波矢 (kx, kz)，shape: (N, N, 2)，k[j, i] 对应 x 索引 i、z 索引 j
    k_mag: np.ndarray  # 波矢模长（已下限截断），shape: (N, N)

    @property
    def resolution(self) -> int:
        return self.k_mag.shape[0]

    @property
    def kx(self) -> np.ndarray:
        return self.k[..., 0]

    @property
    def kz(self) -> np.ndarray:
        return self.k[..., 1]

    def freeze(self) -> "WaveVectorField":
        """将数组设为只读。"""
        self.k.setflags(write=False)
        self.k_mag.setflags(write=False)
        return self


@dataclass
class InitialSpectrum:
    """初始频谱振幅 h0(k) 与 h0conj(-k)。"""

    h0: np.ndarray  # complex, shape: (N, N)
    h0_conj: np.ndarray  # complex, shape: (N, N)，虚部已取反

    def freeze(self) -> "InitialSpectrum":
        """将数组设为只读。"""
        self.h0.setflags(write=False)
        self.h0_conj.setflags(write=False)
        return self
