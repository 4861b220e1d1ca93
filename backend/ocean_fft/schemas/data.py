"""
数据 Schema 定义。

包含求解模式、编排器状态、任务状态、单元采样等数据模型。
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class EvolutionMode(str, Enum):
    """时间演化策略。"""

    CONTINUOUS = "continuous"  # 每帧直接计算 exp(iωt)
    CACHED = "cached"  # 预计算一个周期的正余弦采样


class NormalMode(str, Enum):
    """法线计算策略。"""

    CENTRAL_DIFFERENCE = "central_difference"
    SPECTRAL_DERIVATIVE = "spectral_derivative"


class HeightView(str, Enum):
    """高度缓冲区写入内容。"""

    DISPLACEMENT = "displacement"  # (dispX, height, dispZ, 1)
    SPECTRUM = "spectrum"  # 频域 h̃ 预览，仅用于调试


class OrchestratorState(str, Enum):
    """帧编排器状态。"""

    UNINITIALIZED = "uninitialized"
    SPECTRUM_READY = "spectrum_ready"
    EVOLVING = "evolving"


class SimulationStatus(str, Enum):
    """模拟任务状态枚举。"""

    PENDING = "pending"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


class CellSample(BaseModel):
    """某一网格单元在最新帧中的输出值。"""

    x: int = Field(..., description="列索引（x 方向）")
    z: int = Field(..., description="行索引（z 方向）")
    displacement_x: float = Field(..., description="x 方向水平位移")
    height: float = Field(..., description="高度")
    displacement_z: float = Field(..., description="z 方向水平位移")
    normal: List[float] = Field(..., description="法线 (nx, ny, nz)，ny 为竖直方向")
    foam: float = Field(..., description="泡沫掩码（0 或 1）")
