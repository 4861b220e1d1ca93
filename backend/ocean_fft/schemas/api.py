"""
API 请求/响应 Schema 定义。
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from ocean_fft.schemas.base import ClockConfig, OceanConfig, SurfaceConfig
from ocean_fft.schemas.data import (
    CellSample,
    EvolutionMode,
    NormalMode,
    OrchestratorState,
    SimulationStatus,
)


class OceanSimulationRequest(OceanConfig):
    """创建海面模拟任务请求体。"""

    clock: ClockConfig = Field(default_factory=ClockConfig)


class OceanSimulationResponse(BaseModel):
    """创建/控制模拟任务的响应。"""

    simulation_id: str = Field(..., description="模拟任务唯一 ID")
    status: SimulationStatus = Field(..., description="任务状态")


class SurfaceUpdateRequest(BaseModel):
    """海面参数更新请求体，未给出的字段保持不变。"""

    choppiness: Optional[float] = Field(default=None, ge=0, description="水平位移强度 λ")
    height_adjust: Optional[float] = Field(default=None, ge=0, description="高度缩放系数")
    foam_intensity: Optional[float] = Field(default=None, ge=0, description="泡沫强度")


class SurfaceUpdateResponse(BaseModel):
    """海面参数更新响应。"""

    simulation_id: str = Field(..., description="模拟任务 ID")
    surface: SurfaceConfig = Field(..., description="下一个 tick 起生效的海面参数")


class SimulationStateResponse(BaseModel):
    """模拟任务当前状态。"""

    simulation_id: str = Field(..., description="模拟任务 ID")
    status: SimulationStatus = Field(..., description="任务状态")
    state: OrchestratorState = Field(..., description="帧编排器状态")
    paused: bool = Field(..., description="是否暂停")
    ticks: int = Field(..., description="已计算的 tick 数")
    time: float = Field(..., description="模拟时间（秒）")
    generation: int = Field(..., description="最近一次发布的帧序号")
    resolution: int = Field(..., description="网格分辨率 N")
    evolution_mode: EvolutionMode = Field(..., description="时间演化策略")
    normal_mode: NormalMode = Field(..., description="法线计算策略")
    surface: SurfaceConfig = Field(..., description="当前生效的海面参数")


class StepResponse(BaseModel):
    """手动推进一个 tick 的响应。"""

    simulation_id: str = Field(..., description="模拟任务 ID")
    status: SimulationStatus = Field(..., description="任务状态")
    computed: bool = Field(..., description="是否计算了新帧（暂停时为 False）")
    generation: int = Field(..., description="最近一次发布的帧序号")
    time: float = Field(..., description="模拟时间（秒）")


class FrameResponse(BaseModel):
    """最近一次发布的输出缓冲区。"""

    simulation_id: str = Field(..., description="模拟任务 ID")
    status: SimulationStatus = Field(..., description="任务状态")
    generation: int = Field(..., description="帧序号，0 表示尚未计算")
    time: float = Field(..., description="该帧对应的模拟时间（秒）")
    resolution: int = Field(..., description="网格分辨率 N")
    height: List[List[List[float]]] = Field(
        ..., description="高度缓冲区 (dispX, height, dispZ, 1)，shape: (N, N, 4)"
    )
    normal: List[List[List[float]]] = Field(
        ..., description="法线缓冲区 (nx, ny, nz, foam)，shape: (N, N, 4)"
    )


class CellQueryResponse(BaseModel):
    """单元查询响应体。"""

    simulation_id: str = Field(..., description="模拟任务 ID")
    generation: int = Field(..., description="帧序号")
    time: float = Field(..., description="模拟时间（秒）")
    cell: CellSample = Field(..., description="单元数据")

