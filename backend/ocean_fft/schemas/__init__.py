"""
Pydantic Schema 模块。

包含请求/响应模型、配置模型、数据模型等。
"""

from ocean_fft.schemas.api import (
    CellQueryResponse,
    FrameResponse,
    OceanSimulationRequest,
    OceanSimulationResponse,
    SimulationStateResponse,
    StepResponse,
    SurfaceUpdateRequest,
    SurfaceUpdateResponse,
)
from ocean_fft.schemas.base import (
    ClockConfig,
    GridConfig,
    OceanConfig,
    SolverConfig,
    SpectrumConfig,
    SurfaceConfig,
    WindConfig,
)
from ocean_fft.schemas.data import (
    CellSample,
    EvolutionMode,
    HeightView,
    NormalMode,
    OrchestratorState,
    SimulationStatus,
)

__all__ = [
    # 基础配置
    "GridConfig",
    "WindConfig",
    "SpectrumConfig",
    "SurfaceConfig",
    "SolverConfig",
    "ClockConfig",
    "OceanConfig",
    # 数据模型
    "EvolutionMode",
    "NormalMode",
    "HeightView",
    "OrchestratorState",
    "SimulationStatus",
    "CellSample",
    # API 请求/响应
    "OceanSimulationRequest",
    "OceanSimulationResponse",
    "SurfaceUpdateRequest",
    "SurfaceUpdateResponse",
    "SimulationStateResponse",
    "StepResponse",
    "FrameResponse",
    "CellQueryResponse",
]
