"""
模拟任务模型定义。
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from ocean_fft.schemas.base import ClockConfig, OceanConfig
from ocean_fft.schemas.data import SimulationStatus

if TYPE_CHECKING:
    from ocean_fft.services.orchestrator import FrameOrchestrator


@dataclass
class SimulationTask:
    """模拟任务。"""

    simulation_id: str  # 任务 ID
    status: SimulationStatus  # 任务状态
    config: OceanConfig  # 海面核心配置
    clock_config: ClockConfig  # 时钟配置
    orchestrator: Optional["FrameOrchestrator"] = None  # 帧编排器，停止后释放
    clock_paused: bool = False  # 是否暂停外部时钟
    clock_running: bool = False  # 后台时钟循环是否在运行
    stop_requested: bool = False  # 是否请求停止模拟
