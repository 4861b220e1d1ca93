"""
基础配置 Schema 定义。

包含网格、风场、波浪谱、海面、求解器、时钟等配置模型。
"""

import math
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ocean_fft.schemas.data import EvolutionMode, HeightView, NormalMode
from ocean_fft.utils.numerical import is_power_of_two


class GridConfig(BaseModel):
    """频域网格定义。"""

    model_config = ConfigDict(frozen=True)

    resolution: int = Field(
        default=256, gt=0, description="网格分辨率 N（宽 = 高 = N，必须为 2 的幂）"
    )
    world_unit: float = Field(
        default=200.0, gt=0, description="海面块的世界空间边长"
    )
    gravity: float = Field(default=9.81, gt=0, description="重力加速度（m/s²）")

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v):
        """逆变换要求分辨率为 2 的幂。"""
        if not is_power_of_two(v):
            raise ValueError("resolution must be a positive power of two")
        return v


class WindConfig(BaseModel):
    """风场参数（Philips 谱使用）。"""

    model_config = ConfigDict(frozen=True)

    direction: Tuple[float, float] = Field(
        default=(1.0, 0.0), description="风向 (x, z)，校验时归一化为单位向量"
    )
    speed: float = Field(default=26.0, gt=0, description="风速（m/s）")

    @field_validator("direction")
    @classmethod
    def normalize_direction(cls, v):
        """归一化风向，拒绝零向量。"""
        length = math.hypot(v[0], v[1])
        if length < 1e-12:
            raise ValueError("wind direction must be a non-zero vector")
        return (v[0] / length, v[1] / length)


class SpectrumConfig(BaseModel):
    """Philips 谱参数。"""

    model_config = ConfigDict(frozen=True)

    amplitude: float = Field(default=20.0, ge=0, description="谱幅值系数 A")
    seed: Optional[int] = Field(
        default=None,
        ge=0,
        description="随机种子，None 表示每次启动使用系统熵重新生成",
    )


class SurfaceConfig(BaseModel):
    """海面外观参数（每帧可调）。"""

    model_config = ConfigDict(frozen=True)

    choppiness: float = Field(
        default=1.3, ge=0, description="水平位移强度 λ（浪尖尖锐程度）"
    )
    height_adjust: float = Field(
        default=1.2, ge=0, description="计算法线时的高度缩放系数"
    )
    foam_intensity: float = Field(
        default=2.0, ge=0, description="泡沫强度，0 表示关闭泡沫"
    )


class SolverConfig(BaseModel):
    """求解策略选择与数值参数。"""

    model_config = ConfigDict(frozen=True)

    evolution_mode: EvolutionMode = Field(
        default=EvolutionMode.CONTINUOUS, description="时间演化策略"
    )
    normal_mode: NormalMode = Field(
        default=NormalMode.CENTRAL_DIFFERENCE, description="法线计算策略"
    )
    timescale: float = Field(
        default=0.04, gt=0, description="连续模式下每帧推进的模拟时间（秒）"
    )
    cache_step: float = Field(
        default=0.05, gt=0, description="缓存模式下正余弦采样的时间步长（秒）"
    )
    sample_spacing: float = Field(
        default=2.0, gt=0, description="中心差分切向量的水平跨度"
    )
    height_view: HeightView = Field(
        default=HeightView.DISPLACEMENT, description="高度缓冲区写入内容"
    )
    workers: Optional[int] = Field(
        default=None, ge=1, description="工作线程数，None 表示使用全局配置"
    )


class ClockConfig(BaseModel):
    """外部时钟配置。"""

    model_config = ConfigDict(frozen=True)

    tick_interval: float = Field(
        default=0.04, gt=0, description="两次 tick 之间的真实时间间隔（秒）"
    )
    total_ticks: Optional[int] = Field(
        default=None, ge=1, description="总 tick 数，None 表示无限制持续运行"
    )
    autostart: bool = Field(
        default=True, description="创建后是否立即启动时钟；否则只能手动 step"
    )


class OceanConfig(BaseModel):
    """海面模拟核心配置（构造后不可变）。"""

    model_config = ConfigDict(frozen=True)

    grid: GridConfig = Field(default_factory=GridConfig)
    wind: WindConfig = Field(default_factory=WindConfig)
    spectrum: SpectrumConfig = Field(default_factory=SpectrumConfig)
    surface: SurfaceConfig = Field(default_factory=SurfaceConfig)
    solver: SolverConfig = Field(default_factory=SolverConfig)
