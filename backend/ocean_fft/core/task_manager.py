"""
任务管理器。

提供任务的创建、获取、状态更新与资源释放等功能。
"""

import logging
import uuid
from typing import Optional

from ocean_fft.core.storage import task_storage
from ocean_fft.models.simulation import SimulationTask
from ocean_fft.schemas.base import ClockConfig, OceanConfig
from ocean_fft.schemas.data import SimulationStatus
from ocean_fft.services.orchestrator import FrameOrchestrator

logger = logging.getLogger(__name__)


def create_simulation_task(config: OceanConfig, clock_config: ClockConfig) -> str:
    """
    创建模拟任务并生成初始频谱。

    频谱生成失败（如分辨率非法、内存不足）属于致命错误，直接抛出，不会登记任务。

    Args:
        config: 海面核心配置
        clock_config: 时钟配置

    Returns:
        任务 ID
    """
    orchestrator = FrameOrchestrator(config)
    try:
        orchestrator.initialize()
    except Exception:
        orchestrator.close()
        raise

    simulation_id = str(uuid.uuid4())
    task = SimulationTask(
        simulation_id=simulation_id,
        status=SimulationStatus.PENDING,
        config=config,
        clock_config=clock_config,
        orchestrator=orchestrator,
    )

    task_storage.add_task(task)
    logger.info("Created simulation task %s", simulation_id)
    return simulation_id


def get_simulation_task(simulation_id: str) -> Optional[SimulationTask]:
    """
    获取模拟任务。

    Args:
        simulation_id: 任务 ID

    Returns:
        任务对象，如果不存在则返回 None
    """
    return task_storage.get_task(simulation_id)


def update_task_status(simulation_id: str, status: SimulationStatus) -> bool:
    """
    更新任务状态。

    Args:
        simulation_id: 任务 ID
        status: 新状态

    Returns:
        是否更新成功
    """
    task = task_storage.get_task(simulation_id)
    if task is None:
        return False

    task.status = status
    task_storage.update_task(task)
    return True


def release_task_resources(task: SimulationTask) -> None:
    """
    释放任务持有的编排器（线程池与 O(N²) 缓冲区）。

    停止时调用；暂停时不调用（暂停保留最后一帧供读取）。
    """
    orchestrator = task.orchestrator
    task.orchestrator = None
    task_storage.update_task(task)
    if orchestrator is not None:
        orchestrator.close()
        logger.info("Released resources of simulation task %s", task.simulation_id)
