"""
模拟相关 API 路由。
"""

import asyncio
import logging
from typing import Dict

from fastapi import APIRouter, Body, HTTPException

from ocean_fft.core.config import settings
from ocean_fft.core.storage import task_storage
from ocean_fft.core.task_manager import (
    create_simulation_task,
    get_simulation_task,
    release_task_resources,
    update_task_status,
)
from ocean_fft.models.simulation import SimulationTask
from ocean_fft.schemas.api import (
    OceanSimulationRequest,
    OceanSimulationResponse,
    SimulationStateResponse,
    StepResponse,
    SurfaceUpdateRequest,
    SurfaceUpdateResponse,
)
from ocean_fft.schemas.base import OceanConfig
from ocean_fft.schemas.data import SimulationStatus

logger = logging.getLogger(__name__)

router = APIRouter(tags=["simulation"])

_FINISHED = {
    SimulationStatus.COMPLETED,
    SimulationStatus.FAILED,
    SimulationStatus.STOPPED,
}

# 运行中的时钟协程，持有引用以免被事件循环回收
_clock_tasks: Dict[str, asyncio.Task] = {}


async def _run_simulation_clock(simulation_id: str) -> None:
    """
    后台任务：外部时钟按 tick_interval 定期推进模拟。

    tick 在默认执行器中运行，避免阻塞事件循环；达到 total_ticks 后标记完成，
    收到停止请求后释放资源。
    """
    task = get_simulation_task(simulation_id)
    if task is None:
        return

    task.clock_running = True
    task_storage.update_task(task)
    loop = asyncio.get_running_loop()
    interval = task.clock_config.tick_interval
    total_ticks = task.clock_config.total_ticks

    try:
        while True:
            task = get_simulation_task(simulation_id)
            if task is None:
                break

            # 若请求停止，立即终止并回收资源
            if task.stop_requested:
                await loop.run_in_executor(None, release_task_resources, task)
                update_task_status(simulation_id, SimulationStatus.STOPPED)
                break

            orchestrator = task.orchestrator
            if orchestrator is None:
                break

            if total_ticks is not None and orchestrator.ticks >= total_ticks:
                update_task_status(simulation_id, SimulationStatus.COMPLETED)
                break

            # 若暂停，则短暂休眠后继续检查（保留最后一帧）
            if task.clock_paused:
                await asyncio.sleep(settings.paused_poll_interval)
                continue

            step_start_time = loop.time()
            await loop.run_in_executor(None, orchestrator.tick)
            step_elapsed = loop.time() - step_start_time

            # tick 耗时小于间隔时等待剩余时间，超过则不等待
            if step_elapsed < interval:
                await asyncio.sleep(interval - step_elapsed)

    except Exception:
        task = get_simulation_task(simulation_id)
        # 关闭过程中编排器已被回收，不算失败
        if task is not None and task.stop_requested:
            update_task_status(simulation_id, SimulationStatus.STOPPED)
        else:
            logger.exception("Simulation clock error for %s", simulation_id)
            update_task_status(simulation_id, SimulationStatus.FAILED)
        if task is not None:
            release_task_resources(task)

    finally:
        task = get_simulation_task(simulation_id)
        if task is not None:
            task.clock_running = False
            task_storage.update_task(task)


def _start_clock(task: SimulationTask) -> None:
    """启动后台时钟（若尚未运行）。"""
    if task.clock_running:
        return
    task.clock_running = True
    task_storage.update_task(task)
    simulation_id = task.simulation_id
    clock = asyncio.create_task(_run_simulation_clock(simulation_id))
    _clock_tasks[simulation_id] = clock
    clock.add_done_callback(lambda _: _clock_tasks.pop(simulation_id, None))


def _ensure_task(simulation_id: str) -> SimulationTask:
    task = get_simulation_task(simulation_id)
    if task is None:
        raise HTTPException(
            status_code=404, detail=f"Simulation {simulation_id} not found"
        )
    return task


def _ensure_task_for_control(simulation_id: str) -> SimulationTask:
    task = _ensure_task(simulation_id)
    if task.status in _FINISHED:
        raise HTTPException(
            status_code=400, detail="Simulation is not running"
        )
    return task


@router.post(
    "/simulate/ocean",
    response_model=OceanSimulationResponse,
    status_code=201,
    summary="创建海面模拟任务",
)
async def create_ocean_simulation(
    request: OceanSimulationRequest = Body(
        ...,
        examples=[
            {
                "grid": {"resolution": 64, "world_unit": 200.0, "gravity": 9.81},
                "wind": {"direction": [1.0, 0.0], "speed": 26.0},
                "spectrum": {"amplitude": 20.0, "seed": 42},
                "surface": {
                    "choppiness": 1.3,
                    "height_adjust": 1.2,
                    "foam_intensity": 2.0,
                },
                "solver": {
                    "evolution_mode": "continuous",
                    "normal_mode": "central_difference",
                    "timescale": 0.04,
                    "cache_step": 0.05,
                },
                "clock": {"tick_interval": 0.04, "total_ticks": None, "autostart": True},
            }
        ],
    ),
) -> OceanSimulationResponse:
    """
    创建海面模拟任务。

    在执行器中生成波矢网格与初始频谱（缓存模式下还会构建正余弦缓存），
    然后按 clock.autostart 决定是否立即启动后台时钟。
    """
    config = OceanConfig(**request.model_dump(exclude={"clock"}))
    loop = asyncio.get_running_loop()

    try:
        simulation_id = await loop.run_in_executor(
            None, create_simulation_task, config, request.clock
        )
    except Exception as e:
        logger.exception("Failed to create simulation")
        raise HTTPException(
            status_code=500,
            detail=f"Simulation failed: {str(e)}",
        )

    task = get_simulation_task(simulation_id)
    if request.clock.autostart:
        update_task_status(simulation_id, SimulationStatus.RUNNING)
        _start_clock(task)

    return OceanSimulationResponse(simulation_id=simulation_id, status=task.status)


@router.get(
    "/simulation/{simulation_id}/state",
    response_model=SimulationStateResponse,
    summary="获取模拟任务状态",
)
async def get_simulation_state(simulation_id: str) -> SimulationStateResponse:
    """获取编排器状态、tick 数、模拟时间与当前生效的海面参数。"""
    task = _ensure_task(simulation_id)
    orchestrator = task.orchestrator
    if orchestrator is None:
        raise HTTPException(
            status_code=409, detail="Simulation resources have been released"
        )

    with orchestrator.frame() as frame:
        generation = frame.generation

    return SimulationStateResponse(
        simulation_id=simulation_id,
        status=task.status,
        state=orchestrator.state,
        paused=orchestrator.paused,
        ticks=orchestrator.ticks,
        time=orchestrator.time,
        generation=generation,
        resolution=orchestrator.resolution,
        evolution_mode=task.config.solver.evolution_mode,
        normal_mode=task.config.solver.normal_mode,
        surface=orchestrator.surface,
    )


@router.post(
    "/simulation/{simulation_id}/step",
    response_model=StepResponse,
    summary="手动推进一个 tick",
)
async def step_simulation(simulation_id: str) -> StepResponse:
    """
    立即推进一个 tick（与后台时钟共用同一把 tick 锁，不会并发执行）。

    暂停时不计算新帧，computed 为 False。
    """
    task = _ensure_task(simulation_id)
    if task.status in _FINISHED or task.orchestrator is None:
        raise HTTPException(
            status_code=409, detail="Simulation is not steppable"
        )

    orchestrator = task.orchestrator
    loop = asyncio.get_running_loop()
    computed = await loop.run_in_executor(None, orchestrator.tick)

    with orchestrator.frame() as frame:
        generation, frame_time = frame.generation, frame.time

    return StepResponse(
        simulation_id=simulation_id,
        status=task.status,
        computed=computed,
        generation=generation,
        time=frame_time,
    )


@router.patch(
    "/simulation/{simulation_id}/surface",
    response_model=SurfaceUpdateResponse,
    summary="更新海面参数",
)
async def update_surface(
    simulation_id: str, request: SurfaceUpdateRequest
) -> SurfaceUpdateResponse:
    """暂存 λ、高度缩放、泡沫强度的更新，下一个 tick 起生效。"""
    task = _ensure_task_for_control(simulation_id)
    surface = task.orchestrator.update_surface(
        choppiness=request.choppiness,
        height_adjust=request.height_adjust,
        foam_intensity=request.foam_intensity,
    )
    return SurfaceUpdateResponse(simulation_id=simulation_id, surface=surface)


@router.post(
    "/simulation/{simulation_id}/clock/pause",
    response_model=OceanSimulationResponse,
    summary="暂停模拟时钟",
)
async def pause_simulation_clock(simulation_id: str) -> OceanSimulationResponse:
    """
    暂停指定模拟任务，使其停止推进。

    暂停会保留最后一次发布的缓冲区，渲染方可以继续读取；可以通过恢复接口继续模拟。
    """
    task = _ensure_task_for_control(simulation_id)

    if not task.clock_paused:
        task.clock_paused = True
        task.orchestrator.pause()
        task_storage.update_task(task)
        update_task_status(simulation_id, SimulationStatus.PAUSED)

    return OceanSimulationResponse(
        simulation_id=simulation_id, status=SimulationStatus.PAUSED
    )


@router.post(
    "/simulation/{simulation_id}/clock/resume",
    response_model=OceanSimulationResponse,
    summary="恢复模拟时钟",
)
async def resume_simulation_clock(simulation_id: str) -> OceanSimulationResponse:
    """
    恢复已暂停的模拟任务；若后台时钟尚未启动（autostart=False），则在此启动。
    """
    task = _ensure_task_for_control(simulation_id)

    task.clock_paused = False
    task.orchestrator.resume()
    task_storage.update_task(task)
    update_task_status(simulation_id, SimulationStatus.RUNNING)
    _start_clock(task)

    return OceanSimulationResponse(
        simulation_id=simulation_id, status=SimulationStatus.RUNNING
    )


@router.post(
    "/simulation/{simulation_id}/stop",
    response_model=OceanSimulationResponse,
    summary="停止模拟任务",
)
async def stop_simulation(simulation_id: str) -> OceanSimulationResponse:
    """
    请求立即停止指定的模拟任务，并释放线程池与缓冲区。

    停止后无法恢复，需要重新创建任务。如需保留数据，请使用暂停功能。
    """
    task = _ensure_task(simulation_id)
    if task.status in _FINISHED:
        # 完成的任务仍持有最后一帧，停止时一并释放
        if task.orchestrator is not None and not task.clock_running:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, release_task_resources, task)
        if task.status == SimulationStatus.COMPLETED:
            update_task_status(simulation_id, SimulationStatus.STOPPED)
        return OceanSimulationResponse(
            simulation_id=simulation_id, status=task.status
        )

    # 标记停止请求
    task.stop_requested = True
    task.clock_paused = False
    task_storage.update_task(task)

    # 时钟运行时由后台循环回收资源，否则在此回收
    if not task.clock_running:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, release_task_resources, task)

    update_task_status(simulation_id, SimulationStatus.STOPPED)

    return OceanSimulationResponse(
        simulation_id=simulation_id, status=SimulationStatus.STOPPED
    )


@router.post(
    "/simulations/stop-all",
    summary="停止所有运行中的模拟任务",
)
async def stop_all_simulations() -> dict:
    """
    停止所有运行中的模拟任务。

    Returns:
        包含停止结果统计的字典
    """
    all_tasks = task_storage.list_tasks()

    running_tasks = task_storage.list_tasks(
        statuses=set(SimulationStatus) - _FINISHED
    )

    stopped_count = 0
    for task in running_tasks:
        await stop_simulation(task.simulation_id)
        stopped_count += 1

    return {
        "total_tasks": len(all_tasks),
        "running_tasks": len(running_tasks),
        "stopped_count": stopped_count,
        "message": f"Stopped {stopped_count} running simulation(s)",
    }
