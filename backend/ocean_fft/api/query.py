"""
查询相关 API 路由。

渲染方（或调试工具）读取最近一次发布的输出缓冲区。
"""

from fastapi import APIRouter, HTTPException, Query

from ocean_fft.core.task_manager import get_simulation_task
from ocean_fft.models.simulation import SimulationTask
from ocean_fft.schemas.api import CellQueryResponse, FrameResponse
from ocean_fft.schemas.data import CellSample

router = APIRouter(prefix="/query", tags=["query"])


def _ensure_readable(simulation_id: str) -> SimulationTask:
    task = get_simulation_task(simulation_id)
    if task is None:
        raise HTTPException(
            status_code=404, detail=f"Simulation {simulation_id} not found"
        )
    if task.orchestrator is None:
        raise HTTPException(
            status_code=409, detail="Simulation resources have been released"
        )
    return task


@router.get(
    "/simulation/{simulation_id}/frame",
    response_model=FrameResponse,
    summary="获取最近一次发布的帧",
)
async def get_frame(simulation_id: str) -> FrameResponse:
    """
    返回高度缓冲区与法线缓冲区的完整内容。

    数据在锁内拷贝，保证同一帧的两个缓冲区一致；尚未 tick 时 generation 为 0。
    """
    task = _ensure_readable(simulation_id)

    with task.orchestrator.frame() as frame:
        generation = frame.generation
        frame_time = frame.time
        resolution = frame.resolution
        height = frame.height.tolist()
        normal = frame.normal.tolist()

    return FrameResponse(
        simulation_id=simulation_id,
        status=task.status,
        generation=generation,
        time=frame_time,
        resolution=resolution,
        height=height,
        normal=normal,
    )


@router.get(
    "/cell",
    response_model=CellQueryResponse,
    summary="查询单个网格单元",
)
async def query_cell(
    simulation_id: str = Query(..., description="模拟任务 ID"),
    x: int = Query(..., ge=0, description="列索引（x 方向）"),
    z: int = Query(..., ge=0, description="行索引（z 方向）"),
) -> CellQueryResponse:
    """查询最新帧中某一单元的位移、高度、法线与泡沫值。"""
    task = _ensure_readable(simulation_id)

    with task.orchestrator.frame() as frame:
        n = frame.resolution
        if x >= n or z >= n:
            raise HTTPException(
                status_code=400,
                detail=f"Cell ({x}, {z}) is outside the {n}x{n} grid",
            )
        height = frame.height[z, x]
        normal = frame.normal[z, x]
        cell = CellSample(
            x=x,
            z=z,
            displacement_x=float(height[0]),
            height=float(height[1]),
            displacement_z=float(height[2]),
            normal=[float(value) for value in normal[:3]],
            foam=float(normal[3]),
        )
        generation, frame_time = frame.generation, frame.time

    return CellQueryResponse(
        simulation_id=simulation_id,
        generation=generation,
        time=frame_time,
        cell=cell,
    )
