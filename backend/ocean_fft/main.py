"""
FastAPI 应用入口。
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ocean_fft import __version__
from ocean_fft.api import api_router
from ocean_fft.core.config import settings
from ocean_fft.core.storage import task_storage
from ocean_fft.core.task_manager import release_task_resources
from ocean_fft.schemas.data import SimulationStatus

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理器。

    处理应用启动和关闭事件：关闭时停止所有任务并释放线程池与缓冲区。
    """
    logging.getLogger("ocean_fft").setLevel(settings.log_level.upper())
    logger.info("Starting %s...", settings.app_name)

    yield

    logger.info("Shutting down %s...", settings.app_name)

    tasks = task_storage.active_tasks()

    if tasks:
        logger.info("Releasing %d simulation task(s)...", len(tasks))
        for task in tasks:
            try:
                task.stop_requested = True
                task_storage.update_task(task)
                release_task_resources(task)
                if task.status not in (
                    SimulationStatus.COMPLETED,
                    SimulationStatus.FAILED,
                ):
                    task.status = SimulationStatus.STOPPED
                    task_storage.update_task(task)
            except Exception as e:
                logger.error("Error stopping task %s: %s", task.simulation_id, e)

        # 等待一小段时间，让时钟循环有机会退出
        await asyncio.sleep(0.1)

    logger.info("Backend server shutdown complete.")


def create_app() -> FastAPI:
    """创建并配置 FastAPI 应用实例。"""
    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="基于 FFT 的谱方法海面合成服务",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api")

    @app.get("/", tags=["root"])
    async def root():
        """根路径。"""
        return {
            "message": "Ocean FFT Backend API",
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/health", tags=["health"])
    async def health():
        """健康检查。"""
        return {"status": "healthy"}

    return app


app = create_app()
