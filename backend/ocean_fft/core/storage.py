"""
任务存储模块。

使用内存存储模拟任务，进程重启后不保留。任务会在事件循环与执行器线程中被访问，读写均加锁。
"""

import threading
from typing import Dict, Iterable, List, Optional

from ocean_fft.models.simulation import SimulationTask
from ocean_fft.schemas.data import SimulationStatus


class TaskStorage:
    """任务存储（内存）。"""

    def __init__(self):
        self._tasks: Dict[str, SimulationTask] = {}
        self._lock = threading.Lock()

    def add_task(self, task: SimulationTask) -> None:
        """添加任务。"""
        with self._lock:
            self._tasks[task.simulation_id] = task

    def get_task(self, simulation_id: str) -> Optional[SimulationTask]:
        """获取任务。"""
        with self._lock:
            return self._tasks.get(simulation_id)

    def update_task(self, task: SimulationTask) -> None:
        """更新任务（任务不存在时忽略）。"""
        with self._lock:
            if task.simulation_id in self._tasks:
                self._tasks[task.simulation_id] = task

    def list_tasks(
        self, statuses: Optional[Iterable[SimulationStatus]] = None
    ) -> List[SimulationTask]:
        """
        列出任务。

        Args:
            statuses: 只返回这些状态的任务，None 表示全部
        """
        with self._lock:
            tasks = list(self._tasks.values())
        if statuses is None:
            return tasks
        wanted = set(statuses)
        return [task for task in tasks if task.status in wanted]

    def active_tasks(self) -> List[SimulationTask]:
        """仍持有编排器（线程池与缓冲区）的任务。"""
        with self._lock:
            return [
                task for task in self._tasks.values()
                if task.orchestrator is not None
            ]


# 全局任务存储实例
task_storage = TaskStorage()
