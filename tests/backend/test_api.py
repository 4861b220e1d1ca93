"""
API 端点测试。

使用 TestClient 与 httpx 测试 FastAPI 端点。
"""

import time

import pytest
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

from ocean_fft.api import simulation as simulation_api
from ocean_fft.main import app


def _request_data(resolution=16, autostart=False, total_ticks=None, **solver):
    return {
        "grid": {"resolution": resolution, "world_unit": 200.0, "gravity": 9.81},
        "wind": {"direction": [1.0, 0.0], "speed": 26.0},
        "spectrum": {"amplitude": 20.0, "seed": 7},
        "surface": {"choppiness": 1.3, "height_adjust": 1.2, "foam_intensity": 2.0},
        "solver": {"timescale": 0.04, "workers": 2, **solver},
        "clock": {
            "tick_interval": 0.01,
            "total_ticks": total_ticks,
            "autostart": autostart,
        },
    }


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
async def async_client():
    """异步测试客户端。"""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac


@pytest.fixture
def simulation_id(client):
    """创建未自动启动的模拟任务并返回 ID。"""
    response = client.post("/api/simulate/ocean", json=_request_data())
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "pending"
    return data["simulation_id"]


def _wait_for_status(client, simulation_id, statuses, timeout=10.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        response = client.get(f"/api/simulation/{simulation_id}/state")
        if response.status_code == 200 and response.json()["status"] in statuses:
            return response.json()
        time.sleep(0.05)
    pytest.fail(f"simulation {simulation_id} did not reach {statuses}")


def test_root(client):
    """测试根路径。"""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Ocean FFT Backend API"


def test_health(client):
    """测试健康检查。"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_create_simulation_invalid_resolution(client):
    """测试非 2 的幂分辨率返回 422。"""
    response = client.post("/api/simulate/ocean", json=_request_data(resolution=12))
    assert response.status_code == 422


def test_create_simulation_invalid_wind(client):
    """测试零风向返回 422。"""
    data = _request_data()
    data["wind"]["direction"] = [0.0, 0.0]
    response = client.post("/api/simulate/ocean", json=data)
    assert response.status_code == 422


def test_initial_state(client, simulation_id):
    """测试新建任务的状态。"""
    response = client.get(f"/api/simulation/{simulation_id}/state")
    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "pending"
    assert data["state"] == "spectrum_ready"
    assert data["ticks"] == 0
    assert data["generation"] == 0
    assert data["resolution"] == 16
    assert data["evolution_mode"] == "continuous"
    assert data["normal_mode"] == "central_difference"
    assert data["paused"] is False


def test_step_and_frame(client, simulation_id):
    """测试手动推进后读取帧数据。"""
    for expected in (1, 2):
        response = client.post(f"/api/simulation/{simulation_id}/step")
        assert response.status_code == 200
        data = response.json()
        assert data["computed"] is True
        assert data["generation"] == expected
        assert data["time"] == pytest.approx(0.04 * expected)

    response = client.get(f"/api/query/simulation/{simulation_id}/frame")
    assert response.status_code == 200
    frame = response.json()

    assert frame["generation"] == 2
    assert frame["resolution"] == 16
    assert len(frame["height"]) == 16
    assert len(frame["height"][0]) == 16
    assert len(frame["height"][0][0]) == 4
    assert len(frame["normal"][0][0]) == 4
    assert frame["height"][3][5][3] == 1.0

    state = client.get(f"/api/simulation/{simulation_id}/state").json()
    assert state["state"] == "evolving"
    assert state["ticks"] == 2


def test_query_cell(client, simulation_id):
    """测试单元查询与帧数据一致。"""
    client.post(f"/api/simulation/{simulation_id}/step")
    frame = client.get(f"/api/query/simulation/{simulation_id}/frame").json()

    response = client.get(
        "/api/query/cell", params={"simulation_id": simulation_id, "x": 5, "z": 3}
    )
    assert response.status_code == 200
    data = response.json()
    cell = data["cell"]

    assert data["generation"] == 1
    assert cell["x"] == 5
    assert cell["z"] == 3
    assert cell["displacement_x"] == pytest.approx(frame["height"][3][5][0])
    assert cell["height"] == pytest.approx(frame["height"][3][5][1])
    assert cell["displacement_z"] == pytest.approx(frame["height"][3][5][2])
    assert cell["normal"] == pytest.approx(frame["normal"][3][5][:3])
    assert cell["foam"] in (0.0, 1.0)


def test_query_cell_out_of_range(client, simulation_id):
    """测试越界单元查询。"""
    response = client.get(
        "/api/query/cell", params={"simulation_id": simulation_id, "x": 16, "z": 0}
    )
    assert response.status_code == 400

    response = client.get(
        "/api/query/cell", params={"simulation_id": simulation_id, "x": -1, "z": 0}
    )
    assert response.status_code == 422


def test_unknown_simulation(client):
    """测试不存在的任务返回 404。"""
    missing = "non-existent-id"
    assert client.get(f"/api/simulation/{missing}/state").status_code == 404
    assert client.post(f"/api/simulation/{missing}/step").status_code == 404
    assert client.post(f"/api/simulation/{missing}/stop").status_code == 404
    assert client.post(f"/api/simulation/{missing}/clock/pause").status_code == 404
    assert client.get(f"/api/query/simulation/{missing}/frame").status_code == 404
    response = client.get(
        "/api/query/cell", params={"simulation_id": missing, "x": 0, "z": 0}
    )
    assert response.status_code == 404


def test_surface_update(client, simulation_id):
    """测试海面参数更新在下一个 tick 生效。"""
    response = client.patch(
        f"/api/simulation/{simulation_id}/surface", json={"foam_intensity": 0.0}
    )
    assert response.status_code == 200
    surface = response.json()["surface"]
    assert surface["foam_intensity"] == 0.0
    assert surface["choppiness"] == 1.3

    client.post(f"/api/simulation/{simulation_id}/step")
    state = client.get(f"/api/simulation/{simulation_id}/state").json()
    assert state["surface"]["foam_intensity"] == 0.0

    frame = client.get(f"/api/query/simulation/{simulation_id}/frame").json()
    assert all(cell[3] == 0.0 for row in frame["normal"] for cell in row)

    response = client.patch(
        f"/api/simulation/{simulation_id}/surface", json={"choppiness": -1.0}
    )
    assert response.status_code == 422


def test_pause_skips_ticks(client, simulation_id):
    """测试暂停后手动推进不计算新帧。"""
    client.post(f"/api/simulation/{simulation_id}/step")

    response = client.post(f"/api/simulation/{simulation_id}/clock/pause")
    assert response.status_code == 200
    assert response.json()["status"] == "paused"

    response = client.post(f"/api/simulation/{simulation_id}/step")
    assert response.status_code == 200
    data = response.json()
    assert data["computed"] is False
    assert data["generation"] == 1

    state = client.get(f"/api/simulation/{simulation_id}/state").json()
    assert state["paused"] is True
    assert state["status"] == "paused"


def test_resume_starts_clock(client, simulation_id):
    """测试恢复接口启动后台时钟。"""
    response = client.post(f"/api/simulation/{simulation_id}/clock/resume")
    assert response.status_code == 200
    assert response.json()["status"] == "running"

    deadline = time.time() + 10.0
    ticks = 0
    while time.time() < deadline and ticks < 3:
        time.sleep(0.05)
        ticks = client.get(f"/api/simulation/{simulation_id}/state").json()["ticks"]
    assert ticks >= 3

    response = client.post(f"/api/simulation/{simulation_id}/stop")
    assert response.status_code == 200
    assert response.json()["status"] == "stopped"


def test_clock_runs_until_total_ticks(client):
    """测试自动启动的时钟在 total_ticks 后完成。"""
    response = client.post(
        "/api/simulate/ocean", json=_request_data(autostart=True, total_ticks=3)
    )
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "running"
    simulation_id = data["simulation_id"]

    state = _wait_for_status(client, simulation_id, {"completed"})
    assert state["ticks"] == 3
    assert state["generation"] == 3

    # 完成后仍可读取最后一帧，但不能再推进或控制
    response = client.get(f"/api/query/simulation/{simulation_id}/frame")
    assert response.status_code == 200
    assert response.json()["generation"] == 3
    assert client.post(f"/api/simulation/{simulation_id}/step").status_code == 409
    assert client.post(f"/api/simulation/{simulation_id}/clock/pause").status_code == 400


def test_stop_releases_resources(client, simulation_id):
    """测试停止后释放资源。"""
    response = client.post(f"/api/simulation/{simulation_id}/stop")
    assert response.status_code == 200
    assert response.json()["status"] == "stopped"

    assert client.post(f"/api/simulation/{simulation_id}/step").status_code == 409
    assert client.get(f"/api/query/simulation/{simulation_id}/frame").status_code == 409
    assert client.post(f"/api/simulation/{simulation_id}/clock/resume").status_code == 400

    # 重复停止是幂等的
    response = client.post(f"/api/simulation/{simulation_id}/stop")
    assert response.status_code == 200
    assert response.json()["status"] == "stopped"


def test_stop_all(client):
    """测试停止所有运行中的任务。"""
    ids = []
    for autostart in (True, False):
        response = client.post(
            "/api/simulate/ocean", json=_request_data(autostart=autostart)
        )
        assert response.status_code == 201
        ids.append(response.json()["simulation_id"])

    response = client.post("/api/simulations/stop-all")
    assert response.status_code == 200
    data = response.json()
    assert data["stopped_count"] >= 2

    for simulation_id in ids:
        response = client.post(f"/api/simulation/{simulation_id}/step")
        assert response.status_code == 409


@pytest.mark.anyio
async def test_async_create_and_step(async_client):
    """测试异步客户端创建任务并推进。"""
    response = await async_client.post(
        "/api/simulate/ocean",
        json=_request_data(evolution_mode="cached", normal_mode="spectral_derivative"),
    )
    assert response.status_code == 201
    simulation_id = response.json()["simulation_id"]

    for _ in range(3):
        response = await async_client.post(f"/api/simulation/{simulation_id}/step")
        assert response.status_code == 200

    response = await async_client.get(f"/api/simulation/{simulation_id}/state")
    data = response.json()
    assert data["evolution_mode"] == "cached"
    assert data["normal_mode"] == "spectral_derivative"
    assert data["ticks"] == 3
    assert data["time"] == pytest.approx(0.15)

    response = await async_client.post(f"/api/simulation/{simulation_id}/stop")
    assert response.status_code == 200
    assert response.json()["status"] == "stopped"


def test_clock_task_reference_held_while_running(client):
    """测试后台时钟协程在运行期间被持有，停止后释放引用。"""
    response = client.post("/api/simulate/ocean", json=_request_data(autostart=True))
    assert response.status_code == 201
    simulation_id = response.json()["simulation_id"]

    clock = simulation_api._clock_tasks.get(simulation_id)
    assert clock is not None
    assert not clock.done()

    response = client.post(f"/api/simulation/{simulation_id}/stop")
    assert response.status_code == 200

    deadline = time.time() + 10.0
    while time.time() < deadline and simulation_id in simulation_api._clock_tasks:
        time.sleep(0.05)
    assert simulation_id not in simulation_api._clock_tasks
    assert clock.done()
