import httpx
import pytest
from httpx import ASGITransport

from corridor.api import app

TRAINS = [
    {"id": "T1", "priority": "low", "scheduledDeparture": "2024-01-15T09:00:00", "destination": "C"},
    {"id": "T2", "priority": "critical", "scheduledDeparture": "2024-01-15T09:05:00", "destination": "C"},
]


@pytest.fixture(autouse=True)
def audit_to_tmp(tmp_path, monkeypatch):
    # keep audit writes out of the repository
    monkeypatch.setenv("DISPATCH_AUDIT_DIR", str(tmp_path))
    return tmp_path


@pytest.mark.asyncio
async def test_optimize_endpoint_orders_by_departure(audit_to_tmp):
    transport = ASGITransport(app=app)
    payload = {"trains": TRAINS, "layout": {"hasLoopAtB": True, "singleTrackAB": True, "dualTrackBC": True}}
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/optimize", json=payload)
        assert r.status_code == 200
        data = r.json()
    assert [t["id"] for t in data["optimizedTrains"]] == ["T2", "T1"]
    assert [t["sequence"] for t in data["optimizedTrains"]] == [1, 2]
    assert data["optimizedTrains"][1]["optimizedDeparture"] == "2024-01-15T09:20:00"
    assert data["optimizedTrains"][1]["delay"] == 20
    assert data["conflictsResolved"] == 1
    assert data["kpis"]["highPriorityOnTime"] == 100.0

    content = (audit_to_tmp / "events.jsonl").read_text(encoding="utf-8").strip().splitlines()
    assert any('"type": "optimize"' in line for line in content)


@pytest.mark.asyncio
async def test_empty_batch_returns_zero_kpis():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/optimize", json={"trains": []})
        assert r.status_code == 200
        data = r.json()
    assert data["optimizedTrains"] == []
    assert data["conflictsResolved"] == 0
    assert data["kpis"] == {
        "totalDelay": 0.0,
        "averageDelay": 0.0,
        "onTimePercentage": 0.0,
        "highPriorityOnTime": 100.0,
        "trackUtilization": 0.0,
    }


@pytest.mark.asyncio
async def test_malformed_timestamp_is_rejected():
    transport = ASGITransport(app=app)
    bad = [{"id": "T1", "priority": "low", "scheduledDeparture": "nine o'clock"}]
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/optimize", json={"trains": bad})
        assert r.status_code == 422
        r = await client.post("/optimize", json={"trains": [{**TRAINS[0], "priority": "urgent"}]})
        assert r.status_code == 422


@pytest.mark.asyncio
async def test_mixed_timezones_are_rejected():
    transport = ASGITransport(app=app)
    trains = [TRAINS[0], {**TRAINS[1], "scheduledDeparture": "2024-01-15T09:05:00Z"}]
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/optimize", json={"trains": trains})
        assert r.status_code == 422
        assert r.json()["error"] == "invalid input"


@pytest.mark.asyncio
async def test_simulate_unknown_train_matches_optimize():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        base = (await client.post("/optimize", json={"trains": TRAINS})).json()
        r = await client.post("/simulate", json={
            "trains": TRAINS,
            "scenario": {"delayTrainId": "T9", "delayMinutes": 15},
        })
        assert r.status_code == 200
    assert r.json() == base


@pytest.mark.asyncio
async def test_simulate_priority_change():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/simulate", json={
            "trains": TRAINS,
            "scenario": {"changePriority": {"trainId": "T1", "newPriority": "critical"}},
        })
        data = r.json()
    delays = {t["id"]: t["delay"] for t in data["optimizedTrains"]}
    assert delays == {"T1": 0, "T2": 10}


@pytest.mark.asyncio
async def test_kpis_and_timeline_endpoints():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/kpis", json={"trains": TRAINS})
        assert r.status_code == 200
        assert r.json()["kpis"]["totalDelay"] == 20.0

        r = await client.post("/timeline", json={"trains": TRAINS})
        assert r.status_code == 200
        data = r.json()
        assert data["count"] == len(data["timeline"]) == 6
        for key in ("train", "resource", "start", "end"):
            assert key in data["timeline"][0]


@pytest.mark.asyncio
async def test_probe_horizon_exhausted_returns_error(monkeypatch):
    monkeypatch.setenv("DISPATCH_MAX_PROBE_HORIZON", "5")
    transport = ASGITransport(app=app)
    trains = [{"id": f"T{i}", "priority": "medium", "scheduledDeparture": "2024-01-15T09:00:00"} for i in range(2)]
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.post("/optimize", json={"trains": trains})
        assert r.status_code == 200
        data = r.json()
    assert data["error"] == "no feasible slot"
    assert data["train_id"] == "T1"
    assert data["horizon_minutes"] == 5


@pytest.mark.asyncio
async def test_demo_endpoint():
    transport = ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        r = await client.get("/demo")
        assert r.status_code == 200
        data = r.json()
    assert len(data["optimizedTrains"]) == 4
    assert [t["sequence"] for t in data["optimizedTrains"]] == [1, 2, 3, 4]
