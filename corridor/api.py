from datetime import datetime
from typing import Any, Dict, List, Literal

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from pydantic import BaseModel, Field

from corridor.core.config import DispatchConfig
from corridor.core.dispatcher import optimize_dispatch
from corridor.core.errors import InvalidInput, NoFeasibleSlot
from corridor.core.models import (
    OptimizationResult,
    Priority,
    PriorityChange,
    ScenarioDelta,
    TrackLayout,
    Train,
)
from corridor.sim.audit import write_audit
from corridor.sim.scenario import simulate_scenario, timeline_json

app = FastAPI(title="Corridor Dispatch API")


@app.exception_handler(InvalidInput)
async def invalid_input_handler(request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse(status_code=422, content={"error": "invalid input", "detail": str(exc)})


PriorityName = Literal["critical", "high", "medium", "low"]


class TrainIn(BaseModel):
    id: str
    priority: PriorityName
    scheduledDeparture: datetime
    destination: str = ""

    def to_train(self) -> Train:
        return Train(
            id=self.id,
            priority=Priority.parse(self.priority),
            scheduled_departure=self.scheduledDeparture,
            destination=self.destination,
        )


class LayoutIn(BaseModel):
    hasLoopAtB: bool = True
    singleTrackAB: bool = True
    dualTrackBC: bool = True

    def to_layout(self) -> TrackLayout:
        return TrackLayout(
            has_loop_at_b=self.hasLoopAtB,
            single_track_ab=self.singleTrackAB,
            dual_track_bc=self.dualTrackBC,
        )


class PriorityChangeIn(BaseModel):
    trainId: str
    newPriority: PriorityName


class ScenarioIn(BaseModel):
    delayTrainId: str | None = None
    delayMinutes: int = 0
    removeLoop: bool = False
    changePriority: PriorityChangeIn | None = None

    def to_delta(self) -> ScenarioDelta:
        change = None
        if self.changePriority is not None:
            change = PriorityChange(self.changePriority.trainId, Priority.parse(self.changePriority.newPriority))
        return ScenarioDelta(
            delay_train_id=self.delayTrainId,
            delay_minutes=self.delayMinutes,
            remove_loop=self.removeLoop,
            change_priority=change,
        )


class DispatchRequest(BaseModel):
    trains: List[TrainIn] = Field(default_factory=list)
    layout: LayoutIn = Field(default_factory=LayoutIn)


class SimulateRequest(DispatchRequest):
    scenario: ScenarioIn = Field(default_factory=ScenarioIn)


def _no_slot(exc: NoFeasibleSlot) -> Dict[str, Any]:
    return {"error": "no feasible slot", "train_id": exc.train_id, "horizon_minutes": exc.horizon_minutes}


def _run(body: DispatchRequest, config: DispatchConfig) -> OptimizationResult:
    trains = [t.to_train() for t in body.trains]
    return optimize_dispatch(trains, body.layout.to_layout(), config=config)


@app.get("/")
async def root() -> RedirectResponse:
    # Redirect base URL to interactive docs to avoid 404 confusion
    return RedirectResponse(url="/docs")


@app.get("/favicon.ico")
async def favicon() -> Response:
    return Response(status_code=204)


@app.post("/optimize")
async def optimize(body: DispatchRequest) -> Dict[str, Any]:
    cfg = DispatchConfig()
    try:
        result = _run(body, cfg)
    except NoFeasibleSlot as exc:
        return _no_slot(exc)
    write_audit({
        "type": "optimize",
        "layout": body.layout.model_dump(),
        "count": len(result.optimized_trains),
        "conflicts_resolved": result.conflicts_resolved,
        "kpis": result.kpis.to_dict(),
    }, cfg)
    return result.to_dict()


@app.post("/simulate")
async def simulate(body: SimulateRequest) -> Dict[str, Any]:
    """Re-run the dispatcher on a what-if copy of the inputs.

    The scenario may delay one train, remove the loop at B and/or change one
    train's priority. Unknown train ids leave the inputs unchanged.
    """
    cfg = DispatchConfig()
    trains = [t.to_train() for t in body.trains]
    try:
        result = simulate_scenario(trains, body.layout.to_layout(), body.scenario.to_delta(), config=cfg)
    except NoFeasibleSlot as exc:
        return _no_slot(exc)
    write_audit({
        "type": "simulate",
        "scenario": body.scenario.model_dump(),
        "count": len(result.optimized_trains),
        "kpis": result.kpis.to_dict(),
    }, cfg)
    return result.to_dict()


@app.post("/kpis")
async def kpis(body: DispatchRequest) -> Dict[str, Any]:
    cfg = DispatchConfig()
    try:
        result = _run(body, cfg)
    except NoFeasibleSlot as exc:
        return _no_slot(exc)
    k = result.kpis.to_dict()
    write_audit({"type": "kpis", "kpis": k, "count": len(result.optimized_trains)}, cfg)
    return {"kpis": k, "conflictsResolved": result.conflicts_resolved}


@app.post("/timeline")
async def timeline(body: DispatchRequest) -> Dict[str, Any]:
    try:
        result = _run(body, DispatchConfig())
    except NoFeasibleSlot as exc:
        return _no_slot(exc)
    rows = timeline_json(result)
    return {"timeline": rows, "count": len(rows)}


@app.get("/demo")
async def demo(loop: bool = True) -> Dict[str, Any]:
    trains = [
        Train("EXP-101", Priority.CRITICAL, datetime(2024, 1, 15, 9, 5), "C"),
        Train("FRT-202", Priority.LOW, datetime(2024, 1, 15, 9, 0), "C"),
        Train("PAS-303", Priority.MEDIUM, datetime(2024, 1, 15, 9, 10), "C"),
        Train("PAS-404", Priority.HIGH, datetime(2024, 1, 15, 9, 20), "C"),
    ]
    try:
        result = optimize_dispatch(trains, TrackLayout(has_loop_at_b=loop))
    except NoFeasibleSlot as exc:
        return _no_slot(exc)
    return result.to_dict()
