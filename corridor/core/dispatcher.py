from __future__ import annotations
import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from .config import DispatchConfig
from .errors import InvalidInput
from .models import (
    BC_TRACKS,
    DWELL_B,
    STATION_B,
    TRACK_AB,
    TRAVEL_BC,
    OptimizationResult,
    OptimizedTrain,
    Priority,
    Reservation,
    TrackLayout,
    Train,
)
from .occupancy import TrackOccupancy
from .slot_search import SlotPlan, find_slot
from corridor.sim.simulator import calculate_kpis

logger = logging.getLogger(__name__)

# Greedy dispatcher:
# - Iterate trains by (priority desc, scheduled departure asc)
# - For each train, find the earliest conflict-free path A->B->C against the run's occupancy
# - Commit the path immediately and never revisit it (no backtracking across trains)
# - Finally order by actual departure and number the sequence 1..N


def validate_trains(trains: Sequence[Train]) -> None:
    aware: Optional[bool] = None
    for t in trains:
        if not isinstance(t, Train):
            raise InvalidInput(f"Expected Train, got {type(t).__name__}")
        if not isinstance(t.priority, Priority):
            raise InvalidInput(f"Train {t.id} has invalid priority {t.priority!r}")
        if not isinstance(t.scheduled_departure, datetime):
            raise InvalidInput(f"Train {t.id} has malformed scheduled departure {t.scheduled_departure!r}")
        is_aware = t.scheduled_departure.tzinfo is not None
        if aware is None:
            aware = is_aware
        elif aware != is_aware:
            raise InvalidInput("Scheduled departures mix timezone-aware and naive timestamps")


def processing_order(trains: Sequence[Train]) -> List[Train]:
    # sorted() is stable, so full ties keep caller order
    return sorted(trains, key=lambda t: (-int(t.priority), t.scheduled_departure))


def commit_path(store: TrackOccupancy, train: Train, plan: SlotPlan) -> None:
    store.reserve(Reservation(TRACK_AB, plan.departure, plan.arrival_b, train.id))
    store.reserve(Reservation(
        STATION_B,
        plan.departure_b - timedelta(minutes=DWELL_B),
        plan.departure_b,
        train.id,
        priority=train.priority,
        held_from=plan.arrival_b,
    ))
    store.reserve(Reservation(
        BC_TRACKS[plan.bc_track],
        plan.departure_b,
        plan.departure_b + timedelta(minutes=TRAVEL_BC),
        train.id,
    ))


def optimize_dispatch(
    trains: Sequence[Train],
    layout: TrackLayout,
    config: Optional[DispatchConfig] = None,
) -> OptimizationResult:
    validate_trains(trains)
    config = config or DispatchConfig()
    if not layout.single_track_ab:
        logger.warning("Dual-track A->B is not modelled; scheduling A->B as single track")

    store = TrackOccupancy()
    scheduled: List[OptimizedTrain] = []
    conflicts = 0

    for t in processing_order(trains):
        plan = find_slot(t, store, layout, config)
        commit_path(store, t, plan)
        conflicts += plan.conflicts
        scheduled.append(OptimizedTrain(
            id=t.id,
            priority=t.priority,
            scheduled_departure=t.scheduled_departure,
            destination=t.destination,
            optimized_departure=plan.departure,
            delay=plan.delay,
            sequence=0,
            arrival_b=plan.arrival_b,
            departure_b=plan.departure_b,
            bc_track=plan.bc_track,
        ))

    ordered = sorted(scheduled, key=lambda o: o.optimized_departure)
    optimized = [
        replace(o, sequence=i + 1) for i, o in enumerate(ordered)
    ]
    kpis = calculate_kpis(optimized)
    logger.info(
        "Dispatched %d trains: total delay %s min, %d conflicts resolved (loop at B: %s)",
        len(optimized), kpis.total_delay, conflicts, layout.has_loop_at_b,
    )
    return OptimizationResult(optimized_trains=optimized, kpis=kpis, conflicts_resolved=conflicts)
