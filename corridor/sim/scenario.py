from dataclasses import replace
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

from corridor.core.config import DispatchConfig
from corridor.core.dispatcher import optimize_dispatch
from corridor.core.models import (
    BC_TRACKS,
    DWELL_B,
    STATION_B,
    TRACK_AB,
    TRAVEL_BC,
    OptimizationResult,
    Reservation,
    ScenarioDelta,
    TrackLayout,
    Train,
)
from corridor.core.occupancy import TrackOccupancy


def apply_scenario(
    trains: Sequence[Train], layout: TrackLayout, scenario: ScenarioDelta
) -> Tuple[List[Train], TrackLayout]:
    """Return edited copies of ``trains`` and ``layout``; the inputs are left untouched.

    Unknown train ids and non-positive delays are ignored.
    """
    modified = list(trains)
    ids = {t.id for t in modified}

    if scenario.delay_train_id in ids and scenario.delay_minutes > 0:
        shift = timedelta(minutes=scenario.delay_minutes)
        modified = [
            replace(t, scheduled_departure=t.scheduled_departure + shift) if t.id == scenario.delay_train_id else t
            for t in modified
        ]

    new_layout = replace(layout, has_loop_at_b=False) if scenario.remove_loop else layout

    change = scenario.change_priority
    if change is not None and change.train_id in ids:
        modified = [replace(t, priority=change.new_priority) if t.id == change.train_id else t for t in modified]

    return modified, new_layout


def simulate_scenario(
    trains: Sequence[Train],
    layout: TrackLayout,
    scenario: ScenarioDelta,
    config: Optional[DispatchConfig] = None,
) -> OptimizationResult:
    modified, new_layout = apply_scenario(trains, layout, scenario)
    return optimize_dispatch(modified, new_layout, config=config)


def reservations_from_result(result: OptimizationResult) -> TrackOccupancy:
    """Rebuild the occupancy of all four resources from a finished schedule.

    Raises ValueError if the schedule holds two overlapping reservations on one resource.
    """
    store = TrackOccupancy()
    for o in result.optimized_trains:
        store.reserve(Reservation(TRACK_AB, o.optimized_departure, o.arrival_b, o.id))
        store.reserve(Reservation(
            STATION_B, o.departure_b - timedelta(minutes=DWELL_B), o.departure_b, o.id,
            priority=o.priority, held_from=o.arrival_b,
        ))
        store.reserve(Reservation(
            BC_TRACKS[o.bc_track], o.departure_b, o.departure_b + timedelta(minutes=TRAVEL_BC), o.id,
        ))
    return store


def timeline_json(result: OptimizationResult) -> List[Dict[str, Any]]:
    # Gantt format: one entry per reservation, ordered by resource then start
    store = reservations_from_result(result)
    rows: List[Dict[str, Any]] = []
    for resource in (TRACK_AB, STATION_B, *BC_TRACKS.values()):
        for r in store.reservations(resource):
            rows.append({
                "train": r.train_id,
                "resource": resource,
                "start": r.start.isoformat(),
                "end": r.end.isoformat(),
            })
    return rows
