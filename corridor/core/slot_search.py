from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .config import DispatchConfig
from .errors import NoFeasibleSlot
from .models import (
    BC_TRACKS,
    DWELL_B,
    STATION_B,
    TRACK_AB,
    TRAVEL_AB,
    TRAVEL_BC,
    Minutes,
    TrackLayout,
    Train,
)
from .occupancy import TrackOccupancy

logger = logging.getLogger(__name__)

ONE_MINUTE = timedelta(minutes=1)


@dataclass(frozen=True)
class StationBPlan:
    departure_b: datetime
    bc_track: int
    overtaking_ok: bool = True


@dataclass(frozen=True)
class SlotPlan:
    departure: datetime
    arrival_b: datetime
    departure_b: datetime
    bc_track: int
    delay: Minutes
    conflicts: int  # 0 or 1


def choose_bc_track(store: TrackOccupancy, start: datetime, layout: TrackLayout) -> Optional[int]:
    """Pick the B->C track free for ``[start, start + 20min)``; track 1 wins ties."""
    end = start + timedelta(minutes=TRAVEL_BC)
    tracks = (1, 2) if layout.dual_track_bc else (1,)
    for n in tracks:
        if store.is_free(BC_TRACKS[n], start, end):
            return n
    return None


def _platform_free(store: TrackOccupancy, departure_b: datetime) -> bool:
    return store.is_free(STATION_B, departure_b - timedelta(minutes=DWELL_B), departure_b)


def _overtakes_higher_priority(store: TrackOccupancy, train: Train, departure_b: datetime) -> bool:
    # a strictly higher-priority train held at B at this instant keeps its turn
    for r in store.holds_at(STATION_B, departure_b):
        if r.train_id != train.id and r.priority is not None and r.priority > train.priority:
            return True
    return False


def plan_station_b(
    train: Train,
    arrival_b: datetime,
    store: TrackOccupancy,
    layout: TrackLayout,
    config: DispatchConfig,
) -> Optional[StationBPlan]:
    """Decide when ``train`` may leave B towards C, or None if it cannot pass B.

    Without a loop the train leaves FIFO right after the minimum dwell or not
    at all. With the loop it may hold on the siding for up to ``loop_window``
    minutes; the last physically clear probe is used as a fallback when the
    overtaking rule blocks every probe in the window.
    """
    earliest = arrival_b + timedelta(minutes=DWELL_B)

    if not layout.has_loop_at_b:
        if not _platform_free(store, earliest):
            return None
        track = choose_bc_track(store, earliest, layout)
        if track is None:
            return None
        return StationBPlan(departure_b=earliest, bc_track=track)

    fallback: Optional[StationBPlan] = None
    for step in range(config.loop_window + 1):
        d = earliest + step * ONE_MINUTE
        if not _platform_free(store, d):
            continue
        track = choose_bc_track(store, d, layout)
        if track is None:
            continue
        if not _overtakes_higher_priority(store, train, d):
            return StationBPlan(departure_b=d, bc_track=track)
        fallback = StationBPlan(departure_b=d, bc_track=track, overtaking_ok=False)
    if fallback is not None:
        logger.warning(
            "Train %s: no in-turn departure from B within %d min of %s; using %s",
            train.id, config.loop_window, earliest.isoformat(), fallback.departure_b.isoformat(),
        )
    return fallback


def find_slot(
    train: Train,
    store: TrackOccupancy,
    layout: TrackLayout,
    config: DispatchConfig,
) -> SlotPlan:
    """Earliest departure from A, probing forward minute by minute, that clears A->B, B and B->C."""
    scheduled = train.scheduled_departure
    for step in range(config.max_probe_horizon + 1):
        t = scheduled + step * ONE_MINUTE
        arrival_b = t + timedelta(minutes=TRAVEL_AB)
        if not store.is_free(TRACK_AB, t, arrival_b):
            continue
        plan = plan_station_b(train, arrival_b, store, layout, config)
        if plan is None:
            continue
        logger.debug("Train %s: slot found after %d min probe", train.id, step)
        return SlotPlan(
            departure=t,
            arrival_b=arrival_b,
            departure_b=plan.departure_b,
            bc_track=plan.bc_track,
            delay=step,
            conflicts=1 if step > 0 else 0,
        )
    raise NoFeasibleSlot(train.id, config.max_probe_horizon)
