from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, Dict, List, Optional

from .errors import InvalidInput

Minutes = int

# Fixed segment times (minutes)
TRAVEL_AB: Minutes = 15
TRAVEL_BC: Minutes = 20
DWELL_B: Minutes = 2

TRACK_AB = "trackAB"
STATION_B = "stationB"
TRACK_BC1 = "trackBC1"
TRACK_BC2 = "trackBC2"
RESOURCES = (TRACK_AB, STATION_B, TRACK_BC1, TRACK_BC2)
BC_TRACKS = {1: TRACK_BC1, 2: TRACK_BC2}


class Priority(IntEnum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4

    @classmethod
    def parse(cls, value: Any) -> "Priority":
        if isinstance(value, Priority):
            return value
        if isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        raise InvalidInput(f"Unknown priority {value!r}")

    @property
    def label(self) -> str:
        return self.name.lower()


def parse_instant(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise InvalidInput(f"Expected an ISO timestamp, got {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidInput(f"Malformed timestamp {value!r}") from exc


@dataclass(frozen=True)
class Train:
    id: str
    priority: Priority
    scheduled_departure: datetime
    destination: str = ""  # informational only

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Train":
        if not isinstance(d, dict) or "id" not in d:
            raise InvalidInput(f"Train record must be an object with an id, got {d!r}")
        dep = d.get("scheduledDeparture", d.get("scheduled_departure"))
        if dep is None:
            raise InvalidInput(f"Train {d['id']} has no scheduled departure")
        return cls(
            id=str(d["id"]),
            priority=Priority.parse(d.get("priority", "medium")),
            scheduled_departure=parse_instant(dep),
            destination=str(d.get("destination") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority.label,
            "scheduledDeparture": self.scheduled_departure.isoformat(),
            "destination": self.destination,
        }


@dataclass(frozen=True)
class TrackLayout:
    has_loop_at_b: bool = True
    # Only single-track A->B is modelled; False is accepted and treated as True.
    single_track_ab: bool = True
    dual_track_bc: bool = True

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "TrackLayout":
        d = d or {}
        return cls(
            has_loop_at_b=bool(d.get("hasLoopAtB", d.get("has_loop_at_b", True))),
            single_track_ab=bool(d.get("singleTrackAB", d.get("single_track_ab", True))),
            dual_track_bc=bool(d.get("dualTrackBC", d.get("dual_track_bc", True))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasLoopAtB": self.has_loop_at_b,
            "singleTrackAB": self.single_track_ab,
            "dualTrackBC": self.dual_track_bc,
        }


@dataclass(frozen=True)
class Reservation:
    resource: str
    start: datetime
    end: datetime  # exclusive
    train_id: str
    # stationB only: owner priority and arrival at B (start of its hold)
    priority: Optional[Priority] = None
    held_from: Optional[datetime] = None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


@dataclass(frozen=True)
class OptimizedTrain:
    id: str
    priority: Priority
    scheduled_departure: datetime
    destination: str
    optimized_departure: datetime
    delay: Minutes
    sequence: int
    arrival_b: datetime
    departure_b: datetime
    bc_track: int

    @property
    def train(self) -> Train:
        return Train(self.id, self.priority, self.scheduled_departure, self.destination)

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.train.to_dict(),
            "optimizedDeparture": self.optimized_departure.isoformat(),
            "delay": self.delay,
            "sequence": self.sequence,
            "arrivalB": self.arrival_b.isoformat(),
            "departureB": self.departure_b.isoformat(),
            "bcTrack": self.bc_track,
        }


@dataclass(frozen=True)
class KPI:
    total_delay: float = 0.0
    average_delay: float = 0.0
    on_time_percentage: float = 0.0
    high_priority_on_time: float = 100.0
    track_utilization: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalDelay": self.total_delay,
            "averageDelay": self.average_delay,
            "onTimePercentage": self.on_time_percentage,
            "highPriorityOnTime": self.high_priority_on_time,
            "trackUtilization": self.track_utilization,
        }


@dataclass(frozen=True)
class OptimizationResult:
    optimized_trains: List[OptimizedTrain] = field(default_factory=list)
    kpis: KPI = field(default_factory=KPI)
    conflicts_resolved: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimizedTrains": [t.to_dict() for t in self.optimized_trains],
            "kpis": self.kpis.to_dict(),
            "conflictsResolved": self.conflicts_resolved,
        }


@dataclass(frozen=True)
class PriorityChange:
    train_id: str
    new_priority: Priority


@dataclass(frozen=True)
class ScenarioDelta:
    delay_train_id: Optional[str] = None
    delay_minutes: Minutes = 0
    remove_loop: bool = False
    change_priority: Optional[PriorityChange] = None

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "ScenarioDelta":
        d = d or {}
        cp = d.get("changePriority", d.get("change_priority"))
        change = None
        if isinstance(cp, dict) and cp.get("trainId", cp.get("train_id")):
            change = PriorityChange(
                train_id=str(cp.get("trainId", cp.get("train_id"))),
                new_priority=Priority.parse(cp.get("newPriority", cp.get("new_priority"))),
            )
        try:
            minutes = int(d.get("delayMinutes", d.get("delay_minutes")) or 0)
        except (TypeError, ValueError) as exc:
            raise InvalidInput(f"delayMinutes must be an integer, got {d.get('delayMinutes')!r}") from exc
        return cls(
            delay_train_id=d.get("delayTrainId", d.get("delay_train_id")),
            delay_minutes=minutes,
            remove_loop=bool(d.get("removeLoop", d.get("remove_loop", False))),
            change_priority=change,
        )
