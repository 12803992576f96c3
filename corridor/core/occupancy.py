from __future__ import annotations
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .models import RESOURCES, Reservation

# Occupancy store for a single dispatch run:
# - one list of [start, end) reservations per physical resource, sorted by start
# - created fresh by the scheduler and dropped when the run returns


class TrackOccupancy:
    def __init__(self, resources: Iterable[str] = RESOURCES):
        self._by_resource: Dict[str, List[Reservation]] = {r: [] for r in resources}

    def reservations(self, resource: str) -> List[Reservation]:
        return list(self._occ(resource))

    def is_free(self, resource: str, start: datetime, end: datetime) -> bool:
        for r in self._occ(resource):
            if r.start >= end:
                break  # sorted by start, nothing later can overlap
            if r.overlaps(start, end):
                return False
        return True

    def conflicts(self, resource: str, start: datetime, end: datetime) -> List[Reservation]:
        return [r for r in self._occ(resource) if r.overlaps(start, end)]

    def reserve(self, reservation: Reservation) -> Reservation:
        occ = self._occ(reservation.resource)
        if reservation.end <= reservation.start:
            raise ValueError(f"Empty reservation interval for train {reservation.train_id} on {reservation.resource}")
        clash = self.conflicts(reservation.resource, reservation.start, reservation.end)
        if clash:
            raise ValueError(
                f"Reservation for train {reservation.train_id} on {reservation.resource} "
                f"overlaps train {clash[0].train_id}"
            )
        # insert maintaining sort by start
        idx = 0
        while idx < len(occ) and occ[idx].start <= reservation.start:
            idx += 1
        occ.insert(idx, reservation)
        return reservation

    def holds_at(self, resource: str, instant: datetime) -> List[Reservation]:
        """Reservations whose hold (``held_from`` or ``start`` up to ``end``) covers ``instant``."""
        out: List[Reservation] = []
        for r in self._occ(resource):
            began = r.held_from or r.start
            if began <= instant < r.end:
                out.append(r)
        return out

    def find_overlap(self) -> Optional[tuple]:
        """Return the first overlapping pair of reservations on any resource, else None."""
        for occ in self._by_resource.values():
            latest: Optional[Reservation] = None
            for r in occ:
                if latest is not None and latest.overlaps(r.start, r.end):
                    return (latest, r)
                if latest is None or r.end > latest.end:
                    latest = r
        return None

    def __len__(self) -> int:
        return sum(len(v) for v in self._by_resource.values())

    def _occ(self, resource: str) -> List[Reservation]:
        try:
            return self._by_resource[resource]
        except KeyError:
            raise KeyError(f"Resource {resource} not found") from None
