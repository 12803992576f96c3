from datetime import datetime

import pytest

from corridor.core.models import STATION_B, TRACK_AB, Priority, Reservation
from corridor.core.occupancy import TrackOccupancy


def at(h, m):
    return datetime(2024, 1, 15, h, m)


def test_back_to_back_intervals_do_not_overlap():
    store = TrackOccupancy()
    store.reserve(Reservation(TRACK_AB, at(9, 0), at(9, 15), "T1"))
    # closed-open: the next transit may start exactly when the previous one ends
    assert store.is_free(TRACK_AB, at(9, 15), at(9, 30))
    assert not store.is_free(TRACK_AB, at(9, 14), at(9, 29))
    assert not store.is_free(TRACK_AB, at(8, 50), at(9, 5))


def test_reserve_rejects_overlap_and_keeps_sorted():
    store = TrackOccupancy()
    store.reserve(Reservation(TRACK_AB, at(9, 30), at(9, 45), "B"))
    store.reserve(Reservation(TRACK_AB, at(9, 0), at(9, 15), "A"))
    with pytest.raises(ValueError):
        store.reserve(Reservation(TRACK_AB, at(9, 10), at(9, 25), "C"))

    assert [r.train_id for r in store.reservations(TRACK_AB)] == ["A", "B"]
    assert len(store) == 2
    assert store.find_overlap() is None


def test_holds_cover_time_spent_waiting_before_platform_slot():
    store = TrackOccupancy()
    store.reserve(Reservation(STATION_B, at(10, 8), at(10, 10), "Y", priority=Priority.CRITICAL, held_from=at(9, 58)))
    assert [r.train_id for r in store.holds_at(STATION_B, at(10, 0))] == ["Y"]
    assert store.holds_at(STATION_B, at(10, 10)) == []
    assert store.holds_at(STATION_B, at(9, 57)) == []


def test_unknown_resource_raises_key_error():
    store = TrackOccupancy()
    with pytest.raises(KeyError):
        store.is_free("trackCD", at(9, 0), at(9, 10))
