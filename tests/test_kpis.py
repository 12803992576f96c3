from datetime import datetime, timedelta

from corridor.core.models import OptimizedTrain, Priority
from corridor.sim.simulator import calculate_kpis, round2, track_utilization


def opt(tid, priority, sched_minute, delay, seq=1):
    sched = datetime(2024, 1, 15, 9, 0) + timedelta(minutes=sched_minute)
    dep = sched + timedelta(minutes=delay)
    return OptimizedTrain(
        id=tid, priority=priority, scheduled_departure=sched, destination="C",
        optimized_departure=dep, delay=delay, sequence=seq,
        arrival_b=dep + timedelta(minutes=15), departure_b=dep + timedelta(minutes=17), bc_track=1,
    )


def test_delay_and_punctuality_kpis():
    trains = [
        opt("A", Priority.CRITICAL, 0, 0, 1),
        opt("B", Priority.HIGH, 10, 10, 2),
        opt("C", Priority.LOW, 30, 10, 3),
    ]
    k = calculate_kpis(trains)
    assert k.total_delay == 20.0
    assert k.average_delay == 6.67
    assert k.on_time_percentage == 33.33
    assert k.high_priority_on_time == 50.0
    # departures 09:00, 09:20, 09:40 -> 2 gaps of 15 min minimum over 40 min
    assert k.track_utilization == 75.0


def test_high_priority_on_time_is_vacuously_full():
    k = calculate_kpis([opt("A", Priority.LOW, 0, 0), opt("B", Priority.MEDIUM, 5, 10, 2)])
    assert k.high_priority_on_time == 100.0
    assert k.on_time_percentage == 50.0


def test_utilization_constants_and_clamp():
    assert track_utilization([]) == 0.0
    assert track_utilization([opt("A", Priority.LOW, 0, 0)]) == 25.0
    # packed at the 15 minute floor
    packed = [opt("A", Priority.LOW, 0, 0), opt("B", Priority.LOW, 15, 0, 2)]
    assert track_utilization(packed) == 95.0
    # spare capacity: one 15 minute gap stretched to 60
    sparse = [opt("A", Priority.LOW, 0, 0), opt("B", Priority.LOW, 60, 0, 2)]
    assert track_utilization(sparse) == 25.0


def test_rounding_is_half_up():
    assert round2(2.675) == 2.68
    assert round2(66.666666) == 66.67
    assert round2(0.125) == 0.13
