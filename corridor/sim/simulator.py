from decimal import ROUND_HALF_UP, Decimal
from typing import List

from corridor.core.models import KPI, TRAVEL_AB, OptimizedTrain, Priority

# Minimum spacing (minutes) between departures from A on the single A->B track
MIN_HEADWAY_AB = TRAVEL_AB
MAX_UTILIZATION = 95.0
SINGLE_TRAIN_UTILIZATION = 25.0

HIGH_PRIORITIES = (Priority.CRITICAL, Priority.HIGH)


def round2(value: float) -> float:
    # pinned to half-up so golden outputs are stable
    return float(Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def track_utilization(optimized: List[OptimizedTrain]) -> float:
    if not optimized:
        return 0.0
    if len(optimized) == 1:
        return SINGLE_TRAIN_UTILIZATION
    departures = sorted(o.optimized_departure for o in optimized)
    gaps = len(departures) - 1
    # sum of consecutive intervals telescopes to last - first
    actual = (departures[-1] - departures[0]).total_seconds() / 60.0
    if actual <= 0:
        return MAX_UTILIZATION
    utilization = 100.0 * MIN_HEADWAY_AB * gaps / actual
    return max(0.0, min(utilization, MAX_UTILIZATION))


def calculate_kpis(optimized: List[OptimizedTrain]) -> KPI:
    """Aggregate delay, punctuality and utilization KPIs over a finished schedule."""
    if not optimized:
        return KPI(total_delay=0.0, average_delay=0.0, on_time_percentage=0.0,
                   high_priority_on_time=100.0, track_utilization=0.0)
    n = len(optimized)
    total = float(sum(o.delay for o in optimized))
    on_time = sum(1 for o in optimized if o.delay == 0)
    high = [o for o in optimized if o.priority in HIGH_PRIORITIES]
    # vacuously 100 when the batch has no critical/high trains
    high_otp = 100.0 * sum(1 for o in high if o.delay == 0) / len(high) if high else 100.0
    return KPI(
        total_delay=round2(total),
        average_delay=round2(total / n),
        on_time_percentage=round2(100.0 * on_time / n),
        high_priority_on_time=round2(high_otp),
        track_utilization=round2(track_utilization(optimized)),
    )
