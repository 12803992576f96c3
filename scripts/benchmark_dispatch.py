"""Benchmark dispatch performance for varying numbers of trains.

Usage:
    python scripts/benchmark_dispatch.py -Min 10 -Max 50 -Step 10 -Spread 240
    python -m scripts.benchmark_dispatch -Min 10 -Max 50 -Step 10 -NoLoop -Json

Notes:
    - Each train probes minute by minute, so cost grows with congestion as well as train count.
    - Dense batches (small -Spread) push delays up quickly on the single A->B track.
"""

from __future__ import annotations
import argparse, random, statistics, json, time, os, sys
from datetime import datetime, timedelta
from typing import List

# Ensure project root on path
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from corridor.core.config import DispatchConfig  # type: ignore
from corridor.core.dispatcher import optimize_dispatch  # type: ignore
from corridor.core.models import Priority, TrackLayout, Train  # type: ignore

BASE = datetime(2024, 1, 15, 6, 0)


def build_random_trains(n: int, spread_minutes: int) -> List[Train]:
    trains: List[Train] = []
    for i in range(n):
        dep = BASE + timedelta(minutes=random.randint(0, spread_minutes))
        priority = random.choice(list(Priority))
        trains.append(Train(id=f"T{i+1}", priority=priority, scheduled_departure=dep, destination="C"))
    return trains


def run_once(n_trains: int, spread: int, layout: TrackLayout, config: DispatchConfig) -> dict:
    trains = build_random_trains(n_trains, spread)
    t0 = time.perf_counter()
    result = optimize_dispatch(trains, layout, config=config)
    dt = time.perf_counter() - t0
    return {
        "n_trains": n_trains,
        "loop": layout.has_loop_at_b,
        "elapsed_s": dt,
        "total_delay": result.kpis.total_delay,
        "conflicts": result.conflicts_resolved,
        "utilization": result.kpis.track_utilization,
    }


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('-Min', type=int, default=10)
    ap.add_argument('-Max', type=int, default=50)
    ap.add_argument('-Step', type=int, default=10)
    ap.add_argument('-Spread', type=int, default=240, help='minutes over which departures are scattered')
    ap.add_argument('-Repeats', type=int, default=3)
    ap.add_argument('-NoLoop', action='store_true')
    ap.add_argument('-Json', action='store_true')
    args = ap.parse_args()

    random.seed(42)
    layout = TrackLayout(has_loop_at_b=not args.NoLoop)
    # generous horizon so dense batches still clear
    config = DispatchConfig(max_probe_horizon=7 * 24 * 60)
    rows = []
    for n in range(args.Min, args.Max + 1, args.Step):
        for _ in range(args.Repeats):
            row = run_once(n, args.Spread, layout, config)
            rows.append(row)
            if args.Json:
                print(json.dumps(row))
            else:
                print(f"Trains={row['n_trains']:<3} elapsed={row['elapsed_s']*1000:7.2f} ms delay={row['total_delay']:<8} conflicts={row['conflicts']:<3} loop={row['loop']}")
    if not args.Json:
        from collections import defaultdict
        by_n = defaultdict(list)
        for r in rows:
            by_n[r['n_trains']].append(r['elapsed_s'])
        print('\nSummary (mean ms per train count)')
        for n in sorted(by_n):
            ms = statistics.fmean(by_n[n]) * 1000
            print(f"  {n:>3}: {ms:7.2f} ms")


if __name__ == '__main__':
    main()
