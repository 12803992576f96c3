import argparse
import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import List, Tuple

from corridor.core.config import DispatchConfig
from corridor.core.dispatcher import optimize_dispatch
from corridor.core.models import TrackLayout, Train

DATA_DIR = Path(__file__).parent / "data"


def load_sample(path: Path = DATA_DIR / "sample_trains.json") -> Tuple[List[Train], TrackLayout]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    trains = [Train.from_dict(t) for t in data["trains"]]
    return trains, TrackLayout.from_dict(data.get("layout"))


def main(argv=None):
    ap = argparse.ArgumentParser(description="Dispatch trains over the A-B-C corridor")
    ap.add_argument("--trains", type=Path, default=DATA_DIR / "sample_trains.json")
    ap.add_argument("--no-loop", action="store_true", help="schedule without the passing loop at B")
    ap.add_argument("--json", action="store_true", help="print the full result as JSON")
    args = ap.parse_args(argv)

    config = DispatchConfig()
    logging.basicConfig(level=config.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    trains, layout = load_sample(args.trains)
    if args.no_loop:
        layout = replace(layout, has_loop_at_b=False)
    result = optimize_dispatch(trains, layout, config=config)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    print("KPIs:", result.kpis.to_dict())
    print("Conflicts resolved:", result.conflicts_resolved)
    print("Departure order from A:")
    for o in result.optimized_trains:
        print(f"  {o.sequence:>2}. {o.id:<8} {o.priority.label:<8} "
              f"sched {o.scheduled_departure:%H:%M} -> dep {o.optimized_departure:%H:%M} "
              f"(+{o.delay} min) B->C track {o.bc_track}")


if __name__ == "__main__":
    main()
