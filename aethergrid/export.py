from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

DEFAULT_FILENAME = "AetherGrid_Performance_Log.csv"

HEADER = (
    "DrawNumber,DrawDate,ForecastMain,ActualMain,MainHits,ForecastStar,ActualStar,"
    "StarHits,BaselineForecast,BaselineHits,AverageWinnerRank"
)


def _numbers(values: Sequence[int]) -> str:
    return '"' + " ".join(str(int(v)) for v in values) + '"'


def _number(value: Any) -> str:
    # counts stay integers, everything else gets two decimals
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return f"{float(value):.2f}"


def performance_log_to_csv(log: Sequence[Dict[str, Any]]) -> str:
    rows = [HEADER]
    for item in log:
        rows.append(",".join([
            _number(item["draw_number"]),
            str(item["draw_date"]),
            _numbers(item["forecast_top10_main"]),
            _numbers(item["actual_main"]),
            _number(item["main_hits"]),
            _numbers(item["forecast_top5_star"]),
            _numbers(item["actual_star"]),
            _number(item["star_hits"]),
            _numbers(item.get("forecast_baseline_main") or []),
            _number(item.get("baseline_main_hits") or 0),
            _number(item.get("average_winner_rank") or 0.0),
        ]))
    return "\n".join(rows) + "\n"


def write_performance_csv(log: Sequence[Dict[str, Any]], path: Optional[str] = None) -> str:
    """Write the CSV to `path`, or to AETHER_EXPORT_DIR (default: cwd) under the default name."""
    if path is None:
        path = os.path.join(os.getenv("AETHER_EXPORT_DIR", "."), DEFAULT_FILENAME)
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(performance_log_to_csv(log), encoding="utf-8")
    print(f"[EXPORT] Wrote {len(log)} rows to {target}")
    sys.stdout.flush()
    return str(target)
