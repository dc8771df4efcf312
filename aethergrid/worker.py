from __future__ import annotations

import queue as queue_module
import sys
import traceback
from concurrent.futures import FIRST_COMPLETED, ProcessPoolExecutor, wait
from multiprocessing import Manager
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from aethergrid.config import DEFAULT_TUNING, Tuning
from aethergrid.draws import Draw, build_draw_store, filter_weekday
from aethergrid.pipeline import run_full_analysis
from aethergrid.schedule import FRIDAY, TUESDAY

MessageCallback = Callable[[Dict[str, Any]], None]

DATASETS = ("total", "tuesday", "friday")


def _run_dataset(key: str, draws: Sequence[Draw], total_rows: int, progress_queue, tuning: Tuning) -> Dict[str, Any]:
    """Process-pool entry point: one full pipeline, progress relayed through the manager queue."""
    def report(update: Dict[str, Any]):
        progress_queue.put((key, update))

    return run_full_analysis(draws, total_rows, report, tuning)


class ProgressAggregator:
    """Folds per-dataset progress into one weighted percentage."""

    def __init__(self, weights: Sequence[float]):
        self.weights = dict(zip(DATASETS, weights))
        self.percentages = {key: 0.0 for key in DATASETS}

    def update(self, key: str, update: Dict[str, Any]) -> Dict[str, Any]:
        self.percentages[key] = update["percentage"]
        total = sum(self.percentages[k] * self.weights[k] for k in DATASETS)
        return {"stage": f"[{key}] {update['stage']}", "percentage": total}


def _drain(progress_queue, aggregator: ProgressAggregator, on_message: MessageCallback):
    while True:
        try:
            key, update = progress_queue.get_nowait()
        except queue_module.Empty:
            return
        on_message({"type": "progress", "payload": aggregator.update(key, update)})


def split_datasets(draws: Sequence[Draw]) -> Dict[str, Sequence[Draw]]:
    return {
        "total": draws,
        "tuesday": filter_weekday(draws, TUESDAY),
        "friday": filter_weekday(draws, FRIDAY),
    }


def run_all(
    records: Iterable[Any],
    on_message: MessageCallback,
    tuning: Tuning = DEFAULT_TUNING,
    total_rows: Optional[int] = None,
) -> Optional[Dict[str, Any]]:
    """
    Run the aggregate, Tuesday and Friday pipelines side by side in a process pool.

    Emits progress messages, then exactly one "completed" message carrying the three
    bundles, or exactly one "error" message if anything fails. Returns the bundles, or
    None after an error.
    """
    try:
        draws = build_draw_store(records)
        datasets = split_datasets(draws)
        print(f"[WORKER] Starting {len(DATASETS)} pipelines: " + ", ".join(f"{k}={len(v)}" for k, v in datasets.items()))
        sys.stdout.flush()

        aggregator = ProgressAggregator(tuning.progress_weights)
        with Manager() as manager:
            progress_queue = manager.Queue()
            with ProcessPoolExecutor(max_workers=tuning.workers) as pool:
                futures = {
                    key: pool.submit(
                        _run_dataset, key, datasets[key],
                        total_rows if key == "total" and total_rows is not None else len(datasets[key]),
                        progress_queue, tuning,
                    )
                    for key in DATASETS
                }
                pending = set(futures.values())
                while pending:
                    _, pending = wait(pending, timeout=0.2, return_when=FIRST_COMPLETED)
                    _drain(progress_queue, aggregator, on_message)
                results = {key: future.result() for key, future in futures.items()}
            _drain(progress_queue, aggregator, on_message)
    except Exception as e:
        tb = traceback.format_exc()
        print(f"[WORKER] Analysis failed: {e}\n{tb}")
        sys.stdout.flush()
        on_message({"type": "error", "payload": {"message": str(e) or e.__class__.__name__}})
        return None

    print("[WORKER] All pipelines completed")
    sys.stdout.flush()
    on_message({"type": "completed", "payload": results})
    return results
