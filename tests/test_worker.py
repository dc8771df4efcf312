from dataclasses import replace

from aethergrid.config import DEFAULT_TUNING
from aethergrid.draws import draw_to_dict
from aethergrid.worker import DATASETS, ProgressAggregator, run_all, split_datasets

TUNING = replace(DEFAULT_TUNING, workers=2)


def test_aggregator_weights():
    agg = ProgressAggregator((0.4, 0.3, 0.3))
    assert agg.update("total", {"stage": "a", "percentage": 50}) == {"stage": "[total] a", "percentage": 20.0}
    out = agg.update("friday", {"stage": "b", "percentage": 100})
    assert out["percentage"] == 50.0
    assert out["stage"] == "[friday] b"


def test_split_datasets(draws_60):
    datasets = split_datasets(draws_60)
    assert tuple(datasets) == DATASETS
    assert len(datasets["tuesday"]) + len(datasets["friday"]) == len(draws_60)


def test_run_all_completes(draws_60):
    messages = []
    records = [draw_to_dict(d) for d in draws_60[:30]]
    results = run_all(records, messages.append, TUNING)
    assert set(results) == set(DATASETS)
    assert results["total"]["analysis_result"]["valid_draws"] == 30
    assert results["tuesday"]["analysis_result"]["valid_draws"] == 15
    assert messages[-1] == {"type": "completed", "payload": results}
    assert all(m["type"] == "progress" for m in messages[:-1])
    percentages = [m["payload"]["percentage"] for m in messages[:-1]]
    assert percentages and max(percentages) <= 100 + 1e-9


def test_run_all_reports_errors():
    messages = []
    results = run_all([{"draw_date": "2024-01-02", "main": [1, 2, 3, 4, 99], "stars": [1, 2]}], messages.append, TUNING)
    assert results is None
    assert len(messages) == 1
    assert messages[0]["type"] == "error"
    assert messages[0]["payload"]["message"]
