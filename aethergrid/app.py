from __future__ import annotations

import random
import sys
import traceback
from typing import Any, Dict, List

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from aethergrid.config import Tuning, baseline_weights
from aethergrid.coupons import build_intelligent_coupons
from aethergrid.draws import build_draw_store
from aethergrid.export import DEFAULT_FILENAME, performance_log_to_csv
from aethergrid.meta_patterns import analyze_meta_patterns
from aethergrid.patterns import analyze_data
from aethergrid.pipeline import convert_numpy_types, run_full_analysis
from aethergrid.regime import classify_regime, detect_regime_shift
from aethergrid.schedule import predict_next_draw_date
from aethergrid.scoring import calculate_aether_scores
from aethergrid.seasonal import analyze_seasonal_patterns
from aethergrid.timing import analyze_pattern_timing
from aethergrid.worker import run_all

# Load environment variables
load_dotenv()

app = FastAPI(title="AetherGrid")


class DrawRecord(BaseModel):
    draw_date: str
    main: List[int]
    stars: List[int]


class AnalyzeRequest(BaseModel):
    records: List[DrawRecord]
    split_weekdays: bool = False


class ScoreRequest(BaseModel):
    records: List[DrawRecord]
    seed: int = 0


class ExportRequest(BaseModel):
    performance_log: List[Dict[str, Any]]


def _records(items: List[DrawRecord]) -> List[Dict[str, Any]]:
    return [r.model_dump() for r in items]


@app.get("/api/health")
def health():
    return {"ok": True}


@app.post("/api/analyze")
def analyze(request: AnalyzeRequest):
    """
    Full analysis with backtest. With split_weekdays the aggregate, Tuesday and Friday
    pipelines run in the process pool and the three bundles come back keyed by dataset.
    """
    tuning = Tuning.from_env()
    try:
        if request.split_weekdays:
            messages: List[Dict[str, Any]] = []
            results = run_all(_records(request.records), messages.append, tuning)
            if results is None:
                error = next(m for m in messages if m["type"] == "error")
                return {"error": error["payload"]["message"]}
            return results

        draws = build_draw_store(_records(request.records))
        print(f"[API] Analyzing {len(draws)} draws")
        sys.stdout.flush()
        return run_full_analysis(draws, len(request.records), tuning=tuning)
    except Exception as e:
        tb = traceback.format_exc()
        print(f"[API] Analysis error: {e}\n{tb}")
        sys.stdout.flush()
        return {"error": str(e)}


@app.post("/api/score")
def score(request: ScoreRequest):
    """Quick forecast with baseline weights, no backtest."""
    tuning = Tuning.from_env()
    try:
        draws = build_draw_store(_records(request.records))
        if not draws:
            return {"error": "No draws supplied"}
        analysis = analyze_data(draws, len(draws), tuning)
        seasonal = analyze_seasonal_patterns(draws, tuning)
        meta = analyze_meta_patterns(draws, tuning)
        timing = analyze_pattern_timing(draws, tuning)
        next_draw = predict_next_draw_date(draws)
        regime = classify_regime(timing, next_draw or draws[-1].date, tuning)
        regime_shift = detect_regime_shift(draws, tuning)

        scores = calculate_aether_scores(analysis, draws, seasonal, meta, next_draw, baseline_weights(), None, regime, tuning)
        coupons = build_intelligent_coupons(
            scores, analysis["pattern_analysis"], regime, regime_shift, random.Random(request.seed), tuning,
        )
        return convert_numpy_types({
            "aether_scores": scores,
            "intelligent_coupons": coupons,
            "detected_regime": regime,
            "regime_shift_detected": regime_shift,
            "predicted_next_draw_date": next_draw,
        })
    except Exception as e:
        tb = traceback.format_exc()
        print(f"[API] Score error: {e}\n{tb}")
        sys.stdout.flush()
        return {"error": str(e)}


@app.post("/api/export")
def export(request: ExportRequest):
    try:
        csv_text = performance_log_to_csv(request.performance_log)
    except Exception as e:
        tb = traceback.format_exc()
        print(f"[API] Export error: {e}\n{tb}")
        sys.stdout.flush()
        return {"error": str(e)}
    return PlainTextResponse(
        csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{DEFAULT_FILENAME}"'},
    )
