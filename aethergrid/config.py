from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Dict, Tuple
import os

# Game rules: 5 of 50 main numbers, 2 of 12 star numbers.
MAIN_MIN = 1
MAIN_MAX = 50
MAIN_COUNT = 5
STAR_MIN = 1
STAR_MAX = 12
STAR_COUNT = 2

# Birthdays cover 1-31, so 32-50 is the "high" range players tend to avoid.
BIRTHDAY_MAX = 31
# Expected sum of 5 numbers drawn uniformly from 1-50.
EXPECTED_MAIN_SUM = MAIN_COUNT * (MAIN_MIN + MAIN_MAX) / 2

MAIN_POOL_ODD = 25
MAIN_POOL_EVEN = 25
STAR_POOL_ODD = 6
STAR_POOL_EVEN = 6

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
QUARTER_NAMES = ["Q1", "Q2", "Q3", "Q4"]
ZONES = ["1-10", "11-20", "21-30", "31-40", "41-50"]

WEIGHT_KEYS: Tuple[str, ...] = (
    "frequency",
    "dormancy",
    "zone",
    "companion",
    "seasonal",
    "momentum",
    "cluster_strength",
    "stability",
)

BASELINE_WEIGHTS: Dict[str, float] = {
    "frequency": 0.25,
    "dormancy": 0.20,
    "zone": 0.10,
    "companion": 0.05,
    "seasonal": 0.10,
    "momentum": 0.15,
    "cluster_strength": 0.10,
    "stability": 0.05,
}


def baseline_weights() -> Dict[str, float]:
    """Fresh copy of the baseline weight vector (sums to 1.0)."""
    return dict(BASELINE_WEIGHTS)


def zone_name(n: int) -> str:
    return ZONES[(n - 1) // 10]


@dataclass(frozen=True)
class Tuning:
    # recency decay: weight = exp((i - (N-1)) / (N * recency_decay))
    recency_decay: float = 0.2

    # pattern analyzer
    momentum_window: int = 25
    cluster_window: int = 10
    cluster_top_companions: int = 5
    companion_top: int = 10
    hot_fraction: float = 0.67
    cold_fraction: float = 0.33
    sum_outlier_expected_pct: float = 31.7
    neighbour_expected_pct: float = 40.0
    top_pattern_count: int = 10

    # meta patterns
    transition_window: int = 25
    transition_min_draws: int = 50
    transition_hot_fraction: float = 0.3
    transition_cold_fraction: float = 0.7
    break_min_draws: int = 100
    break_factor: float = 1.5
    break_lookback: int = 5
    break_companions: int = 3
    break_min_events: int = 10
    correlation_min_draws: int = 50
    correlation_min_group: int = 10
    correlation_min_difference: float = 0.1

    # pattern timing
    timing_min_draws: int = 50
    hot_streak_window: int = 50
    hot_streak_margin: int = 10
    hot_streak_fraction: float = 0.33
    transition_top_n: int = 10
    rhythm_min_draws: int = 20
    rhythm_min_gaps: int = 5

    # regime
    regime_window: int = 50
    regime_spread_threshold: float = 0.15
    regime_repeat_threshold: float = 0.25
    hot_streak_regime_threshold: float = 4.0
    volatile_threshold: float = 0.6
    stable_threshold: float = 0.3

    # score engine
    post_dormancy_numerator: float = 50.0
    post_dormancy_min_average: float = 20.0
    post_dormancy_max_current: int = 5
    combo_min_profiles: int = 20
    combo_min_rate: float = 0.05
    combo_multiplier: float = 50.0
    combo_zone_cluster_multiplier: float = 40.0
    timing_bonus: float = 15.0
    popularity_scale: float = 40.0
    popularity_weight_normal: float = 0.3
    popularity_weight_holiday: float = 0.5
    popularity_weight_trend: float = 0.6
    dormancy_exponent: float = 1.5
    star_frequency_weight: float = 0.6
    star_dormancy_weight: float = 0.4
    justification_threshold: float = 10.0

    # seasonal weight adjustment
    volatile_seasonal_keep: float = 0.5
    volatile_momentum_share: float = 0.7
    stable_momentum_keep: float = 0.7

    # recalibration
    min_sample: int = 50
    fixed_weight_pool: float = 0.9
    profile_epsilon: float = 0.001

    # coupon builder
    coupon_pool: int = 20
    coupon_count: int = 10
    odd_bonus: float = 20.0
    sum_bonus: float = 15.0
    sum_range: Tuple[int, int] = (100, 155)
    spread_bonus: float = 15.0
    spread_range: Tuple[int, int] = (25, 45)
    zone_bonus: float = 10.0
    min_zones: int = 3
    delta_bonus: float = 10.0
    delta_tolerance: float = 1.5
    star_sum_bonus: float = 10.0
    star_sum_range: Tuple[int, int] = (8, 16)
    star_parity_bonus: float = 15.0
    high_score_factor: float = 1.1
    confidence_score_strength: float = 0.8
    anti_popular_threshold: int = BIRTHDAY_MAX
    anti_popular_min_count: int = 3

    # strategies
    strategy_coupons: int = 10
    strategy_main_pool: int = 15
    strategy_star_pool: int = 5
    odd_pattern_bonus: float = 100.0
    high_number_bonus: float = 50.0
    max_balanced_attempts: int = 50000

    # anti-popularity and forecast insight
    anti_popularity_min_draws: int = 50
    expected_average_spread: float = 33.67
    top_trending: int = 15
    min_context_samples: int = 5
    imbalance_factor: float = 1.5

    # backtest
    initial_window: int = 100
    recalibration_interval: int = 20
    min_profiles_for_calibration: int = 20
    profile_window: int = 250
    progress_interval: int = 10
    timeline_buckets: int = 10
    forecast_main: int = 10
    forecast_star: int = 5
    seasonal_hot_fraction: float = 0.2
    stability_fraction: float = 0.4
    companion_hot_top: int = 3
    indicator_min_samples: int = 20
    spread_indicator_pct: float = 5.0
    sum_indicator_pct: float = 2.0

    # worker
    workers: int = 3
    progress_weights: Tuple[float, float, float] = (0.4, 0.3, 0.3)

    @classmethod
    def from_env(cls) -> "Tuning":
        """
        Build a tuning table with run-level overrides from the environment.
        Only the knobs listed in ENV_OVERRIDES are read; everything else keeps its default.
        """
        overrides = {}
        types = {f.name: f.type for f in fields(cls)}
        for env_key, field_name in ENV_OVERRIDES.items():
            raw = os.getenv(env_key, "").strip()
            if not raw:
                continue
            cast = float if types[field_name] in ("float", float) else int
            overrides[field_name] = cast(raw)
        return replace(cls(), **overrides)


ENV_OVERRIDES = {
    "AETHER_INITIAL_WINDOW": "initial_window",
    "AETHER_RECALIBRATION_INTERVAL": "recalibration_interval",
    "AETHER_PROFILE_WINDOW": "profile_window",
    "AETHER_MIN_SAMPLE": "min_sample",
    "AETHER_COUPON_COUNT": "coupon_count",
    "AETHER_WORKERS": "workers",
}

DEFAULT_TUNING = Tuning()
