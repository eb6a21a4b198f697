"""Deterministic risk scoring for pool hooks.

Each raw metric is normalized to [0, 1] (higher is riskier), combined with
fixed weights, and scaled to an integer score in [0, 100]. Anomaly
detection is a separate pass over the raw metrics using the same
thresholds and does not feed into the score.

Everything here is pure: no I/O, no module state beyond constants.
"""

from __future__ import annotations

import math

import numpy as np

from .models import AnomalyFlag, PoolMetrics, RiskAssessment

# Metric weights (sum to 1.0)
WEIGHT_VOLUME = 0.25
WEIGHT_TVL = 0.20
WEIGHT_PRICE_IMPACT = 0.25
WEIGHT_SWAP_COUNT = 0.15
WEIGHT_FAILURE_RATE = 0.15

WEIGHTS = np.array(
    [WEIGHT_VOLUME, WEIGHT_TVL, WEIGHT_PRICE_IMPACT, WEIGHT_SWAP_COUNT, WEIGHT_FAILURE_RATE],
    dtype=np.float64,
)

# Thresholds
HIGH_VOLUME_USD = 1_000_000
MIN_TVL_USD = 100_000
MAX_PRICE_IMPACT = 0.05  # 5%
HIGH_SWAP_COUNT = 1000  # per period
HIGH_FAILURE_RATE = 0.05  # 5%

MAX_SCORE = 100


# -- Normalization --


def normalize_volume(volume_usd: float) -> float:
    return min(volume_usd / HIGH_VOLUME_USD, 1.0)


def normalize_tvl(tvl_usd: float) -> float:
    """Inverted scale: TVL at or above MIN_TVL_USD normalizes to 0."""
    return max(1.0 - tvl_usd / MIN_TVL_USD, 0.0)


def normalize_price_impact(price_impact: float) -> float:
    return min(price_impact / MAX_PRICE_IMPACT, 1.0)


def normalize_swap_count(swap_count: int) -> float:
    return min(swap_count / HIGH_SWAP_COUNT, 1.0)


def normalize_failure_rate(failure_rate: float) -> float:
    return min(failure_rate / HIGH_FAILURE_RATE, 1.0)


def normalized_vector(metrics: PoolMetrics) -> np.ndarray:
    """Normalized metrics in WEIGHTS order.

    A pool with no swaps has a failure rate of 0 (see PoolMetrics.failure_rate).
    """
    return np.array(
        [
            normalize_volume(metrics.volume_usd),
            normalize_tvl(metrics.tvl_usd),
            normalize_price_impact(metrics.price_impact),
            normalize_swap_count(metrics.swap_count),
            normalize_failure_rate(metrics.failure_rate),
        ],
        dtype=np.float64,
    )


# -- Scoring --


def calculate_risk_score(metrics: PoolMetrics) -> int:
    """Weighted sum of normalized metrics scaled to 0-100.

    Rounds half up. The result is clamped to [0, 100].
    """
    total = float(np.dot(WEIGHTS, normalized_vector(metrics)))
    score = math.floor(total * MAX_SCORE + 0.5)
    return min(max(score, 0), MAX_SCORE)


def detect_anomalies(metrics: PoolMetrics) -> list[AnomalyFlag]:
    """Flags for every raw metric past its threshold, in fixed check order."""
    anomalies: list[AnomalyFlag] = []

    if metrics.volume_usd > HIGH_VOLUME_USD:
        anomalies.append(AnomalyFlag.HIGH_VOLUME)
    if metrics.tvl_usd < MIN_TVL_USD:
        anomalies.append(AnomalyFlag.LOW_TVL)
    if metrics.price_impact > MAX_PRICE_IMPACT:
        anomalies.append(AnomalyFlag.HIGH_PRICE_IMPACT)
    if metrics.swap_count > HIGH_SWAP_COUNT:
        anomalies.append(AnomalyFlag.HIGH_SWAP_COUNT)
    if metrics.failure_rate > HIGH_FAILURE_RATE:
        anomalies.append(AnomalyFlag.HIGH_FAILURE_RATE)

    return anomalies


def assess(metrics: PoolMetrics) -> RiskAssessment:
    """Score and anomaly pass together."""
    return RiskAssessment(
        metrics=metrics,
        risk_score=calculate_risk_score(metrics),
        anomalies=detect_anomalies(metrics),
    )


__all__ = [
    "HIGH_FAILURE_RATE",
    "HIGH_SWAP_COUNT",
    "HIGH_VOLUME_USD",
    "MAX_PRICE_IMPACT",
    "MIN_TVL_USD",
    "WEIGHTS",
    "assess",
    "calculate_risk_score",
    "detect_anomalies",
    "normalized_vector",
]
