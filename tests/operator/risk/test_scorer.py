"""Tests for deterministic risk scoring and anomaly detection."""

import itertools

import pytest

from uniguard.operator.risk import AnomalyFlag, PoolMetrics, assess, calculate_risk_score, detect_anomalies
from uniguard.operator.risk.scorer import WEIGHTS, normalized_vector


def _metrics(**overrides) -> PoolMetrics:
    """Metrics with every value at its safe extreme, then overridden."""
    values = dict(
        volume_usd=0,
        tvl_usd=10_000_000,
        price_impact=0.0,
        swap_count=1,
        failed_tx_count=0,
        gas_used=0,
    )
    values.update(overrides)
    return PoolMetrics(**values)


class TestKnownScenarios:

    def test_baseline_pool(self, baseline_metrics):
        assert normalized_vector(baseline_metrics).tolist() == pytest.approx([0.5, 0.0, 0.4, 0.5, 0.2])
        assert calculate_risk_score(baseline_metrics) == 33
        assert detect_anomalies(baseline_metrics) == []

    def test_risky_pool_hits_every_threshold(self, risky_metrics):
        assert normalized_vector(risky_metrics).tolist() == pytest.approx([1.0, 0.5, 1.0, 1.0, 1.0])
        assert calculate_risk_score(risky_metrics) == 90
        assert detect_anomalies(risky_metrics) == [
            AnomalyFlag.HIGH_VOLUME,
            AnomalyFlag.LOW_TVL,
            AnomalyFlag.HIGH_PRICE_IMPACT,
            AnomalyFlag.HIGH_SWAP_COUNT,
            AnomalyFlag.HIGH_FAILURE_RATE,
        ]

    def test_volume_saturation(self):
        assert calculate_risk_score(_metrics(volume_usd=1_000_000)) == 25
        assert calculate_risk_score(_metrics(volume_usd=50_000_000)) == 25

    def test_all_safe_scores_zero(self):
        assert calculate_risk_score(_metrics(swap_count=0)) == 0

    def test_weights_sum_to_one(self):
        assert float(WEIGHTS.sum()) == pytest.approx(1.0)

    def test_assess_bundles_both_passes(self, risky_metrics):
        result = assess(risky_metrics)
        assert result.risk_score == 90
        assert len(result.anomalies) == 5
        assert result.metrics == risky_metrics


class TestZeroSwaps:

    def test_zero_swaps_does_not_crash(self):
        metrics = _metrics(swap_count=0, failed_tx_count=0)
        assert metrics.failure_rate == 0.0
        assert isinstance(calculate_risk_score(metrics), int)

    def test_zero_swaps_failure_term_is_zero(self):
        metrics = _metrics(swap_count=0, tvl_usd=0)
        # Only the TVL term contributes: 1.0 * 0.20
        assert calculate_risk_score(metrics) == 20

    def test_zero_swaps_no_failure_flag(self):
        flags = detect_anomalies(_metrics(swap_count=0))
        assert AnomalyFlag.HIGH_FAILURE_RATE not in flags


class TestBounds:

    def test_score_in_range_over_grid(self):
        volumes = [0, 1, 999_999, 1_000_000, 10**9]
        tvls = [0, 50_000, 100_000, 10**9]
        impacts = [0.0, 0.01, 0.05, 1.0]
        swaps = [1, 20, 1000, 10**6]
        for volume, tvl, impact, swap_count in itertools.product(volumes, tvls, impacts, swaps):
            for failed in (0, swap_count // 2, swap_count):
                score = calculate_risk_score(PoolMetrics(
                    volume_usd=volume, tvl_usd=tvl, price_impact=impact,
                    swap_count=swap_count, failed_tx_count=failed, gas_used=0,
                ))
                assert isinstance(score, int)
                assert 0 <= score <= 100

    def test_maximum_score(self):
        metrics = PoolMetrics(
            volume_usd=10**9, tvl_usd=0, price_impact=1.0,
            swap_count=10**6, failed_tx_count=10**6, gas_used=0,
        )
        assert calculate_risk_score(metrics) == 100

    def test_deterministic(self, baseline_metrics):
        scores = {calculate_risk_score(baseline_metrics) for _ in range(10)}
        assert scores == {33}


class TestMonotonicity:

    @staticmethod
    def _scores(field, values, **base):
        return [calculate_risk_score(_metrics(**{**base, field: v})) for v in values]

    @staticmethod
    def _non_decreasing(seq):
        return all(a <= b for a, b in zip(seq, seq[1:]))

    def test_volume_never_decreases_score(self):
        scores = self._scores("volume_usd", [0, 10_000, 250_000, 999_999, 1_000_000, 5_000_000])
        assert self._non_decreasing(scores)

    def test_tvl_never_increases_score(self):
        scores = self._scores("tvl_usd", [0, 1_000, 50_000, 99_999, 100_000, 10**8])
        assert self._non_decreasing(list(reversed(scores)))

    def test_price_impact_never_decreases_score(self):
        scores = self._scores("price_impact", [0.0, 0.001, 0.02, 0.049, 0.05, 0.5, 1.0])
        assert self._non_decreasing(scores)

    def test_swap_count_never_decreases_score_without_failures(self):
        scores = self._scores("swap_count", [0, 1, 100, 999, 1000, 50_000], failed_tx_count=0)
        assert self._non_decreasing(scores)

    def test_failed_count_never_decreases_score(self):
        scores = self._scores("failed_tx_count", [0, 1, 10, 50, 51, 500, 1000], swap_count=1000)
        assert self._non_decreasing(scores)


class TestAnomalyThresholds:

    def test_volume_threshold_is_strict(self):
        assert AnomalyFlag.HIGH_VOLUME not in detect_anomalies(_metrics(volume_usd=1_000_000))
        assert AnomalyFlag.HIGH_VOLUME in detect_anomalies(_metrics(volume_usd=1_000_001))

    def test_tvl_threshold_is_strict(self):
        assert AnomalyFlag.LOW_TVL not in detect_anomalies(_metrics(tvl_usd=100_000))
        assert AnomalyFlag.LOW_TVL in detect_anomalies(_metrics(tvl_usd=99_999))

    def test_price_impact_threshold_is_strict(self):
        assert AnomalyFlag.HIGH_PRICE_IMPACT not in detect_anomalies(_metrics(price_impact=0.05))
        assert AnomalyFlag.HIGH_PRICE_IMPACT in detect_anomalies(_metrics(price_impact=0.0501))

    def test_swap_count_threshold_is_strict(self):
        assert AnomalyFlag.HIGH_SWAP_COUNT not in detect_anomalies(_metrics(swap_count=1000))
        assert AnomalyFlag.HIGH_SWAP_COUNT in detect_anomalies(_metrics(swap_count=1001))

    def test_failure_rate_threshold_is_strict(self):
        assert AnomalyFlag.HIGH_FAILURE_RATE not in detect_anomalies(_metrics(swap_count=100, failed_tx_count=5))
        assert AnomalyFlag.HIGH_FAILURE_RATE in detect_anomalies(_metrics(swap_count=100, failed_tx_count=6))

    def test_flag_order_is_fixed(self):
        flags = detect_anomalies(_metrics(volume_usd=2_000_000, swap_count=2000, failed_tx_count=0))
        assert flags == [AnomalyFlag.HIGH_VOLUME, AnomalyFlag.HIGH_SWAP_COUNT]

    def test_anomalies_do_not_affect_score(self):
        # Nonzero score, no anomalies
        quiet = _metrics(volume_usd=900_000)
        assert calculate_risk_score(quiet) > 0
        assert detect_anomalies(quiet) == []
