"""Pydantic models for pool risk scoring.

Field aliases follow the camelCase keys used in task payloads and the
metrics JSON submitted on chain (``volumeUSD``, ``tvlUSD`` ...).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AnomalyFlag(str, Enum):
    """Raw metric crossed its fixed threshold."""

    HIGH_VOLUME = "HIGH_VOLUME"
    LOW_TVL = "LOW_TVL"
    HIGH_PRICE_IMPACT = "HIGH_PRICE_IMPACT"
    HIGH_SWAP_COUNT = "HIGH_SWAP_COUNT"
    HIGH_FAILURE_RATE = "HIGH_FAILURE_RATE"


class PoolMetrics(BaseModel):
    """Raw metrics for one hook/pool over a reporting period."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    volume_usd: float = Field(alias="volumeUSD", ge=0)
    tvl_usd: float = Field(alias="tvlUSD", ge=0)
    price_impact: float = Field(alias="priceImpact", ge=0, le=1)
    swap_count: int = Field(alias="swapCount", ge=0)
    failed_tx_count: int = Field(alias="failedTxCount", ge=0)
    gas_used: int = Field(alias="gasUsed", ge=0)

    @model_validator(mode="after")
    def _failed_within_swaps(self) -> PoolMetrics:
        if self.failed_tx_count > self.swap_count:
            raise ValueError(
                f"failedTxCount ({self.failed_tx_count}) exceeds swapCount ({self.swap_count})"
            )
        return self

    @property
    def failure_rate(self) -> float:
        """Failed / total swaps. Zero when there were no swaps."""
        if self.swap_count == 0:
            return 0.0
        return self.failed_tx_count / self.swap_count


class RiskAssessment(BaseModel):
    """Score plus anomaly flags for a single metrics snapshot."""

    metrics: PoolMetrics
    risk_score: int = Field(ge=0, le=100)
    anomalies: list[AnomalyFlag] = Field(default_factory=list)


__all__ = ["AnomalyFlag", "PoolMetrics", "RiskAssessment"]
