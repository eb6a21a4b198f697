"""Pool metrics collection.

Real per-hook aggregation (swap volume, TVL, failed swaps...) is not
implemented yet. Handlers take a MetricsProvider so a real collector can be
dropped in; StaticMetricsProvider returns fixed placeholder values.
"""

from __future__ import annotations

import json
import time
from typing import Any, Protocol, runtime_checkable

from uniguard.operator.risk.models import PoolMetrics

PLACEHOLDER_METRICS = PoolMetrics(
    volume_usd=500_000,
    tvl_usd=1_000_000,
    price_impact=0.02,
    swap_count=500,
    failed_tx_count=5,
    gas_used=1_000_000,
)


@runtime_checkable
class MetricsProvider(Protocol):
    """Source of raw metrics for a hook."""

    async def collect(self, hook_address: str, task: Any) -> PoolMetrics:
        ...


class StaticMetricsProvider:
    """Returns the same metrics for every hook."""

    def __init__(self, metrics: PoolMetrics = PLACEHOLDER_METRICS):
        self.metrics = metrics

    async def collect(self, hook_address: str, task: Any) -> PoolMetrics:
        return self.metrics


async def build_metrics_report(chain: Any, hook_address: str, metrics: PoolMetrics) -> str:
    """JSON report submitted alongside a metrics task response.

    Captures the block the report was taken at, so the same pool metrics
    sign differently across blocks.
    """
    block_number = await chain.block_number()
    block = await chain.get_block(block_number)
    report = {
        "hookAddress": hook_address,
        "timestamp": int(time.time() * 1000),
        "blockNumber": block_number,
        "blockTimestamp": block["timestamp"] if block is not None else None,
        "txCount": metrics.swap_count,
        "metrics": metrics.model_dump(mode="json", by_alias=True),
    }
    return json.dumps(report, separators=(",", ":"))


__all__ = [
    "PLACEHOLDER_METRICS",
    "MetricsProvider",
    "StaticMetricsProvider",
    "build_metrics_report",
]
