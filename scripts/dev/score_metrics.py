"""Score a pool metrics snapshot offline and show the breakdown.

Reads camelCase metrics JSON (the same keys as the on-chain metrics report)
and prints each normalized component, its weighted contribution, the final
score and any anomaly flags.

Usage:
    uv run python scripts/dev/score_metrics.py metrics.json
    echo '{"volumeUSD": 2000000, "tvlUSD": 50000, "priceImpact": 0.1,
           "swapCount": 2000, "failedTxCount": 200, "gasUsed": 0}' \
        | uv run python scripts/dev/score_metrics.py -
"""

from __future__ import annotations

import argparse
import json
import sys

from uniguard.operator.risk import PoolMetrics, assess
from uniguard.operator.risk.scorer import WEIGHTS, normalized_vector

COMPONENTS = ("volume", "tvl", "price_impact", "swap_count", "failure_rate")


def main() -> None:
    parser = argparse.ArgumentParser(description="Score a pool metrics snapshot")
    parser.add_argument("path", help="Metrics JSON file, or - for stdin")
    args = parser.parse_args()

    try:
        if args.path == "-":
            payload = json.load(sys.stdin)
        else:
            with open(args.path, encoding="utf-8") as f:
                payload = json.load(f)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        # A full metrics report nests the snapshot under "metrics".
        metrics = PoolMetrics.model_validate(payload.get("metrics", payload))
    except (OSError, ValueError) as e:
        print(f"Could not read metrics: {e}", file=sys.stderr)
        sys.exit(1)

    components = normalized_vector(metrics)
    result = assess(metrics)

    print(f"\n{'Component':<14} {'Normalized':>10} {'Weight':>8} {'Contribution':>13}")
    print(f"{'-' * 48}")
    for name, value, weight in zip(COMPONENTS, components, WEIGHTS):
        print(f"{name:<14} {value:>10.4f} {weight:>8.2f} {value * weight * 100:>13.2f}")
    print(f"{'-' * 48}")
    print(f"Risk score: {result.risk_score}")
    print(f"Anomalies:  {', '.join(a.value for a in result.anomalies) or 'none'}")


if __name__ == "__main__":
    main()
