"""Pool risk scoring.

Pure functions mapping a PoolMetrics snapshot to a 0-100 risk score and a
list of threshold anomalies. Safe to call from any context; no chain access.
"""

from .models import AnomalyFlag, PoolMetrics, RiskAssessment
from .scorer import assess, calculate_risk_score, detect_anomalies

__all__ = [
    "AnomalyFlag",
    "PoolMetrics",
    "RiskAssessment",
    "assess",
    "calculate_risk_score",
    "detect_anomalies",
]
