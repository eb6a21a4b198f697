"""Task and response models.

Two task kinds are emitted by the service manager:

- RiskTask (``NewRiskTaskCreated``): a hook/pool checkpoint to score.
- MetricsTask (``NewTaskCreated``): a named task; names of the form
  ``metrics_<hookAddress>_<unixMillis>`` request a metrics report for a hook.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field
from web3 import Web3

from uniguard.operator.risk.models import AnomalyFlag, PoolMetrics

METRICS_TASK_PREFIX = "metrics_"


def _field(raw: Any, name: str, index: int) -> Any:
    """Struct member by name (web3 v7 decodes structs to mappings) or position."""
    if isinstance(raw, Mapping):
        return raw[name]
    return raw[index]


class RiskTask(BaseModel):
    hook: str
    task_created_block: int = Field(ge=0)
    pool_id: bytes
    checkpoint_id: int = Field(ge=0)

    @classmethod
    def from_event(cls, raw: Any) -> RiskTask:
        pool_id = _field(raw, "poolId", 2)
        if isinstance(pool_id, str):
            pool_id = Web3.to_bytes(hexstr=pool_id)
        return cls(
            hook=Web3.to_checksum_address(_field(raw, "hook", 0)),
            task_created_block=int(_field(raw, "taskCreatedBlock", 1)),
            pool_id=bytes(pool_id),
            checkpoint_id=int(_field(raw, "checkpointId", 3)),
        )

    def as_tuple(self) -> tuple[str, int, bytes, int]:
        """Struct order expected by ``respondToTask``."""
        return (self.hook, self.task_created_block, self.pool_id, self.checkpoint_id)


class MetricsTask(BaseModel):
    name: str
    task_created_block: int = Field(ge=0)

    @classmethod
    def from_event(cls, raw: Any) -> MetricsTask:
        return cls(
            name=str(_field(raw, "name", 0)),
            task_created_block=int(_field(raw, "taskCreatedBlock", 1)),
        )

    @property
    def is_metrics_task(self) -> bool:
        return self.name.startswith(METRICS_TASK_PREFIX)

    def as_tuple(self) -> tuple[str, int]:
        return (self.name, self.task_created_block)


class TaskResponse(BaseModel):
    """Signed result for one task, as submitted."""

    metrics: PoolMetrics
    risk_score: int = Field(ge=0, le=100)
    anomalies: list[AnomalyFlag] = Field(default_factory=list)
    timestamp: int = Field(description="Unix millis at signing time")
    signature: str


@dataclass
class TaskEvent:
    """One decoded task-creation log."""

    event_name: str
    task_index: int
    task: Any
    block_number: int = 0
    tx_hash: str = ""


def generate_metrics_task_name(hook_address: str, timestamp_ms: int | None = None) -> str:
    """``metrics_<checksumAddress>_<unixMillis>``."""
    if not Web3.is_address(hook_address):
        raise ValueError(f"invalid hook address: {hook_address}")
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{METRICS_TASK_PREFIX}{Web3.to_checksum_address(hook_address)}_{timestamp_ms}"


def parse_hook_address_from_task_name(task_name: str) -> str:
    """Checksummed hook address embedded in a metrics task name.

    Raises:
        ValueError: the name has no address segment or it is not an address.
    """
    parts = task_name.split("_")
    if len(parts) < 2 or not parts[1]:
        raise ValueError(f"invalid task name format: {task_name}")
    if not Web3.is_address(parts[1]):
        raise ValueError(f"invalid hook address in task name: {task_name}")
    return Web3.to_checksum_address(parts[1])


__all__ = [
    "METRICS_TASK_PREFIX",
    "MetricsTask",
    "RiskTask",
    "TaskEvent",
    "TaskResponse",
    "generate_metrics_task_name",
    "parse_hook_address_from_task_name",
]
