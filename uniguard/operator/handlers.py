"""Task handlers: metrics -> score -> sign -> submit.

Each handler owns one service manager event. The runtime routes TaskEvents
to handlers by ``event_name`` and isolates their failures, so handlers
simply raise when something goes wrong.
"""

from __future__ import annotations

import time
from typing import Any, Protocol, runtime_checkable

import bittensor as bt
from web3 import Web3

from uniguard.chain.signing import encode_signed_task, metrics_task_digest, risk_task_digest
from uniguard.operator.metrics import MetricsProvider, StaticMetricsProvider, build_metrics_report
from uniguard.operator.risk import RiskAssessment, assess
from uniguard.operator.tasks import (
    MetricsTask,
    RiskTask,
    TaskEvent,
    TaskResponse,
    parse_hook_address_from_task_name,
)

RESPOND_GAS_LIMIT = 500_000


@runtime_checkable
class TaskHandler(Protocol):
    """Handles one kind of task-creation event."""

    name: str
    event_name: str

    async def handle(self, event: TaskEvent) -> TaskResponse | None:
        ...


def _log_assessment(handler: str, task_index: int, assessment: RiskAssessment) -> None:
    bt.logging.info({
        "task_assessed": {
            "handler": handler,
            "task_index": task_index,
            "risk_score": assessment.risk_score,
        }
    })
    if assessment.anomalies:
        bt.logging.warning({
            "anomalies_detected": {
                "handler": handler,
                "task_index": task_index,
                "flags": [a.value for a in assessment.anomalies],
            }
        })


class RiskTaskHandler:
    """Scores a hook checkpoint and responds with a signed risk score."""

    name = "risk"
    event_name = "NewRiskTaskCreated"

    def __init__(
        self,
        chain: Any,
        service_manager: Any,
        metrics_provider: MetricsProvider | None = None,
    ):
        self.chain = chain
        self.service_manager = service_manager
        self.metrics_provider = metrics_provider or StaticMetricsProvider()

    async def handle(self, event: TaskEvent) -> TaskResponse:
        task = RiskTask.from_event(event.task)
        metrics = await self.metrics_provider.collect(task.hook, task)
        assessment = assess(metrics)
        _log_assessment(self.name, event.task_index, assessment)

        digest = risk_task_digest(task.hook, task.pool_id, task.checkpoint_id, assessment.risk_score)
        signature = self.chain.sign_message(digest)
        response = TaskResponse(
            metrics=metrics,
            risk_score=assessment.risk_score,
            anomalies=assessment.anomalies,
            timestamp=int(time.time() * 1000),
            signature=signature,
        )

        receipt = await self.chain.transact(
            self.service_manager,
            "respondToTask",
            task.as_tuple(),
            event.task_index,
            response.risk_score,
            Web3.to_bytes(hexstr=signature),
        )
        bt.logging.info({
            "task_response_submitted": {
                "handler": self.name,
                "task_index": event.task_index,
                "tx_hash": Web3.to_hex(receipt["transactionHash"]),
            }
        })
        return response


class MetricsTaskHandler:
    """Responds to ``metrics_<hook>_<ts>`` tasks with a signed metrics report."""

    name = "metrics"
    event_name = "NewTaskCreated"

    def __init__(
        self,
        chain: Any,
        service_manager: Any,
        metrics_provider: MetricsProvider | None = None,
        gas_limit: int = RESPOND_GAS_LIMIT,
    ):
        self.chain = chain
        self.service_manager = service_manager
        self.metrics_provider = metrics_provider or StaticMetricsProvider()
        self.gas_limit = gas_limit

    async def handle(self, event: TaskEvent) -> TaskResponse | None:
        task = MetricsTask.from_event(event.task)
        if not task.is_metrics_task:
            bt.logging.info({"task_skipped": {"task_index": event.task_index, "name": task.name}})
            return None

        hook = parse_hook_address_from_task_name(task.name)
        metrics = await self.metrics_provider.collect(hook, task)
        assessment = assess(metrics)
        _log_assessment(self.name, event.task_index, assessment)

        report = await build_metrics_report(self.chain, hook, metrics)
        digest = metrics_task_digest(report, task.name, assessment.risk_score, hook)
        signature = self.chain.sign_message(digest)
        reference_block = await self.chain.block_number()
        signed_task = encode_signed_task([self.chain.address], [signature], reference_block)

        response = TaskResponse(
            metrics=metrics,
            risk_score=assessment.risk_score,
            anomalies=assessment.anomalies,
            timestamp=int(time.time() * 1000),
            signature=signature,
        )

        receipt = await self.chain.transact(
            self.service_manager,
            "respondToTask",
            task.as_tuple(),
            event.task_index,
            signed_task,
            report,
            response.risk_score,
            hook,
            gas=self.gas_limit,
        )
        bt.logging.info({
            "task_response_submitted": {
                "handler": self.name,
                "task_index": event.task_index,
                "task_name": task.name,
                "tx_hash": Web3.to_hex(receipt["transactionHash"]),
            }
        })
        return response


__all__ = ["RESPOND_GAS_LIMIT", "MetricsTaskHandler", "RiskTaskHandler", "TaskHandler"]
