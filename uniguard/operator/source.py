"""Task source: polls service manager event logs into a queue.

A background asyncio task asks for new logs every ``poll_interval`` seconds
and puts one TaskEvent per log onto ``queue``. Delivery is at-least-once: a
restarted source with an older ``start_block`` will re-emit tasks.
"""

from __future__ import annotations

import asyncio
from typing import Any

import bittensor as bt
from web3 import Web3

from uniguard.operator.tasks import TaskEvent

# Event argument holding the task index, per event name.
INDEX_ARGS = {
    "NewTaskCreated": "taskIndex",
    "NewRiskTaskCreated": "taskId",
}


def _arg(args: Any, name: str) -> Any:
    try:
        return args[name]
    except (KeyError, TypeError):
        return getattr(args, name)


class EventTaskSource:
    """Polls one contract for a set of task-creation events."""

    def __init__(
        self,
        chain: Any,
        contract: Any,
        event_names: list[str],
        poll_interval: float,
        start_block: int | None = None,
        queue: asyncio.Queue[TaskEvent] | None = None,
    ):
        self.chain = chain
        self.contract = contract
        self.event_names = list(event_names)
        self.poll_interval = poll_interval
        self.queue: asyncio.Queue[TaskEvent] = queue if queue is not None else asyncio.Queue()
        self._next_block = start_block
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Spawn the polling task. Must be called from a running loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._poll_loop(), name="uniguard-event-poller")
        bt.logging.info({
            "task_source": {
                "status": "started",
                "events": self.event_names,
                "poll_interval": self.poll_interval,
            }
        })

    async def stop(self) -> None:
        """Cancel polling and wait for it to exit."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        bt.logging.info({"task_source": {"status": "stopped"}})

    async def poll_once(self) -> int:
        """Fetch logs since the last poll and enqueue them. Returns the count."""
        latest = await self.chain.block_number()
        if self._next_block is None:
            # Only tasks created after we start listening.
            self._next_block = latest + 1
            return 0
        if latest < self._next_block:
            return 0

        from_block = self._next_block
        count = 0
        for event_name in self.event_names:
            logs = await self.chain.get_logs(self.contract, event_name, from_block, latest)
            for log in logs:
                await self.queue.put(self._to_event(event_name, log))
                count += 1

        self._next_block = latest + 1
        if count:
            bt.logging.debug({
                "task_source": {"from_block": from_block, "to_block": latest, "events": count}
            })
        return count

    def _to_event(self, event_name: str, log: Any) -> TaskEvent:
        args = _arg(log, "args")
        index_arg = INDEX_ARGS.get(event_name, "taskIndex")
        tx_hash = _arg(log, "transactionHash")
        return TaskEvent(
            event_name=event_name,
            task_index=int(_arg(args, index_arg)),
            task=_arg(args, "task"),
            block_number=int(_arg(log, "blockNumber")),
            tx_hash=Web3.to_hex(tx_hash) if tx_hash is not None else "",
        )

    async def _poll_loop(self) -> None:
        consecutive_errors = 0
        while True:
            try:
                await self.poll_once()
                consecutive_errors = 0
            except asyncio.CancelledError:
                raise
            except Exception as e:
                consecutive_errors += 1
                bt.logging.error({"task_source_error": str(e), "consecutive": consecutive_errors})
                await asyncio.sleep(min(30, 5 * consecutive_errors))
                continue

            await asyncio.sleep(self.poll_interval)


__all__ = ["INDEX_ARGS", "EventTaskSource"]
