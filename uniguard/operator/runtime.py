"""Operator runtime.

start: register if needed -> start the task source -> ACTIVE.
run:   consume TaskEvents from the source queue, one asyncio task per event.
stop:  stop the source, drain in-flight handlers -> PAUSED.

Handler failures are logged and dropped; they never leave ACTIVE.
Registration failures move the operator to ERROR and propagate.
"""

from __future__ import annotations

import asyncio
from typing import Any

import bittensor as bt

from uniguard.operator.handlers import TaskHandler
from uniguard.operator.lifecycle import InvalidTransitionError, OperatorLifecycle, OperatorState
from uniguard.operator.registration import Registrar
from uniguard.operator.source import EventTaskSource
from uniguard.operator.tasks import TaskEvent, TaskResponse


class OperatorRuntime:
    """Main operator loop."""

    def __init__(
        self,
        chain: Any,
        registrar: Registrar,
        source: EventTaskSource,
        handlers: list[TaskHandler],
        queue_poll_timeout: float = 1.0,
    ):
        self.chain = chain
        self.registrar = registrar
        self.source = source
        self.lifecycle = OperatorLifecycle()
        self._handlers: dict[str, TaskHandler] = {}
        for handler in handlers:
            if handler.event_name in self._handlers:
                raise ValueError(f"Handler already registered for event: {handler.event_name}")
            self._handlers[handler.event_name] = handler
        self._queue_poll_timeout = queue_poll_timeout
        self._inflight: set[asyncio.Task] = set()
        self._running = False

    @property
    def state(self) -> OperatorState:
        return self.lifecycle.state

    @property
    def handlers(self) -> list[str]:
        return [h.name for h in self._handlers.values()]

    async def start(self) -> None:
        """Register if needed and start listening for tasks.

        Raises:
            InvalidTransitionError: the operator cannot become ACTIVE again
                (already stopped or failed).
            Exception: whatever registration or subscription raised.

        Any failure stops the source and moves to ERROR.
        """
        try:
            if not self.lifecycle.can_transition(OperatorState.ACTIVE):
                raise InvalidTransitionError(self.lifecycle.state, OperatorState.ACTIVE)

            if not await self.registrar.is_registered():
                bt.logging.info({"operator_runtime": {"status": "registering", "operator": self.chain.address}})
                await self.registrar.register()

            self.source.start()
            self.lifecycle.activate()
        except Exception as e:
            await self.source.stop()
            self.lifecycle.fail()
            bt.logging.error({"operator_runtime": {"status": "start_failed", "error": str(e)}})
            raise

        bt.logging.info({
            "operator_runtime": {
                "status": "active",
                "operator": self.chain.address,
                "handlers": self.handlers,
            }
        })

    async def run(self) -> None:
        """Start, then dispatch tasks until request_stop() is called."""
        await self.start()
        self._running = True

        try:
            while self._running:
                try:
                    event = await asyncio.wait_for(self.source.queue.get(), timeout=self._queue_poll_timeout)
                except asyncio.TimeoutError:
                    continue
                self.dispatch(event)
        except asyncio.CancelledError:
            pass
        finally:
            self._running = False
            await self.stop()

    def request_stop(self) -> None:
        """Signal run() to exit. Safe to call from a signal handler."""
        self._running = False

    async def stop(self) -> None:
        """Stop listening and wait for in-flight tasks to finish."""
        await self.source.stop()
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)
        if self.lifecycle.state is OperatorState.ACTIVE:
            self.lifecycle.pause()
        bt.logging.info({"operator_runtime": {"status": "stopped", "state": self.state.value}})

    def dispatch(self, event: TaskEvent) -> asyncio.Task | None:
        """Handle ``event`` concurrently with any other in-flight task."""
        if event.event_name not in self._handlers:
            bt.logging.warning({"operator_runtime": {"unhandled_event": event.event_name}})
            return None
        task = asyncio.create_task(self.handle_event(event))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def handle_event(self, event: TaskEvent) -> TaskResponse | None:
        """Run the event's handler, logging and swallowing any failure."""
        handler = self._handlers[event.event_name]
        bt.logging.info({
            "task_received": {
                "event": event.event_name,
                "task_index": event.task_index,
                "block": event.block_number,
            }
        })
        try:
            return await handler.handle(event)
        except Exception as e:
            bt.logging.error({
                "task_error": {
                    "handler": handler.name,
                    "task_index": event.task_index,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            })
            return None


__all__ = ["OperatorRuntime"]
