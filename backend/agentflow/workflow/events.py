"""
Execution events

The executor publishes run and step lifecycle events; subscribers such as
LedgerSubscriber persist them. Subscriber failures are logged and never reach
the executor.
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List

from ..ledger import ExecutionLedger, RunRecord, StepRecord

logger = logging.getLogger(__name__)

RUN_STARTED = "run_started"
RUN_FINISHED = "run_finished"
STEP_STARTED = "step_started"
STEP_FINISHED = "step_finished"
ALL_EVENTS = "*"


class ExecutionEventBus:
    """In-process publish/subscribe for execution events"""

    def __init__(self):
        self.subscribers: Dict[str, List[Callable]] = {}

    def subscribe(self, event_type: str, handler: Callable):
        """
        Subscribe a handler to an event type, or to every event with "*".

        Handlers receive the event dict and may be sync or async.
        """
        self.subscribers.setdefault(event_type, []).append(handler)
        logger.debug(f"Added subscriber to {event_type}")

    def unsubscribe(self, event_type: str, handler: Callable):
        if event_type in self.subscribers:
            self.subscribers[event_type] = [h for h in self.subscribers[event_type] if h != handler]

    async def publish(self, event_type: str, data: Dict[str, Any]) -> None:
        event = {
            "type": event_type,
            "data": data,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        handlers = self.subscribers.get(event_type, []) + self.subscribers.get(ALL_EVENTS, [])
        for handler in handlers:
            try:
                if inspect.iscoroutinefunction(handler):
                    await handler(event)
                else:
                    handler(event)
            except Exception as e:
                logger.error(f"Error in {event_type} subscriber: {e}")


class LedgerSubscriber:
    """Turns lifecycle events into ledger writes"""

    def __init__(self, ledger: ExecutionLedger):
        self.ledger = ledger

    def attach(self, bus: ExecutionEventBus) -> "LedgerSubscriber":
        bus.subscribe(RUN_STARTED, self.on_run_started)
        bus.subscribe(RUN_FINISHED, self.on_run_finished)
        bus.subscribe(STEP_STARTED, self.on_step_started)
        bus.subscribe(STEP_FINISHED, self.on_step_finished)
        return self

    async def on_run_started(self, event: Dict[str, Any]):
        run: RunRecord = event["data"]["run"]
        try:
            await self.ledger.create_run(run)
        except Exception as e:
            logger.error(f"Failed to create execution record {run.id}: {e}")

    async def on_run_finished(self, event: Dict[str, Any]):
        run: RunRecord = event["data"]["run"]
        try:
            await self.ledger.update_run(run)
        except Exception as e:
            logger.error(f"Failed to update execution record {run.id}: {e}")

    async def on_step_started(self, event: Dict[str, Any]):
        step: StepRecord = event["data"]["step"]
        try:
            await self.ledger.create_step(step)
        except Exception as e:
            logger.error(f"Failed to create step record {step.executionId}/{step.nodeId}: {e}")

    async def on_step_finished(self, event: Dict[str, Any]):
        step: StepRecord = event["data"]["step"]
        try:
            await self.ledger.update_step(step)
        except Exception as e:
            logger.error(f"Failed to update step record {step.executionId}/{step.nodeId}: {e}")
