"""
Tests for the lock managers and the execution event bus
"""

from unittest.mock import AsyncMock, Mock

import pytest

from agentflow.ledger import InMemoryExecutionLedger, RunRecord, StepRecord
from agentflow.workflow import (
    ExecutionEventBus,
    InMemoryLockManager,
    LedgerSubscriber,
    RedisLockManager,
)
from agentflow.workflow.events import ALL_EVENTS, RUN_FINISHED, RUN_STARTED, STEP_FINISHED, STEP_STARTED
from agentflow.workflow.locks import RELEASE_SCRIPT


class TestInMemoryLockManager:

    async def test_second_acquire_fails_until_release(self):
        locks = InMemoryLockManager()

        assert await locks.acquire("agent-1:user-1")
        assert not await locks.acquire("agent-1:user-1")
        assert await locks.acquire("agent-1:user-2")

        await locks.release("agent-1:user-1")

        assert not locks.is_locked("agent-1:user-1")
        assert await locks.acquire("agent-1:user-1")

    async def test_release_of_unheld_key(self):
        locks = InMemoryLockManager()
        await locks.release("nobody")
        assert not locks.is_locked("nobody")


class TestRedisLockManager:

    def _redis(self, set_result=True, eval_result=1):
        redis = Mock()
        redis.set = AsyncMock(return_value=set_result)
        redis.eval = AsyncMock(return_value=eval_result)
        return redis

    async def test_acquire_uses_set_nx_with_expiry(self):
        redis = self._redis()
        locks = RedisLockManager(redis, ttl_seconds=120)

        assert await locks.acquire("agent-1:user-1")

        args, kwargs = redis.set.await_args
        assert args[0] == "agentflow:lock:agent-1:user-1"
        assert kwargs == {"nx": True, "ex": 120}

    async def test_acquire_fails_when_key_exists(self):
        locks = RedisLockManager(self._redis(set_result=None))
        assert not await locks.acquire("agent-1:user-1")

    async def test_release_checks_token(self):
        redis = self._redis()
        locks = RedisLockManager(redis)
        await locks.acquire("agent-1:user-1")
        token = redis.set.await_args.args[1]

        await locks.release("agent-1:user-1")

        redis.eval.assert_awaited_once_with(RELEASE_SCRIPT, 1, "agentflow:lock:agent-1:user-1", token)

    async def test_release_without_acquire_is_a_no_op(self):
        redis = self._redis()
        locks = RedisLockManager(redis)

        await locks.release("agent-1:user-1")

        redis.eval.assert_not_called()

    async def test_expired_lock_release_does_not_raise(self):
        redis = self._redis(eval_result=0)
        locks = RedisLockManager(redis)
        await locks.acquire("k")

        await locks.release("k")


class TestEventBus:

    async def test_sync_and_async_handlers(self):
        bus = ExecutionEventBus()
        seen = []

        async def async_handler(event):
            seen.append(("async", event["type"]))

        bus.subscribe(RUN_STARTED, async_handler)
        bus.subscribe(RUN_STARTED, lambda event: seen.append(("sync", event["data"]["n"])))

        await bus.publish(RUN_STARTED, {"n": 1})

        assert seen == [("async", RUN_STARTED), ("sync", 1)]

    async def test_wildcard_receives_everything(self):
        bus = ExecutionEventBus()
        seen = []
        bus.subscribe(ALL_EVENTS, lambda event: seen.append(event["type"]))

        await bus.publish(STEP_STARTED, {})
        await bus.publish(STEP_FINISHED, {})

        assert seen == [STEP_STARTED, STEP_FINISHED]

    async def test_failing_handler_does_not_stop_others(self):
        bus = ExecutionEventBus()
        seen = []

        def broken(event):
            raise RuntimeError("subscriber crashed")

        bus.subscribe(RUN_FINISHED, broken)
        bus.subscribe(RUN_FINISHED, lambda event: seen.append(event["timestamp"]))

        await bus.publish(RUN_FINISHED, {})

        assert len(seen) == 1

    async def test_unsubscribe(self):
        bus = ExecutionEventBus()
        handler = Mock()
        bus.subscribe(RUN_STARTED, handler)
        bus.unsubscribe(RUN_STARTED, handler)

        await bus.publish(RUN_STARTED, {})

        handler.assert_not_called()


class TestLedgerSubscriber:

    async def test_events_become_ledger_records(self):
        bus = ExecutionEventBus()
        ledger = InMemoryExecutionLedger()
        LedgerSubscriber(ledger).attach(bus)

        run = RunRecord(id="exec-1", agentId="agent-1", userId="user-1")
        step = StepRecord(executionId="exec-1", sequence=0, nodeId="start", nodeType="start")

        await bus.publish(RUN_STARTED, {"run": run})
        await bus.publish(STEP_STARTED, {"step": step})
        step.status = "completed"
        await bus.publish(STEP_FINISHED, {"step": step})
        run.status = "completed"
        await bus.publish(RUN_FINISHED, {"run": run})

        assert ledger.runs["exec-1"].status == "completed"
        assert [s.status for s in ledger.steps["exec-1"]] == ["completed"]

    async def test_ledger_failures_are_logged(self):
        bus = ExecutionEventBus()
        ledger = Mock()
        ledger.create_run = AsyncMock(side_effect=RuntimeError("disk full"))
        LedgerSubscriber(ledger).attach(bus)

        await bus.publish(RUN_STARTED, {"run": RunRecord(id="exec-1", agentId="a", userId="u")})

        ledger.create_run.assert_awaited_once()


@pytest.mark.parametrize("key", ["agent-1:user-1", "agent:with:colons"])
async def test_lock_keys_are_opaque(key):
    locks = InMemoryLockManager()
    assert await locks.acquire(key)
    assert locks.is_locked(key)
