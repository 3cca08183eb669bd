"""
Tests for the Workflow Executor
Traversal, single-flight locking, variable propagation, branching and
ledger events.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from agentflow.ledger import InMemoryExecutionLedger
from agentflow.providers import ProviderRouter
from agentflow.tools import ToolExecutionResult
from agentflow.workflow import (
    ExecutionEventBus,
    LedgerSubscriber,
    StepStatus,
    WorkflowDefinition,
    WorkflowExecutor,
)

from conftest import llm_response


def mock_router(content="Hi there!"):
    router = Mock()
    router.generate_response = AsyncMock(return_value=llm_response(content))
    return router


def workflow(nodes, edges, **settings):
    return WorkflowDefinition.model_validate({
        "nodes": [
            {"id": node_id, "type": node_type, "data": {"label": node_id, "config": config}}
            for node_id, node_type, config in nodes
        ],
        "edges": [
            {"id": f"e{i}", "source": edge[0], "target": edge[1], **({"sourceHandle": edge[2]} if len(edge) > 2 else {})}
            for i, edge in enumerate(edges)
        ],
        "settings": settings,
    })


class TestEndToEnd:

    async def test_start_llm_end(self, simple_workflow, credentials, openai_transport):
        router = ProviderRouter(credentials, transport=openai_transport)
        executor = WorkflowExecutor(provider_router=router)

        result = await executor.execute_workflow(simple_workflow, {"message": "hello"}, "agent-1", "user-1")

        assert result.success, result.error
        assert [step.nodeType for step in result.steps] == ["start", "llm", "end"]
        assert all(step.status == StepStatus.COMPLETED for step in result.steps)

        llm_step = result.steps[1]
        assert llm_step.output["content"] is not None
        assert result.steps[2].output["finalOutput"]["llm-1"] == llm_step.output
        assert result.steps[2].output["finalOutput"]["input"] == {"message": "hello"}
        assert result.output == result.steps[2].output
        assert result.executionId
        assert result.executionTime >= 0

    async def test_llm_node_request(self, simple_workflow):
        router = mock_router()
        executor = WorkflowExecutor(provider_router=router)

        await executor.execute_workflow(simple_workflow, {"message": "hello"}, "agent-1", "user-1")

        request = router.generate_response.await_args.args[0]
        assert request.model == "gpt-3.5-turbo"
        assert request.messages[0].role == "system"
        assert request.messages[0].content == "You are a helpful assistant."
        assert request.messages[1].content == "hello"
        assert request.temperature == 0.7
        assert request.userId == "user-1"

    async def test_start_output_carries_input(self, simple_workflow):
        executor = WorkflowExecutor(provider_router=mock_router())

        result = await executor.execute_workflow(simple_workflow, {"message": "hello"}, "agent-1", "user-1")

        start_output = result.steps[0].output
        assert start_output["message"] == "Workflow started"
        assert start_output["input"] == {"message": "hello"}
        assert "timestamp" in start_output

    async def test_step_input_is_variables_snapshot(self, simple_workflow):
        executor = WorkflowExecutor(provider_router=mock_router())

        result = await executor.execute_workflow(simple_workflow, "hello", "agent-1", "user-1")

        assert result.steps[0].input == {"input": "hello"}
        assert set(result.steps[2].input) == {"input", "start-1", "llm-1"}

    async def test_steps_match_visited_nodes(self):
        definition = workflow(
            [
                ("start", "start", {}),
                ("a", "connector", {}),
                ("b", "connector", {}),
                ("orphan", "connector", {}),
            ],
            [("start", "a"), ("a", "b")],
        )
        executor = WorkflowExecutor()

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert result.success
        assert [step.nodeId for step in result.steps] == ["start", "a", "b"]
        assert result.output["connector"] == "webhook"


class TestSingleFlight:

    async def test_concurrent_run_for_same_key_fails_fast(self, simple_workflow):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_generate(request):
            started.set()
            await release.wait()
            return llm_response()

        router = Mock()
        router.generate_response = AsyncMock(side_effect=slow_generate)
        executor = WorkflowExecutor(provider_router=router)

        first = asyncio.create_task(executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1"))
        await started.wait()

        second = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert not second.success
        assert second.errorType == "ConcurrencyError"
        assert second.error == "Another execution is already in progress for this agent"
        assert second.steps == []

        release.set()
        first_result = await first
        assert first_result.success

    async def test_different_users_run_independently(self, simple_workflow):
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_generate(request):
            if request.userId == "user-1":
                started.set()
                await release.wait()
            return llm_response()

        router = Mock()
        router.generate_response = AsyncMock(side_effect=slow_generate)
        executor = WorkflowExecutor(provider_router=router)

        first = asyncio.create_task(executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1"))
        await started.wait()

        other = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-2")
        assert other.success

        release.set()
        assert (await first).success

    async def test_lock_released_after_failure(self, simple_workflow):
        executor = WorkflowExecutor(provider_router=mock_router())
        broken = workflow([("end", "end", {})], [])

        failed = await executor.execute_workflow(broken, None, "agent-1", "user-1")
        assert not failed.success

        succeeded = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")
        assert succeeded.success
        assert not executor.lock_manager.is_locked("agent-1:user-1")

    async def test_lock_released_after_handler_exception(self, simple_workflow):
        router = Mock()
        router.generate_response = AsyncMock(side_effect=RuntimeError("socket closed"))
        executor = WorkflowExecutor(provider_router=router)

        result = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert not result.success
        assert result.error == "socket closed"
        assert result.errorType == "NodeExecutionError"
        assert not executor.lock_manager.is_locked("agent-1:user-1")


class TestFailures:

    async def test_missing_start_node(self):
        executor = WorkflowExecutor()
        definition = workflow([("end", "end", {})], [])

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert not result.success
        assert result.error == "No start node found in workflow"
        assert result.errorType == "MissingStartNodeError"
        assert result.steps == []

    async def test_tool_node_without_tool(self):
        executor = WorkflowExecutor(tool_dispatcher=Mock())
        definition = workflow(
            [("start", "start", {}), ("tool", "tool", {}), ("end", "end", {})],
            [("start", "tool"), ("tool", "end")],
        )

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert not result.success
        assert "No tool selected" in result.error
        assert result.steps[-1].nodeId == "tool"
        assert result.steps[-1].status == StepStatus.FAILED
        assert "No tool selected" in result.steps[-1].error

    async def test_unknown_node_type(self):
        executor = WorkflowExecutor()
        definition = workflow([("start", "start", {}), ("x", "teleport", {})], [("start", "x")])

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert not result.success
        assert result.error == "Unknown node type: teleport"

    async def test_missing_credential_aborts_run(self, simple_workflow, openai_transport):
        from agentflow.providers import InMemoryCredentialStore

        router = ProviderRouter(InMemoryCredentialStore(), transport=openai_transport)
        executor = WorkflowExecutor(provider_router=router)

        result = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert not result.success
        assert result.errorType == "CredentialError"
        assert [step.status for step in result.steps] == [StepStatus.COMPLETED, StepStatus.FAILED]

    async def test_cycle_stops_at_step_budget(self):
        executor = WorkflowExecutor()
        definition = workflow(
            [("start", "start", {}), ("a", "connector", {}), ("b", "connector", {})],
            [("start", "a"), ("a", "b"), ("b", "a")],
            maxSteps=5,
        )

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert not result.success
        assert result.errorType == "WorkflowExecutionError"
        assert "maximum of 5 steps" in result.error
        assert len(result.steps) == 5

    async def test_default_step_budget(self):
        executor = WorkflowExecutor(max_steps=3)
        definition = workflow(
            [("start", "start", {}), ("a", "connector", {})],
            [("start", "a"), ("a", "a")],
        )

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert not result.success
        assert len(result.steps) == 3


class TestToolNodes:

    def _dispatcher(self, result=None):
        dispatcher = Mock()
        dispatcher.execute_tool = AsyncMock(return_value=result or ToolExecutionResult(
            success=True,
            output={"sent": True},
            executionTime=3,
        ))
        return dispatcher

    async def test_parameter_interpolation(self):
        dispatcher = self._dispatcher()
        executor = WorkflowExecutor(provider_router=mock_router("Summary text"), tool_dispatcher=dispatcher)
        definition = workflow(
            [
                ("start", "start", {}),
                ("llm-1", "llm", {}),
                ("tool-1", "tool", {
                    "toolId": "slack",
                    "parameterValues": {
                        "summary": "{{llm-1}}",
                        "channel": "{{missing}}",
                        "original": "{{ input }}",
                        "count": 3,
                    },
                }),
                ("end", "end", {}),
            ],
            [("start", "llm-1"), ("llm-1", "tool-1"), ("tool-1", "end")],
        )

        result = await executor.execute_workflow(definition, {"message": "hi"}, "agent-1", "user-1")

        assert result.success, result.error
        tool_id, tool_input, user_id = dispatcher.execute_tool.await_args.args
        assert tool_id == "slack"
        assert user_id == "user-1"
        assert tool_input["summary"] == result.steps[1].output
        assert tool_input["channel"] == "{{missing}}"
        assert tool_input["original"] == {"message": "hi"}
        assert tool_input["count"] == 3
        assert result.steps[2].output["output"] == {"sent": True}

    async def test_tool_failure_fails_run(self):
        dispatcher = self._dispatcher(ToolExecutionResult(
            success=False,
            error="Access denied to this tool",
            errorType="AccessDeniedError",
        ))
        executor = WorkflowExecutor(tool_dispatcher=dispatcher)
        definition = workflow(
            [("start", "start", {}), ("tool-1", "tool", {"toolId": "private"})],
            [("start", "tool-1")],
        )

        result = await executor.execute_workflow(definition, None, "agent-1", "user-1")

        assert not result.success
        assert result.error == "Tool execution failed: Access denied to this tool"


class TestBranching:

    def _branching_workflow(self, rule_type="rule"):
        return workflow(
            [
                ("start", "start", {}),
                ("check", rule_type, {"condition": "input.contains('refund')", "action": "route"}),
                ("refunds", "connector", {"type": "zendesk", "action": "create_ticket"}),
                ("general", "connector", {"type": "slack", "action": "notify"}),
            ],
            [
                ("start", "check"),
                ("check", "refunds", "true"),
                ("check", "general", "false"),
            ],
        )

    @pytest.mark.parametrize("rule_type", ["rule", "condition"])
    async def test_true_branch(self, rule_type):
        executor = WorkflowExecutor()

        result = await executor.execute_workflow(
            self._branching_workflow(rule_type),
            {"message": "I want a REFUND please"},
            "agent-1",
            "user-1",
        )

        assert result.success
        assert [step.nodeId for step in result.steps] == ["start", "check", "refunds"]
        assert result.steps[1].output == {
            "condition": "input.contains('refund')",
            "result": True,
            "action": "route",
            "message": "Condition met",
        }

    async def test_false_branch(self):
        executor = WorkflowExecutor()

        result = await executor.execute_workflow(
            self._branching_workflow(),
            {"message": "Where is my order?"},
            "agent-1",
            "user-1",
        )

        assert [step.nodeId for step in result.steps] == ["start", "check", "general"]
        assert result.steps[1].output["message"] == "Condition not met"

    async def test_unlabeled_edges_pass_through(self):
        executor = WorkflowExecutor()
        definition = workflow(
            [
                ("start", "start", {}),
                ("check", "rule", {"condition": "input.contains('refund')"}),
                ("next", "connector", {}),
            ],
            [("start", "check"), ("check", "next")],
        )

        result = await executor.execute_workflow(definition, {"message": "hello"}, "agent-1", "user-1")

        assert result.steps[1].output["result"] is False
        assert [step.nodeId for step in result.steps] == ["start", "check", "next"]


class TestLedgerEvents:

    async def test_run_and_steps_recorded(self, simple_workflow):
        ledger = InMemoryExecutionLedger()
        bus = ExecutionEventBus()
        LedgerSubscriber(ledger).attach(bus)
        executor = WorkflowExecutor(provider_router=mock_router(), event_bus=bus)

        result = await executor.execute_workflow(simple_workflow, {"message": "hello"}, "agent-1", "user-1")

        run = ledger.runs[result.executionId]
        assert run.status == "completed"
        assert run.agentId == "agent-1"
        assert run.input == {"message": "hello"}
        assert run.completedAt is not None
        steps = ledger.steps[result.executionId]
        assert [s.nodeId for s in steps] == ["start-1", "llm-1", "end-1"]
        assert all(s.status == "completed" for s in steps)
        assert all(s.executionTimeMs is not None for s in steps)

    async def test_failed_run_recorded(self):
        ledger = InMemoryExecutionLedger()
        bus = ExecutionEventBus()
        LedgerSubscriber(ledger).attach(bus)
        executor = WorkflowExecutor(event_bus=bus)

        result = await executor.execute_workflow(workflow([], []), None, "agent-1", "user-1")

        run = ledger.runs[result.executionId]
        assert run.status == "failed"
        assert run.error == "No start node found in workflow"

    async def test_ledger_failures_do_not_change_outcome(self, simple_workflow):
        ledger = Mock()
        for method in ("create_run", "update_run", "create_step", "update_step"):
            setattr(ledger, method, AsyncMock(side_effect=RuntimeError("disk full")))
        bus = ExecutionEventBus()
        LedgerSubscriber(ledger).attach(bus)
        executor = WorkflowExecutor(provider_router=mock_router(), event_bus=bus)

        result = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert result.success
        assert ledger.update_step.await_count == 3

    async def test_concurrency_rejection_writes_nothing(self, simple_workflow):
        ledger = InMemoryExecutionLedger()
        bus = ExecutionEventBus()
        LedgerSubscriber(ledger).attach(bus)
        executor = WorkflowExecutor(provider_router=mock_router(), event_bus=bus)
        await executor.lock_manager.acquire("agent-1:user-1")

        result = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert result.errorType == "ConcurrencyError"
        assert ledger.runs == {}


class TestRunLogs:

    async def test_step_logs_collected(self, simple_workflow):
        executor = WorkflowExecutor(provider_router=mock_router())

        result = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert any("Executing node" in line for line in result.steps[1].logs)

    async def test_logging_disabled(self, simple_workflow):
        simple_workflow.settings.loggingEnabled = False
        executor = WorkflowExecutor(provider_router=mock_router())

        result = await executor.execute_workflow(simple_workflow, "hi", "agent-1", "user-1")

        assert result.success
        assert all(step.logs == [] for step in result.steps)


def test_available_node_types_include_aliases():
    executor = WorkflowExecutor()

    node_types = {entry["type"]: entry for entry in executor.get_available_node_types()}

    assert {"start", "llm", "tool", "rule", "connector", "end"} <= set(node_types)
    assert node_types["condition"]["aliasOf"] == "rule"
    assert node_types["webhook"]["aliasOf"] == "connector"
    assert node_types["rag"]["aliasOf"] == "llm"
    assert node_types["intent"]["aliasOf"] == "llm"
    assert node_types["llm"]["aliasOf"] is None
