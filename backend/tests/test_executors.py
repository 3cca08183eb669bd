"""
Tests for the node executors and the executor registry
"""

from unittest.mock import AsyncMock, Mock

import pytest

from agentflow.errors import NodeExecutionError
from agentflow.workflow.executors import NodeExecutorRegistry
from agentflow.workflow.executors.base import ExecutionContext
from agentflow.workflow.executors.connector_executors import ConnectorExecutor
from agentflow.workflow.executors.control_executors import RuleExecutor, evaluate_condition
from agentflow.workflow.executors.llm_executors import LLMExecutor, resolve_user_message
from agentflow.workflow.executors.output_executors import EndExecutor
from agentflow.workflow.executors.tool_executors import ToolExecutor, resolve_parameter_values
from agentflow.workflow.executors.trigger_executors import StartExecutor

from conftest import llm_response


@pytest.fixture
def context():
    return ExecutionContext(
        execution_id="exec-1",
        agent_id="agent-1",
        user_id="user-1",
        input={"message": "hello"},
        variables={"input": {"message": "hello"}},
    )


class TestUserMessage:

    @pytest.mark.parametrize("value,expected", [
        ({"message": "hi"}, "hi"),
        ("plain text", "plain text"),
        ({"text": "no message key"}, '{"text": "no message key"}'),
        (None, "Hello"),
        ("", "Hello"),
        ({}, "Hello"),
    ])
    def test_resolve_user_message(self, value, expected):
        assert resolve_user_message(value) == expected


class TestLLMExecutor:

    async def test_defaults(self, context):
        context.provider_router = Mock()
        context.provider_router.generate_response = AsyncMock(return_value=llm_response())

        output = await LLMExecutor({}).execute(context.variables, context)

        request = context.provider_router.generate_response.await_args.args[0]
        assert request.model == "gpt-3.5-turbo"
        assert request.temperature == 0.7
        assert request.maxTokens is None
        assert output["content"] == "Hi there!"

    async def test_zero_temperature_is_kept(self, context):
        context.provider_router = Mock()
        context.provider_router.generate_response = AsyncMock(return_value=llm_response())

        await LLMExecutor({"temperature": 0, "maxTokens": 50, "model": "gpt-4"}).execute(context.variables, context)

        request = context.provider_router.generate_response.await_args.args[0]
        assert request.temperature == 0
        assert request.maxTokens == 50
        assert request.model == "gpt-4"

    async def test_without_router(self, context):
        with pytest.raises(NodeExecutionError, match="not configured"):
            await LLMExecutor({}, node_id="llm-1").execute(context.variables, context)

    def test_non_numeric_temperature_flagged(self):
        assert LLMExecutor({"temperature": "hot"}).validate_config() == ["temperature must be a number"]


class TestConditions:

    @pytest.mark.parametrize("condition,value,expected", [
        ("true", None, True),
        (" TRUE ", None, True),
        ("input.contains('urgent')", {"message": "This is URGENT"}, True),
        ('contains("urgent")', "nothing to see", False),
        ("input.contains('refund')", "refund please", True),
        ("input.length > 5", {"message": "long enough"}, False),
        ("false", None, False),
    ])
    def test_evaluate_condition(self, condition, value, expected):
        assert evaluate_condition(condition, value) is expected

    async def test_rule_defaults(self, context):
        output = await RuleExecutor({}).execute(context.variables, context)

        assert output == {
            "condition": "true",
            "result": True,
            "action": "continue",
            "message": "Condition met",
        }


class TestParameterResolution:

    def test_exact_placeholders_only(self):
        variables = {"llm-1": {"content": "x"}, "input": "raw"}

        resolved = resolve_parameter_values(
            {
                "a": "{{llm-1}}",
                "b": "prefix {{llm-1}}",
                "c": "{{unknown}}",
                "d": 10,
                "e": "{{input}}",
            },
            variables,
        )

        assert resolved == {
            "a": {"content": "x"},
            "b": "prefix {{llm-1}}",
            "c": "{{unknown}}",
            "d": 10,
            "e": "raw",
        }

    def test_falsy_variable_values_resolve(self):
        assert resolve_parameter_values({"a": "{{zero}}"}, {"zero": 0}) == {"a": 0}


class TestToolExecutor:

    async def test_missing_tool_id(self, context):
        with pytest.raises(NodeExecutionError, match="No tool selected"):
            await ToolExecutor({}).execute(context.variables, context)

    async def test_without_dispatcher(self, context):
        with pytest.raises(NodeExecutionError, match="Tool dispatcher not configured"):
            await ToolExecutor({"toolId": "t-1"}).execute(context.variables, context)


class TestSimpleExecutors:

    async def test_start(self, context):
        output = await StartExecutor({}).execute(context.variables, context)
        assert output["message"] == "Workflow started"
        assert output["input"] == {"message": "hello"}

    async def test_connector(self, context):
        output = await ConnectorExecutor({"type": "slack", "action": "post"}).execute(context.variables, context)
        assert output["connector"] == "slack"
        assert output["status"] == "success"
        assert output["message"] == "slack post executed successfully"

    async def test_end_returns_all_variables(self, context):
        context.set_variable("llm-1", {"content": "done"})

        output = await EndExecutor({}).execute(context.variables, context)

        assert output["message"] == "Workflow completed"
        assert output["finalOutput"] == {"input": {"message": "hello"}, "llm-1": {"content": "done"}}

    async def test_context_log(self, context):
        context.log("checking", level="warning")
        assert context.logs == ["[WARNING] checking"]

        context.logging_enabled = False
        context.log("hidden")
        assert context.logs == ["[WARNING] checking"]


class TestRegistry:

    def test_aliases_share_executor(self):
        registry = NodeExecutorRegistry()

        assert registry.get("condition") is RuleExecutor
        assert registry.get("webhook") is ConnectorExecutor
        assert registry.get("rag") is LLMExecutor
        assert registry.get("intent") is LLMExecutor
        assert registry.get("teleport") is None

    def test_alias_to_unregistered_type(self):
        registry = NodeExecutorRegistry()
        with pytest.raises(ValueError):
            registry.register_alias("search", "retriever")

    def test_register_custom_executor(self):
        registry = NodeExecutorRegistry()
        registry.register("echo", ConnectorExecutor)
        registry.register_alias("ping", "echo")

        assert registry.get("ping") is ConnectorExecutor
