"""
Tool Node Executors - Invoke registered tools through the dispatcher
"""

import re
from typing import Any, Dict

from ...errors import NodeExecutionError
from .base import NodeExecutor, ExecutionContext

VARIABLE_PATTERN = re.compile(r"^\{\{\s*([^{}]+?)\s*\}\}$")


def resolve_parameter_values(parameter_values: Dict[str, Any], variables: Dict[str, Any]) -> Dict[str, Any]:
    """
    Build tool input from configured parameter values.

    A value of the exact form "{{name}}" becomes variables[name]; when no
    such variable exists the literal string is kept.
    """
    resolved = {}
    for key, value in parameter_values.items():
        if isinstance(value, str):
            match = VARIABLE_PATTERN.match(value)
            if match and match.group(1) in variables:
                resolved[key] = variables[match.group(1)]
                continue
        resolved[key] = value
    return resolved


class ToolExecutor(NodeExecutor):
    """Runs the tool selected in config.toolId"""

    node_type = "tool"
    display_name = "Tool"
    category = "tools"
    description = "Call a registered API, webhook, email or search tool"

    def validate_config(self):
        if not self.config.get("toolId"):
            return ["No tool selected for tool node"]
        return []

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        tool_id = self.config.get("toolId")
        if not tool_id:
            raise NodeExecutionError("No tool selected for tool node", node_id=self.node_id, node_type=self.node_type)

        if context.tool_dispatcher is None:
            raise NodeExecutionError("Tool dispatcher not configured", node_id=self.node_id, node_type=self.node_type)

        tool_input = resolve_parameter_values(self.config.get("parameterValues") or {}, inputs)

        context.log(f"Executing tool {tool_id} with parameters: {list(tool_input.keys())}")

        result = await context.tool_dispatcher.execute_tool(tool_id, tool_input, context.user_id)

        if not result.success:
            raise NodeExecutionError(
                f"Tool execution failed: {result.error}",
                node_id=self.node_id,
                node_type=self.node_type,
            )

        context.log(f"Tool {tool_id} completed in {result.executionTime}ms")
        return result.model_dump()
