"""
Trigger Node Executors - Entry points for workflow execution
"""

from typing import Any, Dict
from .base import NodeExecutor, ExecutionContext


class StartExecutor(NodeExecutor):
    """Start node - hands the run input to the rest of the graph"""

    node_type = "start"
    display_name = "Start"
    category = "trigger"
    description = "Entry point of the workflow"

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        context.log("Workflow started")

        return {
            "message": "Workflow started",
            "input": context.input,
            "timestamp": self.timestamp(),
        }
