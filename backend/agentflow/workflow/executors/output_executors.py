"""
Output Node Executors - Workflow termination
"""

from typing import Any, Dict
from .base import NodeExecutor, ExecutionContext


class EndExecutor(NodeExecutor):
    """Terminal node; returns every variable collected during the run"""

    node_type = "end"
    display_name = "End"
    category = "output"
    description = "Finish the workflow and return collected outputs"

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        context.log("Workflow completed")

        return {
            "message": "Workflow completed",
            "finalOutput": dict(context.variables),
            "timestamp": self.timestamp(),
        }
