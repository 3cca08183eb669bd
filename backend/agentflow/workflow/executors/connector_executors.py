"""
Connector Node Executors - Placeholder integration point
"""

from typing import Any, Dict
from .base import NodeExecutor, ExecutionContext


class ConnectorExecutor(NodeExecutor):
    """Reports the configured connector action without calling out"""

    node_type = "connector"
    display_name = "Connector"
    category = "integration"
    description = "Send data to an external system"

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        connector_type = self.get_config_value("type", "webhook")
        action = self.get_config_value("action", "send")

        context.log(f"Connector {connector_type}: {action}")

        return {
            "connector": connector_type,
            "action": action,
            "status": "success",
            "message": f"{connector_type} {action} executed successfully",
            "timestamp": self.timestamp(),
        }
