"""
Base Node Executor - Abstract base class for all node executors
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


@dataclass
class ExecutionContext:
    """Per-run state threaded through every node execution"""

    execution_id: str
    agent_id: str
    user_id: str
    input: Any = None
    # nodeId -> node output, plus the reserved "input" entry
    variables: Dict[str, Any] = field(default_factory=dict)
    current_node_id: str = ""

    # Service references (populated by engine)
    provider_router: Any = None
    tool_dispatcher: Any = None

    logs: List[str] = field(default_factory=list)
    logging_enabled: bool = True

    def log(self, message: str, level: str = "info"):
        """Add a log message"""
        if self.logging_enabled:
            self.logs.append(f"[{level.upper()}] {message}")
        getattr(logger, level, logger.info)(f"[{self.execution_id}] {message}")

    def get_variable(self, name: str, default: Any = None) -> Any:
        return self.variables.get(name, default)

    def set_variable(self, name: str, value: Any):
        """Variables are only ever added or overwritten, never removed"""
        self.variables[name] = value


class NodeExecutor(ABC):
    """
    Abstract base class for node executors.

    Each node type implements an executor that:
    1. Validates configuration
    2. Executes the node logic against the shared context
    3. Returns the node output, which the engine stores under the node id
    """

    # Node metadata (override in subclasses)
    node_type: str = "base"
    display_name: str = "Base Node"
    category: str = "control"
    description: str = "Base node executor"

    # Executors whose output selects among labeled outgoing edges
    is_branching: bool = False

    def __init__(self, config: Optional[Dict[str, Any]] = None, node_id: Optional[str] = None):
        """
        Initialize the executor with node configuration.

        Args:
            config: Node configuration from the workflow
            node_id: Id of the node being executed, used in error messages
        """
        self.config = config or {}
        self.node_id = node_id

    def validate_config(self) -> List[str]:
        """
        Validate node configuration.

        Returns:
            List of error messages (empty if valid)
        """
        return []

    @abstractmethod
    async def execute(
        self,
        inputs: Dict[str, Any],
        context: ExecutionContext
    ) -> Any:
        """
        Execute the node logic.

        Args:
            inputs: Snapshot of the context variables when the node started
            context: Execution context with services and state

        Returns:
            The node output
        """
        raise NotImplementedError

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """Config value, with empty strings and None treated as unset"""
        value = self.config.get(key)
        if value is None or value == "":
            return default
        return value

    @staticmethod
    def timestamp() -> str:
        return datetime.now(timezone.utc).isoformat()
