"""
Workflow Data Models
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """Node types understood by the executor"""
    START = "start"
    LLM = "llm"
    TOOL = "tool"
    RULE = "rule"
    CONNECTOR = "connector"
    CONDITION = "condition"
    END = "end"


class NodeCategory(str, Enum):
    TRIGGER = "trigger"
    LLM = "llm"
    TOOLS = "tools"
    CONTROL = "control"
    INTEGRATION = "integration"
    OUTPUT = "output"


class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class NodeData(BaseModel):
    """Data associated with a workflow node"""
    label: str = ""
    description: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)


class WorkflowNode(BaseModel):
    """A node in the workflow"""
    id: str
    type: str
    position: Optional[Dict[str, float]] = None  # Canvas position, ignored by the executor
    data: NodeData = Field(default_factory=NodeData)


class WorkflowEdge(BaseModel):
    """A directed connection between two nodes"""
    id: str
    source: str
    target: str
    sourceHandle: Optional[str] = None  # "true" / "false" on branching rule nodes
    targetHandle: Optional[str] = None


class WorkflowSettings(BaseModel):
    """Workflow execution settings, accepted under their builder names"""
    model_config = ConfigDict(populate_by_name=True)

    timeoutSeconds: int = Field(300, alias="timeout")
    maxRetries: int = Field(3, alias="retries")
    parallelism: int = 1
    loggingEnabled: bool = Field(True, alias="logging")
    maxSteps: Optional[int] = None  # Falls back to the engine default


class WorkflowDefinition(BaseModel):
    """Complete workflow definition, read-only to the executor"""
    nodes: List[WorkflowNode] = Field(default_factory=list)
    edges: List[WorkflowEdge] = Field(default_factory=list)
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)

    def get_node(self, node_id: str) -> Optional[WorkflowNode]:
        return next((node for node in self.nodes if node.id == node_id), None)

    def outgoing_edges(self, node_id: str) -> List[WorkflowEdge]:
        return [edge for edge in self.edges if edge.source == node_id]


class ExecutionStep(BaseModel):
    """Execution state of a single node visit"""
    nodeId: str
    nodeType: str
    status: StepStatus = StepStatus.PENDING
    input: Any = None
    output: Any = None
    startTime: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    endTime: Optional[datetime] = None
    duration: Optional[int] = None  # Milliseconds
    error: Optional[str] = None
    logs: List[str] = Field(default_factory=list)


class ExecutionResult(BaseModel):
    """Caller-facing result of a run"""
    success: bool
    output: Any = None
    error: Optional[str] = None
    errorType: Optional[str] = None
    executionTime: int = 0  # Milliseconds
    steps: List[ExecutionStep] = Field(default_factory=list)
    executionId: Optional[str] = None


class NodeTypeDefinition(BaseModel):
    """Entry in the node type catalogue"""
    type: str
    displayName: str
    category: NodeCategory
    description: str
    aliasOf: Optional[str] = None
