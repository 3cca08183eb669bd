"""
AgentFlow - workflow execution engine for AI agents
"""

from .config import EngineConfig
from .errors import AgentFlowError
from .workflow import WorkflowDefinition, WorkflowExecutor, ExecutionResult

__version__ = "1.0.0"

__all__ = [
    'AgentFlowError',
    'EngineConfig',
    'ExecutionResult',
    'WorkflowDefinition',
    'WorkflowExecutor',
]
