"""
Workflow execution: definitions, node executors and the executor engine
"""

from .engine import WorkflowExecutor
from .events import ExecutionEventBus, LedgerSubscriber
from .executors import NodeExecutorRegistry, NODE_EXECUTORS, NODE_TYPE_ALIASES
from .locks import InMemoryLockManager, LockManager, RedisLockManager
from .models import (
    ExecutionResult,
    ExecutionStep,
    NodeData,
    NodeType,
    StepStatus,
    WorkflowDefinition,
    WorkflowEdge,
    WorkflowNode,
    WorkflowSettings,
)
from .validation import validate_workflow

__all__ = [
    'ExecutionEventBus',
    'ExecutionResult',
    'ExecutionStep',
    'InMemoryLockManager',
    'LedgerSubscriber',
    'LockManager',
    'NODE_EXECUTORS',
    'NODE_TYPE_ALIASES',
    'NodeData',
    'NodeExecutorRegistry',
    'NodeType',
    'RedisLockManager',
    'StepStatus',
    'WorkflowDefinition',
    'WorkflowEdge',
    'WorkflowExecutor',
    'WorkflowNode',
    'WorkflowSettings',
    'validate_workflow',
]
