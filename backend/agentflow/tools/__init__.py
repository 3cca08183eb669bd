"""
Tool definitions, registry and dispatcher
"""

from .dispatcher import ToolDispatcher
from .models import (
    ToolAuthentication,
    ToolConfig,
    ToolDefinition,
    ToolExecutionResult,
    ToolParameter,
    ToolType,
)
from .registry import InMemoryToolRegistry, ToolRegistry

__all__ = [
    'InMemoryToolRegistry',
    'ToolAuthentication',
    'ToolConfig',
    'ToolDefinition',
    'ToolDispatcher',
    'ToolExecutionResult',
    'ToolParameter',
    'ToolRegistry',
    'ToolType',
]
