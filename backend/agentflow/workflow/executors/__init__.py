"""
Node Executors - Implementations for each workflow node type
"""

from typing import Dict, List, Optional, Type

from ..models import NodeCategory, NodeTypeDefinition
from .base import NodeExecutor, ExecutionContext
from .trigger_executors import StartExecutor
from .llm_executors import LLMExecutor
from .tool_executors import ToolExecutor
from .control_executors import RuleExecutor
from .connector_executors import ConnectorExecutor
from .output_executors import EndExecutor

# Registry of all node executors
NODE_EXECUTORS: Dict[str, Type[NodeExecutor]] = {
    'start': StartExecutor,
    'llm': LLMExecutor,
    'tool': ToolExecutor,
    'rule': RuleExecutor,
    'connector': ConnectorExecutor,
    'end': EndExecutor,
}

# Alias -> registered type; the alias shares the target's executor
NODE_TYPE_ALIASES: Dict[str, str] = {
    'condition': 'rule',
    'webhook': 'connector',
    'rag': 'llm',
    'intent': 'llm',
}


class NodeExecutorRegistry:
    """Node type -> executor class, with explicitly registered aliases"""

    def __init__(
        self,
        executors: Optional[Dict[str, Type[NodeExecutor]]] = None,
        aliases: Optional[Dict[str, str]] = None,
    ):
        self.executors: Dict[str, Type[NodeExecutor]] = dict(NODE_EXECUTORS if executors is None else executors)
        self.aliases: Dict[str, str] = {}
        for alias, target in (NODE_TYPE_ALIASES if aliases is None else aliases).items():
            self.register_alias(alias, target)

    def register(self, node_type: str, executor: Type[NodeExecutor]) -> None:
        self.executors[node_type] = executor

    def register_alias(self, alias: str, target: str) -> None:
        if target not in self.executors:
            raise ValueError(f"Cannot alias '{alias}' to unregistered node type '{target}'")
        self.aliases[alias] = target

    def resolve(self, node_type: str) -> Optional[str]:
        if node_type in self.executors:
            return node_type
        return self.aliases.get(node_type)

    def get(self, node_type: str) -> Optional[Type[NodeExecutor]]:
        resolved = self.resolve(node_type)
        return self.executors.get(resolved) if resolved else None

    def node_types(self) -> List[NodeTypeDefinition]:
        definitions = [
            NodeTypeDefinition(
                type=node_type,
                displayName=executor.display_name,
                category=NodeCategory(executor.category),
                description=executor.description,
            )
            for node_type, executor in self.executors.items()
        ]
        for alias, target in self.aliases.items():
            executor = self.executors[target]
            definitions.append(NodeTypeDefinition(
                type=alias,
                displayName=alias.capitalize(),
                category=NodeCategory(executor.category),
                description=f"Alias of {target}: {executor.description}",
                aliasOf=target,
            ))
        return definitions


__all__ = [
    'NodeExecutor',
    'ExecutionContext',
    'NodeExecutorRegistry',
    'NODE_EXECUTORS',
    'NODE_TYPE_ALIASES',
]
