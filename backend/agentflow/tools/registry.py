"""
Tool registry - lookup of tool definitions by id
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from .models import ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry(ABC):
    @abstractmethod
    async def get_tool(self, tool_id: str) -> Optional[ToolDefinition]:
        raise NotImplementedError


class InMemoryToolRegistry(ToolRegistry):
    """Dict-backed registry, optionally seeded from a JSON file of tool definitions"""

    def __init__(self, tools: Optional[Iterable[ToolDefinition]] = None):
        self._tools: Dict[str, ToolDefinition] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        self._tools[tool.id] = tool

    def unregister(self, tool_id: str) -> bool:
        return self._tools.pop(tool_id, None) is not None

    def list_tools(self) -> List[ToolDefinition]:
        return list(self._tools.values())

    async def get_tool(self, tool_id: str) -> Optional[ToolDefinition]:
        return self._tools.get(tool_id)

    @classmethod
    def from_file(cls, path: str) -> "InMemoryToolRegistry":
        with open(Path(path), "r") as f:
            raw = json.load(f)
        tools = [ToolDefinition.model_validate(item) for item in raw]
        logger.info(f"Loaded {len(tools)} tool definitions from {path}")
        return cls(tools)
