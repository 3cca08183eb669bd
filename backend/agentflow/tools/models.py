"""
Tool Data Models
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ToolType(str, Enum):
    API = "api"
    WEBHOOK = "webhook"
    DATABASE = "database"
    FILE = "file"
    EMAIL = "email"
    CALENDAR = "calendar"
    SOCIAL = "social"
    AI = "ai"
    CUSTOM = "custom"


class ToolParameter(BaseModel):
    id: Optional[str] = None
    name: str
    type: str = "string"  # string | number | boolean | object | array
    required: bool = False
    description: str = ""
    defaultValue: Any = None


class ToolAuthentication(BaseModel):
    type: str = "none"  # none | api-key | bearer | basic | oauth
    config: Dict[str, Any] = Field(default_factory=dict)


class ToolConfig(BaseModel):
    endpoint: Optional[str] = None
    method: str = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    authentication: Optional[ToolAuthentication] = None
    parameters: List[ToolParameter] = Field(default_factory=list)
    timeout: float = 30.0  # Seconds
    retries: Optional[int] = None


class ToolDefinition(BaseModel):
    id: str
    name: str = ""
    description: str = ""
    type: ToolType = ToolType.CUSTOM
    config: ToolConfig = Field(default_factory=ToolConfig)
    isBuiltIn: bool = False
    userId: Optional[str] = None  # Owner; ignored for built-in tools


class ToolExecutionResult(BaseModel):
    success: bool
    output: Any = None
    error: Optional[str] = None
    errorType: Optional[str] = None
    executionTime: int = 0  # Milliseconds
