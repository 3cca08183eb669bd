"""
Provider Data Models
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Provider(str, Enum):
    """LLM vendors the router knows about"""
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    COHERE = "cohere"


class LLMMessage(BaseModel):
    role: str  # system | user | assistant, checked by the adapter
    content: str


class LLMRequest(BaseModel):
    model: str
    messages: List[LLMMessage] = Field(default_factory=list)
    temperature: Optional[float] = None
    maxTokens: Optional[int] = None
    userId: str


class Usage(BaseModel):
    promptTokens: int = 0
    completionTokens: int = 0
    totalTokens: int = 0


class LLMResponse(BaseModel):
    content: str
    usage: Usage = Field(default_factory=Usage)
    model: str
    finishReason: str = "stop"
    cost: Optional[float] = None
    provider: Optional[str] = None


class ApiCredential(BaseModel):
    """An API key as handed out by the credential store"""
    provider: str
    key: str
    name: Optional[str] = None
    organization: Optional[str] = None
    isActive: bool = True


class UsageRecord(BaseModel):
    """One billed LLM call"""
    userId: str
    model: str
    provider: str = Provider.OPENAI.value
    promptTokens: int
    completionTokens: int
    totalTokens: int
    cost: float = 0.0
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
