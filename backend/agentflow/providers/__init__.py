"""
LLM provider routing, rate limiting and usage tracking
"""

from .base import ProviderAdapter
from .credentials import CredentialStore, EnvCredentialStore, InMemoryCredentialStore
from .models import (
    ApiCredential,
    LLMMessage,
    LLMRequest,
    LLMResponse,
    Provider,
    Usage,
    UsageRecord,
)
from .openai_adapter import OpenAIAdapter
from .rate_limiter import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from .router import ProviderRouter
from .template_adapters import TemplateAdapter
from .usage import InMemoryUsageTracker, SQLiteUsageTracker, UsageTracker

__all__ = [
    'ApiCredential',
    'CredentialStore',
    'EnvCredentialStore',
    'InMemoryCredentialStore',
    'InMemoryRateLimiter',
    'InMemoryUsageTracker',
    'LLMMessage',
    'LLMRequest',
    'LLMResponse',
    'OpenAIAdapter',
    'Provider',
    'ProviderAdapter',
    'ProviderRouter',
    'RateLimiter',
    'RedisRateLimiter',
    'SQLiteUsageTracker',
    'TemplateAdapter',
    'Usage',
    'UsageRecord',
    'UsageTracker',
]
