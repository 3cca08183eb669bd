"""
Model catalogue: provider routing by model prefix, pricing, and API-key shape rules.
"""

from typing import Dict, List

from ..errors import ValidationError
from .models import Provider, Usage

# First matching prefix wins; unmatched models go to OpenAI.
MODEL_PREFIXES = [
    ("gpt-", Provider.OPENAI),
    ("claude-", Provider.ANTHROPIC),
    ("gemini-", Provider.GOOGLE),
    ("command-", Provider.COHERE),
]

DEFAULT_PROVIDER = Provider.OPENAI

# USD per 1K tokens
OPENAI_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4": {"input": 0.03, "output": 0.06},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
    "gpt-4-turbo-preview": {"input": 0.01, "output": 0.03},
    "gpt-3.5-turbo": {"input": 0.0015, "output": 0.002},
    "gpt-3.5-turbo-16k": {"input": 0.003, "output": 0.004},
}

MODEL_INFO: Dict[str, Dict] = {
    "gpt-4": {"provider": "OpenAI", "contextWindow": 8192, "costPer1kTokens": 0.03},
    "gpt-4-turbo": {"provider": "OpenAI", "contextWindow": 128000, "costPer1kTokens": 0.01},
    "gpt-3.5-turbo": {"provider": "OpenAI", "contextWindow": 16384, "costPer1kTokens": 0.002},
    "claude-3-sonnet": {"provider": "Anthropic", "contextWindow": 200000, "costPer1kTokens": 0.015},
    "claude-3-haiku": {"provider": "Anthropic", "contextWindow": 200000, "costPer1kTokens": 0.0025},
    "gemini-pro": {"provider": "Google", "contextWindow": 32768, "costPer1kTokens": 0.001},
}

UNKNOWN_MODEL_INFO = {"provider": "Unknown", "contextWindow": 4096, "costPer1kTokens": 0.01}

DEFAULT_OPENAI_MODELS = ["gpt-3.5-turbo", "gpt-4", "gpt-4-turbo"]


def resolve_provider(model: str) -> Provider:
    """Pick the provider for a model name"""
    for prefix, provider in MODEL_PREFIXES:
        if model.startswith(prefix):
            return provider
    return DEFAULT_PROVIDER


def calculate_cost(model: str, usage: Usage) -> float:
    """OpenAI cost with separate input/output rates; unknown models bill as gpt-3.5-turbo"""
    pricing = OPENAI_PRICING.get(model, OPENAI_PRICING["gpt-3.5-turbo"])
    input_cost = (usage.promptTokens / 1000) * pricing["input"]
    output_cost = (usage.completionTokens / 1000) * pricing["output"]
    return input_cost + output_cost


def calculate_flat_cost(model: str, usage: Usage) -> float:
    rate = get_model_info(model)["costPer1kTokens"]
    return (usage.totalTokens / 1000) * rate


def get_supported_models() -> List[str]:
    return list(MODEL_INFO.keys())


def get_model_info(model: str) -> Dict:
    return dict(MODEL_INFO.get(model, UNKNOWN_MODEL_INFO))


def validate_api_key(provider: str, api_key: str) -> bool:
    """
    Shape-only key check (prefix and length).

    This does not prove the key works; see ProviderRouter.verify_api_key.
    """
    if not api_key or not isinstance(api_key, str):
        raise ValidationError("Invalid API key format", field="apiKey")

    key = api_key.strip()

    if provider == Provider.OPENAI.value:
        return key.startswith("sk-") and 51 <= len(key) <= 64
    if provider == Provider.ANTHROPIC.value:
        return key.startswith("sk-ant-") and len(key) >= 40
    if provider in (Provider.GOOGLE.value, Provider.COHERE.value):
        return 32 <= len(key) <= 128

    raise ValidationError(f"Unsupported provider: {provider}", field="provider")
