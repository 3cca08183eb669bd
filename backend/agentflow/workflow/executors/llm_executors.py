"""
LLM Node Executors - Chat completions through the provider router
"""

import json
from typing import Any, Dict

from ...errors import NodeExecutionError
from ...providers.models import LLMMessage, LLMRequest
from .base import NodeExecutor, ExecutionContext

DEFAULT_MODEL = "gpt-3.5-turbo"
DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_TEMPERATURE = 0.7


def resolve_user_message(value: Any) -> str:
    """`input.message`, else the input itself, else "Hello" """
    if isinstance(value, dict) and value.get("message"):
        return str(value["message"])
    if value:
        return value if isinstance(value, str) else json.dumps(value, default=str)
    return "Hello"


class LLMExecutor(NodeExecutor):
    """Single-turn chat completion with a system prompt"""

    node_type = "llm"
    display_name = "LLM"
    category = "llm"
    description = "Generate a reply with a language model"

    def validate_config(self):
        errors = []
        temperature = self.config.get("temperature")
        if temperature is not None and not isinstance(temperature, (int, float)):
            errors.append("temperature must be a number")
        return errors

    async def execute(self, inputs: Dict[str, Any], context: ExecutionContext) -> Dict[str, Any]:
        if context.provider_router is None:
            raise NodeExecutionError("LLM provider router not configured", node_id=self.node_id, node_type=self.node_type)

        model = self.get_config_value("model", DEFAULT_MODEL)
        system_prompt = self.get_config_value("systemPrompt", DEFAULT_SYSTEM_PROMPT)
        temperature = self.config.get("temperature")
        if temperature is None:
            temperature = DEFAULT_TEMPERATURE
        max_tokens = self.config.get("maxTokens")

        user_message = resolve_user_message(inputs.get("input"))

        context.log(f"Calling {model} (temperature={temperature})")

        response = await context.provider_router.generate_response(LLMRequest(
            model=model,
            messages=[
                LLMMessage(role="system", content=system_prompt),
                LLMMessage(role="user", content=user_message),
            ],
            temperature=temperature,
            maxTokens=max_tokens,
            userId=context.user_id,
        ))

        context.log(f"LLM response: {response.usage.totalTokens} tokens, finish={response.finishReason}")

        return response.model_dump()
