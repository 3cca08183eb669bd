"""
Template adapters for vendors without a production integration.

Replies are picked by keyword from the latest user message and the system
prompt, so the same request always yields the same answer. Token counts are
approximated at four characters per token.
"""

import logging
import math
from typing import List, Optional

from .base import ProviderAdapter
from .catalog import calculate_flat_cost
from .models import ApiCredential, LLMMessage, LLMRequest, LLMResponse, Usage

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def render_template_reply(messages: List[LLMMessage]) -> str:
    last_message: Optional[LLMMessage] = messages[-1] if messages else None
    system_message = next((m for m in messages if m.role == "system"), None)
    last_text = (last_message.content if last_message else "").lower()

    if "hello" in last_text:
        return "Hello! I'm an AI assistant. How can I help you today?"

    if "analyze" in last_text:
        return (
            "Based on my analysis, I can see several key patterns and insights in the data "
            "you've provided. Here are the main findings:\n\n"
            "1. The primary trend shows...\n"
            "2. There are notable correlations between...\n"
            "3. I recommend focusing on..."
        )

    if "write" in last_text or "content" in last_text:
        return (
            "Here's a well-structured piece of content based on your requirements:\n\n"
            "# Title\n\n"
            "This content addresses your key points while maintaining an engaging tone and "
            "clear structure. The main sections cover the essential topics you've outlined."
        )

    if system_message and "customer support" in system_message.content:
        return (
            "Thank you for contacting us! I understand your concern and I'm here to help. "
            "Let me look into this matter for you and provide the best possible solution."
        )

    original = last_message.content if last_message else ""
    return (
        f'I understand your request: "{original}". Based on the context provided, '
        "here's my response with relevant information and actionable insights."
    )


class TemplateAdapter(ProviderAdapter):
    """Stand-in adapter; never performs network I/O"""

    def __init__(self, provider: str):
        self.provider = provider

    async def generate(self, request: LLMRequest, credential: ApiCredential) -> LLMResponse:
        content = render_template_reply(request.messages)
        prompt_tokens = estimate_tokens(" ".join(m.content for m in request.messages))
        completion_tokens = estimate_tokens(content)
        usage = Usage(
            promptTokens=prompt_tokens,
            completionTokens=completion_tokens,
            totalTokens=prompt_tokens + completion_tokens,
        )

        logger.info(
            f"Template reply for provider '{self.provider}': model={request.model} "
            f"user={request.userId} tokens={usage.totalTokens}"
        )

        return LLMResponse(
            content=content,
            usage=usage,
            model=request.model,
            finishReason="stop",
            cost=calculate_flat_cost(request.model, usage),
            provider=self.provider,
        )
