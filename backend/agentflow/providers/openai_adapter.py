"""
OpenAI chat completions adapter
"""

import logging
import time
from typing import Any, Dict, List, Optional

from ..errors import HttpError, TransportError, ValidationError
from ..http import HttpAuthentication, HttpRequestConfig, TransportClient
from .base import ProviderAdapter
from .catalog import DEFAULT_OPENAI_MODELS, calculate_cost
from .models import ApiCredential, LLMRequest, LLMResponse, Provider, Usage, UsageRecord
from .rate_limiter import InMemoryRateLimiter, RateLimiter
from .usage import UsageTracker

logger = logging.getLogger(__name__)

VALID_ROLES = ("system", "user", "assistant")


class OpenAIAdapter(ProviderAdapter):
    """Validates, rate-limits, calls /chat/completions and records usage"""

    provider = Provider.OPENAI.value

    def __init__(
        self,
        transport: TransportClient,
        rate_limiter: Optional[RateLimiter] = None,
        usage_tracker: Optional[UsageTracker] = None,
        base_url: str = "https://api.openai.com/v1",
    ):
        self.transport = transport
        self.rate_limiter = rate_limiter or InMemoryRateLimiter()
        self.usage_tracker = usage_tracker
        self.base_url = base_url.rstrip("/")

    async def generate(self, request: LLMRequest, credential: ApiCredential) -> LLMResponse:
        self.validate_request(request)
        await self.rate_limiter.acquire(request.userId)

        body: Dict[str, Any] = {
            "model": request.model,
            "messages": [m.model_dump() for m in request.messages],
            "user": request.userId,  # Forwarded for OpenAI abuse monitoring
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if request.maxTokens is not None:
            body["max_tokens"] = request.maxTokens

        start_time = time.perf_counter()
        try:
            response = await self.transport.request(HttpRequestConfig(
                url=f"{self.base_url}/chat/completions",
                method="POST",
                headers=self._headers(credential),
                body=body,
                authentication=HttpAuthentication(type="bearer", token=credential.key),
            ))
        except HttpError as e:
            logger.error(f"OpenAI request failed after {int((time.perf_counter() - start_time) * 1000)}ms: {e}")
            raise HttpError(f"OpenAI API error: {self._error_message(e)}", status=e.status, response=e.response) from e

        data = response.data
        if not isinstance(data, dict):
            raise TransportError("OpenAI API returned an unexpected response body")

        choice = (data.get("choices") or [{}])[0]
        message = choice.get("message") or {}
        raw_usage = data.get("usage") or {}
        usage = Usage(
            promptTokens=raw_usage.get("prompt_tokens", 0),
            completionTokens=raw_usage.get("completion_tokens", 0),
            totalTokens=raw_usage.get("total_tokens", 0),
        )
        cost = calculate_cost(request.model, usage)

        await self._track_usage(UsageRecord(
            userId=request.userId,
            model=request.model,
            provider=self.provider,
            promptTokens=usage.promptTokens,
            completionTokens=usage.completionTokens,
            totalTokens=usage.totalTokens,
            cost=cost,
        ))

        logger.info(
            f"OpenAI request completed in {response.executionTime}ms: "
            f"model={request.model} tokens={usage.totalTokens} cost={cost:.6f}"
        )

        return LLMResponse(
            content=message.get("content") or "",
            usage=usage,
            model=data.get("model") or request.model,
            finishReason=choice.get("finish_reason") or "stop",
            cost=cost,
            provider=self.provider,
        )

    def validate_request(self, request: LLMRequest) -> None:
        if not request.model:
            raise ValidationError("Model is required", field="model")

        if not request.messages:
            raise ValidationError("Messages array is required and cannot be empty", field="messages")

        for message in request.messages:
            if message.role not in VALID_ROLES:
                raise ValidationError("Invalid message role", field="messages")
            if not message.content:
                raise ValidationError("Message content is required and must be a string", field="messages")

        if request.temperature is not None and not 0 <= request.temperature <= 2:
            raise ValidationError("Temperature must be between 0 and 2", field="temperature")

        if request.maxTokens is not None and request.maxTokens < 1:
            raise ValidationError("Max tokens must be greater than 0", field="maxTokens")

    async def list_models(self, credential: ApiCredential) -> List[str]:
        """GPT model ids visible to the key, or a default list if the call fails"""
        try:
            response = await self.transport.request(HttpRequestConfig(
                url=f"{self.base_url}/models",
                headers=self._headers(credential),
                authentication=HttpAuthentication(type="bearer", token=credential.key),
                retries=0,
            ))
            models = (response.data or {}).get("data", [])
            return sorted(m["id"] for m in models if "gpt" in m.get("id", ""))
        except (HttpError, AttributeError, KeyError, TypeError) as e:
            logger.error(f"Failed to fetch OpenAI models: {e}")
            return list(DEFAULT_OPENAI_MODELS)

    async def verify_key(self, credential: ApiCredential) -> bool:
        """Live check: the key can list models"""
        try:
            await self.transport.request(HttpRequestConfig(
                url=f"{self.base_url}/models",
                headers=self._headers(credential),
                authentication=HttpAuthentication(type="bearer", token=credential.key),
                retries=0,
            ))
            return True
        except HttpError as e:
            logger.warning(f"OpenAI API key validation failed: {self._error_message(e)}")
            return False

    async def _track_usage(self, record: UsageRecord) -> None:
        if not self.usage_tracker:
            return
        try:
            await self.usage_tracker.record_usage(record)
        except Exception as e:
            logger.error(f"Failed to track OpenAI usage: {e}")

    @staticmethod
    def _headers(credential: ApiCredential) -> Dict[str, str]:
        if credential.organization:
            return {"OpenAI-Organization": credential.organization}
        return {}

    @staticmethod
    def _error_message(error: HttpError) -> str:
        response = error.response
        if response is not None and isinstance(response.data, dict):
            detail = response.data.get("error")
            if isinstance(detail, dict) and detail.get("message"):
                return detail["message"]
            return response.statusText or error.message
        return error.message
