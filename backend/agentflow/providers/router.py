"""
Provider Router - sends an LLM request to the adapter for its vendor
"""

import logging
from typing import Dict, List, Optional

from ..errors import CredentialError, ValidationError
from ..http import TransportClient
from . import catalog
from .base import ProviderAdapter
from .credentials import CredentialStore
from .models import ApiCredential, LLMRequest, LLMResponse, Provider
from .openai_adapter import OpenAIAdapter
from .rate_limiter import RateLimiter
from .template_adapters import TemplateAdapter
from .usage import UsageTracker

logger = logging.getLogger(__name__)


class ProviderRouter:
    """
    Routes requests by model prefix (gpt- / claude- / gemini- / command-).

    OpenAI is the only production adapter; the other vendors get template
    adapters until real integrations are registered with `register_adapter`.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        transport: Optional[TransportClient] = None,
        rate_limiter: Optional[RateLimiter] = None,
        usage_tracker: Optional[UsageTracker] = None,
        openai_base_url: str = "https://api.openai.com/v1",
        adapters: Optional[Dict[str, ProviderAdapter]] = None,
    ):
        self.credentials = credentials
        self.transport = transport or TransportClient()
        self.adapters: Dict[str, ProviderAdapter] = {
            Provider.OPENAI.value: OpenAIAdapter(
                self.transport,
                rate_limiter=rate_limiter,
                usage_tracker=usage_tracker,
                base_url=openai_base_url,
            ),
            Provider.ANTHROPIC.value: TemplateAdapter(Provider.ANTHROPIC.value),
            Provider.GOOGLE.value: TemplateAdapter(Provider.GOOGLE.value),
            Provider.COHERE.value: TemplateAdapter(Provider.COHERE.value),
        }
        if adapters:
            self.adapters.update(adapters)

    def register_adapter(self, provider: str, adapter: ProviderAdapter) -> None:
        self.adapters[provider] = adapter

    async def generate_response(self, request: LLMRequest) -> LLMResponse:
        provider = catalog.resolve_provider(request.model).value
        credential = await self._require_credential(provider)

        adapter = self.adapters.get(provider)
        if adapter is None:
            raise ValidationError(f"Unsupported provider: {provider}", field="model")

        logger.debug(f"Routing model '{request.model}' to provider '{provider}'")
        return await adapter.generate(request, credential)

    async def _require_credential(self, provider: str) -> ApiCredential:
        credential = await self.credentials.get_active_key(provider)
        if credential is None or not credential.isActive:
            raise CredentialError(provider)
        return credential

    def validate_api_key(self, provider: str, api_key: str) -> bool:
        """Shape-only check, see catalog.validate_api_key"""
        return catalog.validate_api_key(provider, api_key)

    async def verify_api_key(self, provider: str, api_key: str) -> bool:
        """Shape check plus, for OpenAI, a live model-list call"""
        if not catalog.validate_api_key(provider, api_key):
            return False
        adapter = self.adapters.get(provider)
        if isinstance(adapter, OpenAIAdapter):
            return await adapter.verify_key(ApiCredential(provider=provider, key=api_key.strip()))
        return True

    async def list_models(self, provider: str = Provider.OPENAI.value) -> List[str]:
        adapter = self.adapters.get(provider)
        if isinstance(adapter, OpenAIAdapter):
            credential = await self._require_credential(provider)
            return await adapter.list_models(credential)
        return [
            model for model in catalog.get_supported_models()
            if catalog.resolve_provider(model).value == provider
        ]

    def get_supported_models(self) -> List[str]:
        return catalog.get_supported_models()

    def get_model_info(self, model: str) -> Dict:
        return catalog.get_model_info(model)
