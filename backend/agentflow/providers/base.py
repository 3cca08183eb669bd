"""
Base Provider Adapter - uniform request/response shape for every LLM vendor
"""

from abc import ABC, abstractmethod

from .models import ApiCredential, LLMRequest, LLMResponse


class ProviderAdapter(ABC):
    """
    One adapter per vendor.

    The router resolves the credential before calling `generate`, so adapters
    never look keys up themselves.
    """

    provider: str = "base"

    @abstractmethod
    async def generate(self, request: LLMRequest, credential: ApiCredential) -> LLMResponse:
        raise NotImplementedError
