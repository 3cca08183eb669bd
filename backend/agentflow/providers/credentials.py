"""
Credential stores

The engine only ever asks for the active key of a provider. Where keys are
stored and how they are hashed belongs to the account service.
"""

import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from .models import ApiCredential, Provider


class CredentialStore(ABC):
    """Lookup of the active API key per provider"""

    @abstractmethod
    async def get_active_key(self, provider: str) -> Optional[ApiCredential]:
        raise NotImplementedError


class InMemoryCredentialStore(CredentialStore):
    """Holds credentials in a dict; the last active key added per provider wins"""

    def __init__(self, credentials: Optional[List[ApiCredential]] = None):
        self._credentials: Dict[str, List[ApiCredential]] = {}
        for credential in credentials or []:
            self.add(credential)

    def add(self, credential: ApiCredential) -> None:
        self._credentials.setdefault(credential.provider, []).insert(0, credential)

    def deactivate(self, provider: str) -> None:
        for credential in self._credentials.get(provider, []):
            credential.isActive = False

    async def get_active_key(self, provider: str) -> Optional[ApiCredential]:
        for credential in self._credentials.get(provider, []):
            if credential.isActive:
                return credential
        return None


class EnvCredentialStore(CredentialStore):
    """Reads keys from <PROVIDER>_API_KEY environment variables"""

    ENV_VARS = {
        Provider.OPENAI.value: "OPENAI_API_KEY",
        Provider.ANTHROPIC.value: "ANTHROPIC_API_KEY",
        Provider.GOOGLE.value: "GOOGLE_API_KEY",
        Provider.COHERE.value: "COHERE_API_KEY",
    }

    async def get_active_key(self, provider: str) -> Optional[ApiCredential]:
        env_var = self.ENV_VARS.get(provider)
        if not env_var:
            return None
        key = os.environ.get(env_var)
        if not key:
            return None
        organization = os.environ.get("OPENAI_ORGANIZATION") if provider == Provider.OPENAI.value else None
        return ApiCredential(provider=provider, key=key, name=env_var, organization=organization)
