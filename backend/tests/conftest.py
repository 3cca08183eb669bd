"""
Pytest configuration and fixtures for agentflow tests.

Sets up the Python path to import the backend package and provides fake
HTTP transports so no test touches the network or waits on retry sleeps.
"""

import sys
from pathlib import Path

import httpx
import pytest

# Add the backend directory to the Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from agentflow.http import TransportClient  # noqa: E402
from agentflow.providers import ApiCredential, InMemoryCredentialStore, LLMResponse  # noqa: E402
from agentflow.providers.models import Usage  # noqa: E402
from agentflow.workflow import WorkflowDefinition  # noqa: E402

OPENAI_TEST_KEY = "sk-" + "a" * 48
ANTHROPIC_TEST_KEY = "sk-ant-" + "b" * 40


def openai_completion(
    content: str = "Hello! How can I help you today?",
    model: str = "gpt-3.5-turbo",
    prompt_tokens: int = 12,
    completion_tokens: int = 8,
):
    """Body of a /chat/completions response"""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


def llm_response(content: str = "Hi there!"):
    """What a provider router returns for a short chat reply"""
    return LLMResponse(
        content=content,
        usage=Usage(promptTokens=5, completionTokens=3, totalTokens=8),
        model="gpt-3.5-turbo",
        finishReason="stop",
        cost=0.0001,
        provider="openai",
    )


@pytest.fixture
def sleeps():
    """Delays requested by the transport client's retry loop"""
    return []


@pytest.fixture
def make_transport(sleeps):
    """Build a TransportClient whose requests are answered by `handler`"""
    def _make(handler, **kwargs):
        async def fake_sleep(delay):
            sleeps.append(delay)

        return TransportClient(transport=httpx.MockTransport(handler), sleep=fake_sleep, **kwargs)
    return _make


@pytest.fixture
def openai_transport(make_transport):
    """Transport that answers every chat completion with a canned reply"""
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=openai_completion())

    transport = make_transport(handler, retries=0)
    transport.requests = requests
    return transport


@pytest.fixture
def credentials():
    return InMemoryCredentialStore([
        ApiCredential(provider="openai", key=OPENAI_TEST_KEY, name="test"),
        ApiCredential(provider="anthropic", key=ANTHROPIC_TEST_KEY, name="test"),
    ])


@pytest.fixture
def simple_workflow():
    """start -> llm -> end"""
    return WorkflowDefinition.model_validate({
        "nodes": [
            {"id": "start-1", "type": "start", "data": {"label": "Start"}},
            {
                "id": "llm-1",
                "type": "llm",
                "data": {
                    "label": "Assistant",
                    "config": {"model": "gpt-3.5-turbo", "systemPrompt": "You are a helpful assistant."},
                },
            },
            {"id": "end-1", "type": "end", "data": {"label": "End"}},
        ],
        "edges": [
            {"id": "e1", "source": "start-1", "target": "llm-1"},
            {"id": "e2", "source": "llm-1", "target": "end-1"},
        ],
        "settings": {"timeout": 60, "retries": 1, "parallelism": 1, "logging": True},
    })
