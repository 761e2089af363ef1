"""Shared test fixtures."""

import os
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

# Set test environment before the package reads its settings
os.environ["ANTHROPIC_API_KEY"] = "test-key"
os.environ["CHAT_LOG_LEVEL"] = "ERROR"  # Reduce log noise

from chat_proxy import app  # noqa: E402
from chat_proxy.pricing import Pricing  # noqa: E402
from chat_proxy.providers import AnthropicConfig, AnthropicProvider  # noqa: E402
from chat_proxy.proxy import ChatProxy  # noqa: E402
from upstream_stub import API_URL, UpstreamStub  # noqa: E402


@pytest.fixture
def upstream() -> UpstreamStub:
    """Stubbed Anthropic endpoint."""
    return UpstreamStub()


@pytest.fixture
def provider_config() -> AnthropicConfig:
    return AnthropicConfig(api_key="test-key", api_url=API_URL)


@pytest.fixture
def provider(provider_config: AnthropicConfig, upstream: UpstreamStub) -> AnthropicProvider:
    return AnthropicProvider(provider_config, transport=upstream.transport)


@pytest.fixture
def chat_proxy(provider: AnthropicProvider) -> ChatProxy:
    return ChatProxy(provider, Pricing())


@pytest_asyncio.fixture
async def client(chat_proxy: ChatProxy) -> AsyncGenerator[AsyncClient, None]:
    """Test client fixture - proxy injected via app.state."""
    app.state.chat_proxy = chat_proxy

    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.chat_proxy = None


@pytest.fixture
def sample_request() -> dict[str, Any]:
    """Sample multi-turn request body."""
    return {
        "messages": [
            {"role": "user", "content": "Hi"},
            {"role": "assistant", "content": "Hello! How can I help?"},
            {"role": "user", "content": "Tell me a joke"},
        ]
    }
