"""Upstream LLM provider for the Anthropic Messages API."""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger

from .config import Settings, get_settings
from .exceptions import ConfigurationError, UpstreamError
from .types import MessageParam


@dataclass
class AnthropicConfig:
    """Configuration for the Anthropic provider."""

    model: str = "claude-3-5-haiku-20241022"
    api_key: str | None = None
    api_url: str = "https://api.anthropic.com/v1/messages"
    api_version: str = "2023-06-01"
    max_tokens: int = 1024
    timeout: float = 60.0


@dataclass
class LLMResponse:
    """Normalized reply from the provider."""

    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMProvider(Protocol):
    """Protocol for LLM providers."""

    async def complete(self, messages: Sequence[MessageParam]) -> LLMResponse: ...
    async def health_check(self) -> bool: ...


def _token_count(usage: dict[str, Any], field: str) -> int:
    value = usage.get(field)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        return 0
    return value


def _first_text(content: Any) -> str:
    if not isinstance(content, list):
        return ""
    for block in content:
        if isinstance(block, dict) and isinstance(block.get("text"), str):
            if block.get("type", "text") == "text":
                return block["text"]
    return ""


def _error_message(response: httpx.Response) -> str:
    """Pick the most specific error message an upstream failure offers."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])

    return response.reason_phrase or f"HTTP {response.status_code}"


class AnthropicProvider:
    """Calls the Messages endpoint once per completion, no retries."""

    provider_name = "Anthropic"

    def __init__(
        self,
        config: AnthropicConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            config: Provider configuration. A missing API key is allowed here
                and reported on the first completion.
            transport: Optional httpx transport, used to stub the network.
        """
        self.config = config
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        return {
            "content-type": "application/json",
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.config.api_version,
        }

    async def complete(self, messages: Sequence[MessageParam]) -> LLMResponse:
        """Generate a reply for the given ordered conversation."""
        if not self.config.api_key:
            raise ConfigurationError(f"{self.provider_name} API key is not configured")

        body = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "messages": [{"role": m["role"], "content": m["content"]} for m in messages],
        }

        try:
            async with httpx.AsyncClient(
                transport=self._transport, timeout=self.config.timeout
            ) as client:
                response = await client.post(
                    self.config.api_url, json=body, headers=self._headers()
                )
        except httpx.HTTPError as e:
            logger.error(f"{self.provider_name} request failed: {e!r}")
            raise UpstreamError(
                f"{self.provider_name} API error: {str(e) or e.__class__.__name__}"
            ) from e

        if not response.is_success:
            message = _error_message(response)
            logger.error(
                f"{self.provider_name} returned {response.status_code}: {message}"
            )
            raise UpstreamError(f"{self.provider_name} API error: {message}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"{self.provider_name} returned an unparsable body: {e}")
            raise UpstreamError(f"{self.provider_name} API error: invalid JSON response") from e

        return self._parse_reply(data)

    def _parse_reply(self, data: Any) -> LLMResponse:
        """Extract text and usage, defaulting anything missing."""
        if not isinstance(data, dict):
            logger.warning(f"{self.provider_name} reply is not an object: {type(data).__name__}")
            data = {}

        usage = data.get("usage")
        if not isinstance(usage, dict):
            usage = {}

        return LLMResponse(
            text=_first_text(data.get("content")),
            model=str(data.get("model") or self.config.model),
            input_tokens=_token_count(usage, "input_tokens"),
            output_tokens=_token_count(usage, "output_tokens"),
        )

    async def health_check(self) -> bool:
        """Check if provider is configured."""
        return bool(self.config.api_key)


def create_llm_provider(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AnthropicProvider:
    """Factory function to create the Anthropic provider from settings."""
    settings = settings or get_settings()

    if not settings.anthropic_api_key:
        logger.warning("ANTHROPIC_API_KEY is not set; chat requests will fail")

    config = AnthropicConfig(
        model=settings.model,
        api_key=settings.anthropic_api_key,
        api_url=settings.anthropic_api_url,
        api_version=settings.anthropic_version,
        max_tokens=settings.max_tokens,
        timeout=settings.upstream_timeout,
    )
    return AnthropicProvider(config, transport=transport)
