"""Chat proxy core: forward a conversation upstream and price the reply."""

from loguru import logger

from .exceptions import ChatProxyError, UpstreamError
from .models import ChatRequest, ChatResponse
from .pricing import Pricing, build_usage_report
from .providers import LLMProvider
from .types import HealthStatus


class ChatProxy:
    """Stateless request handler around an LLM provider."""

    def __init__(self, llm_provider: LLMProvider, pricing: Pricing | None = None) -> None:
        """Initialize with injected dependencies."""
        self.llm_provider = llm_provider
        self.pricing = pricing or Pricing()

    async def handle(self, request: ChatRequest) -> ChatResponse:
        """Forward one conversation and return the priced reply."""
        if request.is_single_turn:
            logger.warning("Deprecated single-message request shape; send 'messages' instead")

        conversation = request.conversation()
        logger.debug("Forwarding conversation", extra={"turns": len(conversation)})

        try:
            reply = await self.llm_provider.complete(conversation)
        except ChatProxyError:
            raise
        except Exception as e:
            logger.error(f"Unexpected LLM error: {e}")
            raise UpstreamError(f"Failed to generate response: {e}") from e

        usage = build_usage_report(reply.input_tokens, reply.output_tokens, self.pricing)

        logger.info(
            "Token usage",
            extra={
                "model": reply.model,
                "input_tokens": usage.input_tokens,
                "output_tokens": usage.output_tokens,
                "total_cost": usage.total_cost,
            },
        )

        return ChatResponse(message=reply.text, usage=usage)

    async def health_check(self) -> HealthStatus:
        """Check health of all components."""
        try:
            llm_ok = await self.llm_provider.health_check()
        except Exception as e:  # noqa: BLE001
            logger.error(f"LLM health check failed: {e}")
            llm_ok = False

        return {"llm": llm_ok}
