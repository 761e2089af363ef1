"""Chat Proxy - forwards chat conversations to Anthropic and prices the replies."""

__version__ = "1.0.0"

from .api import app, create_app  # noqa: E402
from .client import ChatClient  # noqa: E402
from .models import ChatRequest, ChatResponse, Turn, UsageReport  # noqa: E402
from .proxy import ChatProxy  # noqa: E402

__all__ = [
    "ChatClient",
    "ChatProxy",
    "ChatRequest",
    "ChatResponse",
    "Turn",
    "UsageReport",
    "app",
    "create_app",
]
