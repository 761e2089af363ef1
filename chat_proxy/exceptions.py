"""Domain-specific exceptions for the chat proxy."""


class ChatProxyError(Exception):
    """Base exception for all chat proxy errors."""


class ConfigurationError(ChatProxyError):
    """Error related to configuration issues."""


class UpstreamError(ChatProxyError):
    """Error returned by, or while talking to, the upstream LLM provider."""


class RequestInFlightError(ChatProxyError):
    """A chat request was submitted while another one is still outstanding."""


class ProxyRequestError(ChatProxyError):
    """The proxy endpoint could not be reached or answered with an error."""
