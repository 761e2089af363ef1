"""Type definitions for the chat proxy."""

from typing import Literal

from typing_extensions import TypedDict

Role = Literal["user", "assistant"]


class MessageParam(TypedDict):
    """One conversation turn in the upstream wire format."""

    role: Role
    content: str


class UsagePayload(TypedDict):
    """Usage block of a successful /api/chat response."""

    input_tokens: int
    output_tokens: int
    input_cost: str
    output_cost: str
    total_cost: str


class HealthStatus(TypedDict):
    """Health status of system components."""

    llm: bool
