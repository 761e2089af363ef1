"""Data models using Pydantic."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt, field_validator, model_validator
from pydantic_core import PydanticCustomError

from .types import MessageParam, Role


class UsageReport(BaseModel):
    """Token counts and derived dollar costs for one assistant reply."""

    model_config = ConfigDict(frozen=True)

    input_tokens: NonNegativeInt = 0
    output_tokens: NonNegativeInt = 0
    input_cost: str = "0.000000"
    output_cost: str = "0.000000"
    total_cost: str = "0.000000"


class Turn(BaseModel):
    """One message of a transcript. Never edited once created."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    is_error: bool = False
    usage: UsageReport | None = None

    def as_message(self) -> MessageParam:
        """Strip client-side annotations, keeping what the provider sees."""
        return {"role": self.role, "content": self.content}


class ChatTurn(BaseModel):
    """A role-tagged turn as sent by the caller."""

    role: Role
    content: str


class ChatRequest(BaseModel):
    """Body of ``POST /api/chat``.

    ``messages`` is the canonical shape. ``message`` is the older single-turn
    shape and is accepted as a one-turn user conversation.
    """

    messages: list[ChatTurn] | None = None
    message: str | None = Field(
        default=None,
        description="Deprecated single-turn form; send 'messages' instead.",
    )

    @field_validator("messages")
    @classmethod
    def validate_messages(cls, value: list[ChatTurn] | None) -> list[ChatTurn] | None:
        if value is not None and not value:
            raise PydanticCustomError("empty_messages", "Conversation cannot be empty", {})
        return value

    @model_validator(mode="after")
    def require_conversation(self) -> "ChatRequest":
        if self.messages is None and self.message is None:
            raise PydanticCustomError(
                "missing_conversation",
                "Request must include 'messages' or 'message'",
                {},
            )
        return self

    @property
    def is_single_turn(self) -> bool:
        return self.messages is None

    def conversation(self) -> list[MessageParam]:
        """Return the ordered turns to forward upstream."""
        if self.messages is None:
            return [{"role": "user", "content": self.message or ""}]
        return [{"role": turn.role, "content": turn.content} for turn in self.messages]


class ChatResponse(BaseModel):
    """Successful response from the proxy."""

    message: str
    usage: UsageReport


class ErrorResponse(BaseModel):
    """Failure response from the proxy."""

    error: str

    @classmethod
    def from_exception(cls, exc: BaseException, default: str) -> dict[str, Any]:
        return cls(error=str(exc) or default).model_dump()
