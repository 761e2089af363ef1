"""Chat client that drives the proxy and keeps the transcript."""

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from .exceptions import ProxyRequestError, RequestInFlightError
from .models import Turn, UsageReport
from .storage import TranscriptStore

CHAT_PATH = "/api/chat"
DEFAULT_ERROR = "An error occurred while processing your request."


class ChatClient:
    """Append-only transcript plus one outstanding proxy call at most."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        store: TranscriptStore | None = None,
        http_client: httpx.AsyncClient | None = None,
        single_turn: bool = False,
        timeout: float = 60.0,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Root URL of the proxy.
            store: Optional persisted copy of the transcript, loaded here.
            http_client: Preconfigured client; overrides ``base_url``.
            single_turn: Send only the latest message instead of the full transcript.
            timeout: Request timeout for the default http client.
        """
        self.http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.store = store
        self.single_turn = single_turn
        self.is_loading = False
        self._generation = 0
        self._transcript: tuple[Turn, ...] = tuple(store.load()) if store else ()

    @property
    def transcript(self) -> tuple[Turn, ...]:
        return self._transcript

    def _append(self, turn: Turn) -> None:
        self._transcript = (*self._transcript, turn)
        if self.store:
            self.store.save(self._transcript)

    def _payload(self) -> dict[str, Any]:
        if self.single_turn:
            return {"message": self._transcript[-1].content}
        return {"messages": [turn.as_message() for turn in self._transcript]}

    async def _request(self) -> Turn:
        response = await self.http.post(CHAT_PATH, json=self._payload())
        try:
            data = response.json()
        except ValueError as e:
            raise ProxyRequestError(f"Invalid response from server ({response.status_code})") from e

        if not isinstance(data, dict):
            raise ProxyRequestError(f"Invalid response from server ({response.status_code})")
        if response.is_error or "error" in data:
            raise ProxyRequestError(data.get("error") or "Failed to get response")

        return Turn(
            role="assistant",
            content=data.get("message") or "",
            usage=UsageReport.model_validate(data.get("usage") or {}),
        )

    async def send(self, content: str) -> Turn | None:
        """Submit a user turn and wait for the assistant reply.

        Returns:
            The assistant turn that was appended, or None for blank input.

        Raises:
            RequestInFlightError: If a previous call has not resolved yet.
        """
        content = content.strip()
        if not content:
            return None
        if self.is_loading:
            raise RequestInFlightError("A request is already in progress")

        self.is_loading = True
        generation = self._generation

        try:
            self._append(Turn(role="user", content=content))
            reply = await self._request()
        except (httpx.HTTPError, ProxyRequestError, ValidationError) as e:
            logger.warning(f"Chat request failed: {e!r}")
            reply = Turn(role="assistant", content=str(e) or DEFAULT_ERROR, is_error=True)
        finally:
            self.is_loading = False

        if generation != self._generation:
            logger.info("Transcript was reset while waiting; dropping reply")
            return reply

        self._append(reply)
        return reply

    def reset(self) -> None:
        """Clear the transcript and its persisted copy."""
        self._generation += 1
        self._transcript = ()
        if self.store:
            self.store.clear()

    async def aclose(self) -> None:
        await self.http.aclose()

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
