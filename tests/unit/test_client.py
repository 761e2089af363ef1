"""Tests for the chat client."""

import asyncio
import json

import httpx
import pytest

from chat_proxy.client import DEFAULT_ERROR, ChatClient
from chat_proxy.exceptions import RequestInFlightError
from chat_proxy.models import Turn
from chat_proxy.storage import TranscriptStore

USAGE = {
    "input_tokens": 10,
    "output_tokens": 25,
    "input_cost": "0.000030",
    "output_cost": "0.000375",
    "total_cost": "0.000405",
}


def make_client(handler, **kwargs) -> ChatClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://proxy")
    return ChatClient(http_client=http, **kwargs)


def ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"message": "Hi there", "usage": USAGE})


class TestSend:
    """Test ChatClient.send."""

    @pytest.mark.asyncio
    async def test_success_appends_user_then_assistant(self):
        client = make_client(ok)

        reply = await client.send("  Hello  ")

        assert client.transcript == (
            Turn(role="user", content="Hello"),
            reply,
        )
        assert reply.role == "assistant"
        assert reply.content == "Hi there"
        assert reply.is_error is False
        assert reply.usage.model_dump() == USAGE

    @pytest.mark.asyncio
    async def test_sends_whole_transcript(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return ok(request)

        client = make_client(handler)
        await client.send("one")
        await client.send("two")

        assert bodies[-1] == {
            "messages": [
                {"role": "user", "content": "one"},
                {"role": "assistant", "content": "Hi there"},
                {"role": "user", "content": "two"},
            ]
        }
        assert len(client.transcript) == 4

    @pytest.mark.asyncio
    async def test_single_turn_sends_latest_only(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return ok(request)

        client = make_client(handler, single_turn=True)
        await client.send("one")
        await client.send("two")

        assert bodies == [{"message": "one"}, {"message": "two"}]

    @pytest.mark.asyncio
    async def test_blank_input_ignored(self):
        calls = []
        client = make_client(lambda request: calls.append(request) or ok(request))

        assert await client.send("   ") is None
        assert client.transcript == ()
        assert calls == []

    @pytest.mark.asyncio
    async def test_proxy_error_becomes_error_turn(self):
        client = make_client(
            lambda request: httpx.Response(500, json={"error": "Anthropic API error: overloaded"})
        )

        reply = await client.send("Hello")

        assert client.transcript[0] == Turn(role="user", content="Hello")
        assert client.transcript[1] is reply
        assert len(client.transcript) == 2
        assert reply.is_error is True
        assert reply.usage is None
        assert reply.content == "Anthropic API error: overloaded"

    @pytest.mark.asyncio
    async def test_error_without_message(self):
        client = make_client(lambda request: httpx.Response(500, json={}))

        reply = await client.send("Hello")

        assert reply.is_error is True
        assert reply.content == "Failed to get response"

    @pytest.mark.asyncio
    async def test_unreachable_proxy(self):
        def refuse(request):
            raise httpx.ConnectError("", request=request)

        client = make_client(refuse)

        reply = await client.send("Hello")

        assert reply.is_error is True
        assert reply.content == DEFAULT_ERROR
        assert [turn.role for turn in client.transcript] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_non_json_response(self):
        client = make_client(lambda request: httpx.Response(502, text="Bad Gateway"))

        reply = await client.send("Hello")

        assert reply.is_error is True
        assert "502" in reply.content

    @pytest.mark.asyncio
    async def test_loading_flag_cleared_after_failure(self):
        client = make_client(lambda request: httpx.Response(500, json={"error": "x"}))

        await client.send("Hello")

        assert client.is_loading is False


class TestSingleRequestInFlight:
    """Test that overlapping submissions are rejected."""

    @pytest.mark.asyncio
    async def test_second_submit_rejected_while_loading(self):
        release = asyncio.Event()
        calls = []

        async def slow(request):
            calls.append(request)
            await release.wait()
            return ok(request)

        client = make_client(slow)
        first = asyncio.create_task(client.send("first"))
        await asyncio.sleep(0)
        while not calls:
            await asyncio.sleep(0)

        assert client.is_loading is True
        with pytest.raises(RequestInFlightError):
            await client.send("second")

        release.set()
        await first

        assert len(calls) == 1
        assert [turn.content for turn in client.transcript] == ["first", "Hi there"]
        assert client.is_loading is False


class TestReset:
    """Test ChatClient.reset."""

    @pytest.mark.asyncio
    async def test_reset_clears_transcript_and_store(self, tmp_path):
        store = TranscriptStore(tmp_path / "history.json")
        client = make_client(ok, store=store)
        await client.send("Hello")

        client.reset()

        assert client.transcript == ()
        assert store.load() == []

    @pytest.mark.asyncio
    async def test_reply_after_reset_is_dropped(self):
        release = asyncio.Event()

        async def slow(request):
            await release.wait()
            return ok(request)

        client = make_client(slow)
        pending = asyncio.create_task(client.send("Hello"))
        while not client.transcript:
            await asyncio.sleep(0)

        client.reset()
        release.set()
        await pending

        assert client.transcript == ()


class TestPersistence:
    """Test the client keeps its persisted copy current."""

    @pytest.mark.asyncio
    async def test_transcript_saved_and_reloaded(self, tmp_path):
        path = tmp_path / "history.json"
        client = make_client(ok, store=TranscriptStore(path))
        await client.send("Hello")
        await client.aclose()

        reloaded = make_client(ok, store=TranscriptStore(path))

        assert reloaded.transcript == client.transcript

    @pytest.mark.asyncio
    async def test_error_turns_persisted(self, tmp_path):
        path = tmp_path / "history.json"
        client = make_client(
            lambda request: httpx.Response(500, json={"error": "boom"}),
            store=TranscriptStore(path),
        )
        await client.send("Hello")

        saved = TranscriptStore(path).load()

        assert saved[-1].is_error is True
        assert saved[-1].content == "boom"

    @pytest.mark.asyncio
    async def test_context_manager_closes_http_client(self):
        async with make_client(ok) as client:
            http = client.http

        assert http.is_closed


class TestUnwritableHistory:
    """Test the client keeps working when its history file cannot be written."""

    @pytest.mark.asyncio
    async def test_save_failure_does_not_lock_client(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        client = make_client(ok, store=TranscriptStore(blocker / "history.json"))

        reply = await client.send("hello")

        assert client.is_loading is False
        assert reply.content == "Hi there"
        assert [turn.role for turn in client.transcript] == ["user", "assistant"]

        await client.send("again")

        assert len(client.transcript) == 4
