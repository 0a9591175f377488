import asyncio
import json

import httpx
import pytest

from posh_assistant.core.errors import LLMProviderError, StreamRelayError
from posh_assistant.llm.client import GroqClient, assemble_messages
from posh_assistant.llm.streaming import (
    SSE_DONE_FRAME,
    collect_stream,
    encode_token_frame,
    iter_sse_tokens,
    relay_tokens,
    stream_chat_sse,
)


async def scripted(tokens, error=None):
    for token in tokens:
        yield token
    if error is not None:
        raise error


async def drain(frames):
    return [frame async for frame in frames]


def provider_sse(*chunks, done=True):
    """Build a provider streaming body from delta strings or raw chunk dicts"""
    lines = []
    for chunk in chunks:
        if isinstance(chunk, str):
            chunk = {"choices": [{"index": 0, "delta": {"content": chunk}}]}
        lines.append(f"data: {json.dumps(chunk)}\n\n")
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


def test_relay_emits_frames_in_order_then_done():
    frames = asyncio.run(drain(relay_tokens(scripted(["Hello", " ", "world"]))))

    assert frames == [
        b'data: {"token":"Hello"}\n\n',
        b'data: {"token":" "}\n\n',
        b'data: {"token":"world"}\n\n',
        b"data: [DONE]\n\n",
    ]


def test_relay_skips_empty_tokens():
    frames = asyncio.run(drain(relay_tokens(scripted(["", "a", "", "b"]))))

    assert frames == [encode_token_frame("a"), encode_token_frame("b"), SSE_DONE_FRAME]


def test_relay_aborts_without_done_on_failure():
    async def consume():
        received = []
        with pytest.raises(StreamRelayError):
            async for frame in relay_tokens(scripted(["Hello"], error=RuntimeError("connection reset"))):
                received.append(frame)
        return received

    received = asyncio.run(consume())

    assert received == [b'data: {"token":"Hello"}\n\n']
    assert SSE_DONE_FRAME not in received


def test_relay_closes_source_when_consumer_stops():
    state = {"pulled": 0, "closed": False}

    async def endless():
        try:
            while True:
                state["pulled"] += 1
                yield f"t{state['pulled']}"
        finally:
            state["closed"] = True

    async def consume_one():
        frames = relay_tokens(endless())
        first = await frames.__anext__()
        await frames.aclose()
        return first

    first = asyncio.run(consume_one())

    assert first == encode_token_frame("t1")
    assert state["closed"] is True
    assert state["pulled"] == 1


def test_encode_token_frame_keeps_unicode_and_escapes_quotes():
    frame = encode_token_frame('she said "no" नमस्ते')

    payload = json.loads(frame.decode("utf-8")[len("data: "):].strip())
    assert payload == {"token": 'she said "no" नमस्ते'}
    assert frame.endswith(b"\n\n")


def test_assemble_messages_always_prepends_system_prompt():
    transcript = [
        {"role": "system", "content": "caller supplied"},
        {"role": "user", "content": "hi"},
    ]

    assert assemble_messages(transcript, "P") == [
        {"role": "system", "content": "P"},
        {"role": "system", "content": "caller supplied"},
        {"role": "user", "content": "hi"},
    ]


def test_stream_chat_sse_sends_system_prompt_then_transcript():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["payload"] = json.loads(request.content)
        captured["auth"] = request.headers["Authorization"]
        return httpx.Response(200, content=provider_sse("Hi", " there"))

    client = GroqClient(api_key="test-key", transport=httpx.MockTransport(handler))
    transcript = [
        {"role": "user", "content": "What is the ICC?"},
        {"role": "assistant", "content": "It is a committee."},
        {"role": "user", "content": "Who sits on it?"},
    ]

    frames = asyncio.run(drain(stream_chat_sse(client, transcript, "SYSTEM")))

    payload = captured["payload"]
    assert payload["messages"] == [{"role": "system", "content": "SYSTEM"}] + transcript
    assert payload["stream"] is True
    assert payload["temperature"] == 0.7
    assert payload["max_tokens"] == 1024
    assert payload["model"] == "llama-3.3-70b-versatile"
    assert captured["auth"] == "Bearer test-key"
    assert frames == [encode_token_frame("Hi"), encode_token_frame(" there"), SSE_DONE_FRAME]


def test_groq_stream_ignores_role_and_finish_chunks():
    body = provider_sse(
        {"choices": [{"index": 0, "delta": {"role": "assistant"}}]},
        "Yes",
        {"choices": [{"index": 0, "delta": {}, "finish_reason": "stop"}]},
        {"choices": [], "x_groq": {"usage": {"completion_tokens": 1}}},
    )
    client = GroqClient(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(200, content=body)))

    tokens = asyncio.run(drain(client.stream_chat([{"role": "user", "content": "q"}])))

    assert tokens == ["Yes"]


def test_groq_stream_malformed_chunk_aborts_relay():
    body = b'data: {"choices":[{"delta":{"content":"ok"}}]}\n\ndata: {not json\n\n'
    client = GroqClient(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(200, content=body)))

    async def consume():
        received = []
        with pytest.raises(StreamRelayError):
            async for frame in stream_chat_sse(client, [], "P"):
                received.append(frame)
        return received

    assert asyncio.run(consume()) == [encode_token_frame("ok")]


def test_groq_stream_http_error_raises_provider_error():
    client = GroqClient(
        api_key="bad",
        transport=httpx.MockTransport(lambda r: httpx.Response(401, json={"error": "invalid key"})),
    )

    with pytest.raises(LLMProviderError) as exc_info:
        asyncio.run(drain(client.stream_chat([{"role": "user", "content": "q"}])))

    assert exc_info.value.status_code == 401


def test_groq_stream_transport_error_aborts_relay():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    client = GroqClient(api_key="k", transport=httpx.MockTransport(handler))

    with pytest.raises(StreamRelayError):
        asyncio.run(drain(stream_chat_sse(client, [], "P")))


def test_groq_chat_returns_message_content():
    def handler(request):
        payload = json.loads(request.content)
        assert payload["stream"] is False
        assert payload["messages"][0] == {"role": "system", "content": "S"}
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": "Answer"}}]})

    client = GroqClient(api_key="k", transport=httpx.MockTransport(handler))

    assert asyncio.run(client.chat([{"role": "user", "content": "q"}], system_prompt="S")) == "Answer"


def test_groq_chat_without_choices_returns_empty_string():
    client = GroqClient(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"choices": []})))

    assert asyncio.run(client.chat([{"role": "user", "content": "q"}])) == ""


def test_consumer_parsing_stops_at_done():
    lines = [
        'data: {"token":"Hel"}',
        "",
        'data: {"token":"lo"}',
        "data: [DONE]",
        'data: {"token":"ignored"}',
    ]

    assert list(iter_sse_tokens(lines)) == ["Hel", "lo"]


def test_collect_stream_round_trips_relay_output():
    frames = asyncio.run(drain(relay_tokens(scripted(["Under ", "Section 9", ", file within 3 months."]))))

    assert collect_stream(frames) == "Under Section 9, file within 3 months."


def test_consumer_parsing_raises_when_done_is_missing():
    received = []

    with pytest.raises(StreamRelayError):
        for token in iter_sse_tokens(['data: {"token":"Under Section"}', 'data: {"token":" 9"}']):
            received.append(token)

    assert received == ["Under Section", " 9"]


def test_collect_stream_rejects_aborted_relay_output():
    async def consume():
        frames = []
        with pytest.raises(StreamRelayError):
            async for frame in relay_tokens(scripted(["Partial"], error=RuntimeError("reset"))):
                frames.append(frame)
        return frames

    frames = asyncio.run(consume())

    with pytest.raises(StreamRelayError):
        collect_stream(frames)


class TrackedBody(httpx.AsyncByteStream):
    """Provider response body that records how much was read and whether it was closed"""

    def __init__(self, lines):
        self.lines = lines
        self.sent = 0
        self.closed = False

    async def __aiter__(self):
        for line in self.lines:
            self.sent += 1
            yield line

    async def aclose(self):
        self.closed = True


def test_closing_relay_closes_provider_response():
    body = TrackedBody([
        provider_sse("Hello", done=False),
        provider_sse(" world", done=False),
        provider_sse("!", done=False),
        b"data: [DONE]\n\n",
    ])
    client = GroqClient(
        api_key="k",
        transport=httpx.MockTransport(lambda r: httpx.Response(200, stream=body)),
    )

    async def first_frame_then_disconnect():
        frames = stream_chat_sse(client, [{"role": "user", "content": "q"}], "P")
        first = await frames.__anext__()
        await frames.aclose()
        return first, body.closed

    first, closed_on_disconnect = asyncio.run(first_frame_then_disconnect())

    assert first == encode_token_frame("Hello")
    assert closed_on_disconnect is True
    assert body.sent < len(body.lines)
