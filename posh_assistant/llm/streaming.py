"""
Server-Sent Events relay for streamed chat completions.

Wire format, one frame per event:
    data: {"token":"<delta>"}\n\n
terminated on success by
    data: [DONE]\n\n

A failure while reading the remote stream raises StreamRelayError instead of
sending the terminal frame, so consumers can tell an aborted answer from a
finished one.
"""

import json
from typing import AsyncIterator, Iterable, List, Optional, Sequence, Any

from posh_assistant.core.config import settings
from posh_assistant.core.errors import StreamRelayError
from posh_assistant.core.logging import get_logger
from posh_assistant.llm.client import LLMClient, assemble_messages

logger = get_logger(__name__)

SSE_DATA_PREFIX = "data: "
SSE_DONE_SENTINEL = "[DONE]"
SSE_DONE_FRAME = f"{SSE_DATA_PREFIX}{SSE_DONE_SENTINEL}\n\n".encode("utf-8")


def encode_token_frame(token: str) -> bytes:
    """Encode one token as an SSE frame"""
    payload = json.dumps({"token": token}, separators=(",", ":"), ensure_ascii=False)
    return f"{SSE_DATA_PREFIX}{payload}\n\n".encode("utf-8")


async def _close_source(tokens: AsyncIterator[str]):
    aclose = getattr(tokens, "aclose", None)
    if aclose is not None:
        await aclose()


async def relay_tokens(tokens: AsyncIterator[str]) -> AsyncIterator[bytes]:
    """
    Re-emit remote tokens as SSE frames.

    Tokens are pulled one at a time and each frame is yielded before the next
    token is requested. Empty tokens are skipped. The source is always closed
    on exit, including when the consumer stops reading early.

    Args:
        tokens: Async iterator of text deltas

    Yields:
        Encoded SSE frames, ending with the [DONE] frame on success

    Raises:
        StreamRelayError: If the source fails before reaching its end
    """
    emitted = 0
    try:
        async for token in tokens:
            if not token:
                continue
            emitted += 1
            yield encode_token_frame(token)
    except Exception as e:
        logger.error(f"Token stream failed after {emitted} frames: {e}")
        raise StreamRelayError(str(e) or e.__class__.__name__) from e
    finally:
        await _close_source(tokens)

    logger.debug(f"Token stream completed with {emitted} frames")
    yield SSE_DONE_FRAME


def stream_chat_sse(
    client: LLMClient,
    transcript: Sequence[Any],
    system_prompt: str,
    temperature: float = settings.CHAT_TEMPERATURE,
    max_tokens: int = settings.CHAT_MAX_TOKENS,
) -> AsyncIterator[bytes]:
    """
    Stream a chat completion as SSE frames.

    The system prompt is always sent as the single leading message, followed
    by the transcript in order.

    Args:
        client: Chat client providing stream_chat()
        transcript: Prior conversation, oldest first
        system_prompt: System prompt for this request
        temperature: Sampling temperature
        max_tokens: Output length cap

    Returns:
        Async iterator of encoded SSE frames
    """
    messages = assemble_messages(transcript, system_prompt)
    tokens = client.stream_chat(messages, temperature=temperature, max_tokens=max_tokens)
    return relay_tokens(tokens)


def parse_sse_line(line: str) -> Optional[str]:
    """
    Parse one SSE line into a token.

    Returns the token text, SSE_DONE_SENTINEL for the terminal frame, or None
    for blank lines, non-data lines and frames that do not carry a token.
    """
    if not line.startswith(SSE_DATA_PREFIX):
        return None
    data = line[len(SSE_DATA_PREFIX):].strip()
    if data == SSE_DONE_SENTINEL:
        return SSE_DONE_SENTINEL
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict):
        return None
    return payload.get("token") or None


def iter_sse_tokens(lines: Iterable[str]) -> Iterable[str]:
    """
    Yield tokens from SSE lines until the [DONE] frame.

    Raises:
        StreamRelayError: If the lines run out before [DONE]; the tokens
            already yielded are a truncated answer
    """
    for line in lines:
        token = parse_sse_line(line)
        if token == SSE_DONE_SENTINEL:
            return
        if token:
            yield token
    raise StreamRelayError("Stream ended without [DONE]")


def split_frames(frames: Iterable[bytes]) -> List[str]:
    """Decode raw SSE bytes into individual lines"""
    text = b"".join(frames).decode("utf-8")
    return [line for line in text.split("\n") if line]


def collect_stream(frames: Iterable[bytes]) -> str:
    """Accumulate the full answer text; raises StreamRelayError if truncated"""
    return "".join(iter_sse_tokens(split_frames(frames)))
