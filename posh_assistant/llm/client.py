import json
from typing import AsyncIterator, Optional, Dict, Any, List, Sequence
from abc import ABC, abstractmethod

import httpx

from posh_assistant.core.config import settings
from posh_assistant.core.errors import LLMProviderError
from posh_assistant.core.logging import get_logger

logger = get_logger(__name__)


def build_timeout(
    total: float = settings.HTTP_TIMEOUT_SECONDS,
    connect: float = settings.HTTP_CONNECT_TIMEOUT_SECONDS,
) -> httpx.Timeout:
    """Timeout applied to every provider request"""
    return httpx.Timeout(total, connect=connect)


def message_to_dict(message: Any) -> Dict[str, str]:
    """Normalize a ChatMessage model or a plain mapping to the wire shape"""
    if isinstance(message, dict):
        role, content = message["role"], message["content"]
    else:
        role, content = message.role, message.content
    return {"role": getattr(role, "value", role), "content": content}


def assemble_messages(
    messages: Sequence[Any],
    system_prompt: Optional[str] = None,
) -> List[Dict[str, str]]:
    """
    Build the message list sent to the provider.

    When a system prompt is given it always becomes the single leading
    message, followed by the caller's messages in their original order.
    """
    assembled = [message_to_dict(m) for m in messages]
    if system_prompt is not None:
        assembled.insert(0, {"role": "system", "content": system_prompt})
    return assembled


def _raise_for_provider_status(response: httpx.Response, body: str = ""):
    """Translate non-2xx provider responses into LLMProviderError"""
    if response.is_success:
        return
    status = response.status_code
    if status == 429:
        message = "Groq rate limit exceeded. Please try again later."
    elif status == 401:
        message = "Invalid Groq API key. Please check GROQ_API_KEY."
    else:
        message = f"Groq API error: {status} - {body[:500]}"
    raise LLMProviderError(message, status_code=status)


def _extract_delta(chunk: Dict[str, Any]) -> str:
    """Pull the text delta out of one streamed completion chunk"""
    if "error" in chunk:
        raise LLMProviderError(f"Provider reported an error mid-stream: {chunk['error']}")
    try:
        choices = chunk.get("choices") or []
        if not choices:
            return ""
        delta = choices[0].get("delta") or {}
        return delta.get("content") or ""
    except (AttributeError, TypeError, IndexError) as e:
        raise LLMProviderError(f"Unexpected stream chunk shape: {chunk!r}") from e


class LLMClient(ABC):
    """Abstract base class for chat-completion clients"""

    model: str

    @abstractmethod
    async def chat(self, messages: Sequence[Any], **kwargs) -> str:
        """Return a complete response for the given messages"""

    @abstractmethod
    def stream_chat(self, messages: Sequence[Any], **kwargs) -> AsyncIterator[str]:
        """Return an async iterator over text deltas as they arrive"""


class GroqClient(LLMClient):
    """Groq chat-completion client (OpenAI-compatible REST API)"""

    def __init__(
        self,
        api_key: str = settings.GROQ_API_KEY,
        base_url: str = settings.GROQ_BASE_URL,
        model: str = settings.GROQ_CHAT_MODEL,
        temperature: float = settings.CHAT_TEMPERATURE,
        max_tokens: int = settings.CHAT_MAX_TOKENS,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Groq client

        Args:
            api_key: Groq API key
            base_url: API base URL (OpenAI-compatible)
            model: Default chat model
            temperature: Default sampling temperature
            max_tokens: Default output length cap
            timeout: Request timeout (defaults to the configured HTTP timeout)
            transport: Optional httpx transport, used by tests to script responses
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout or build_timeout()
        self.transport = transport

        if not api_key:
            logger.warning("GROQ_API_KEY is not set; chat requests will be rejected")
        logger.info(f"Initialized Groq client with model: {self.model}")

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            transport=self.transport,
        )

    def _build_payload(
        self,
        messages: List[Dict[str, str]],
        stream: bool,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Build request payload for the chat completions endpoint"""
        return {
            "model": model or self.model,
            "messages": messages,
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": max_tokens or self.max_tokens,
            "stream": stream,
        }

    async def chat(
        self,
        messages: Sequence[Any],
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate a complete (non-streaming) response

        Args:
            messages: Conversation transcript
            system_prompt: Optional system prompt placed before the transcript
            model: Model override
            temperature: Sampling temperature override
            max_tokens: Output length cap override

        Returns:
            The assistant's reply, or an empty string when the provider sent none

        Raises:
            LLMProviderError: If the request fails or the payload is malformed
        """
        payload = self._build_payload(
            assemble_messages(messages, system_prompt),
            stream=False,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        try:
            async with self._http_client() as client:
                logger.debug(f"Requesting completion from model: {payload['model']}")
                response = await client.post("/chat/completions", json=payload)
                _raise_for_provider_status(response, response.text)
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error requesting completion: {e}")
            raise LLMProviderError(f"Groq request failed: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing Groq response: {e}")
            raise LLMProviderError("Groq returned a non-JSON response") from e
        except LLMProviderError as e:
            logger.error(f"Groq completion rejected: {e}")
            raise

        try:
            choices = data.get("choices") or []
            message = (choices[0].get("message") or {}) if choices else {}
            return message.get("content") or ""
        except (AttributeError, TypeError, IndexError) as e:
            logger.error(f"Unexpected Groq response shape: {e}")
            raise LLMProviderError("Unexpected Groq response shape") from e

    async def stream_chat(
        self,
        messages: Sequence[Any],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> AsyncIterator[str]:
        """
        Stream a response as text deltas

        The request is sent on the first pull. Closing the iterator closes the
        HTTP response, so an abandoned consumer stops the remote generation.

        Args:
            messages: Full message list (system prompt already included)
            model: Model override
            temperature: Sampling temperature override
            max_tokens: Output length cap override

        Yields:
            Non-empty text deltas in arrival order

        Raises:
            LLMProviderError: If the request fails, the provider reports an
                error, or a chunk cannot be parsed
        """
        payload = self._build_payload(
            [message_to_dict(m) for m in messages],
            stream=True,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )
        try:
            async with self._http_client() as client:
                logger.debug(f"Streaming response with model: {payload['model']}")
                async with client.stream("POST", "/chat/completions", json=payload) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", "replace")
                        _raise_for_provider_status(response, body)

                    async for line in response.aiter_lines():
                        if not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break
                        try:
                            chunk = json.loads(data)
                        except json.JSONDecodeError as e:
                            raise LLMProviderError(f"Malformed stream chunk: {data[:200]}") from e
                        delta = _extract_delta(chunk)
                        if delta:
                            yield delta

            logger.debug("Streaming response completed")

        except httpx.HTTPError as e:
            logger.error(f"Error streaming response: {e}")
            raise LLMProviderError(f"Groq stream failed: {e}") from e


class GeminiClient:
    """Gemini text generation client for fallback answers and case analysis"""

    def __init__(
        self,
        api_key: str = settings.GEMINI_API_KEY,
        base_url: str = settings.GEMINI_BASE_URL,
        model: str = settings.GEMINI_MODEL,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout or build_timeout()
        self.transport = transport

        logger.info(f"Initialized Gemini client with model: {self.model}")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate(self, prompt: str) -> str:
        """
        Generate a single response for a prompt

        Raises:
            LLMProviderError: If the request fails or no text comes back
        """
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(f"/models/{self.model}:generateContent", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Error generating Gemini response: {e}")
            raise LLMProviderError(f"Gemini request failed: {e}") from e
        except json.JSONDecodeError as e:
            logger.error(f"Error parsing Gemini response: {e}")
            raise LLMProviderError("Gemini returned a non-JSON response") from e

        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts).strip()
        except (KeyError, IndexError, TypeError) as e:
            raise LLMProviderError("Unexpected Gemini response shape") from e
        if not text:
            raise LLMProviderError("Gemini returned an empty response")
        return text


# Default client instances
llm_client: Optional[LLMClient] = None
gemini_client: Optional[GeminiClient] = None


def get_llm_client() -> LLMClient:
    """Get or create the chat client"""
    global llm_client
    if llm_client is None:
        llm_client = GroqClient()
    return llm_client


def get_gemini_client() -> GeminiClient:
    """Get or create the Gemini client"""
    global gemini_client
    if gemini_client is None:
        gemini_client = GeminiClient()
    return gemini_client
