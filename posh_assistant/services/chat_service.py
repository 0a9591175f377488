"""
Chat Service Module

Business logic layer for the POSH chatbot.
Handles:
- Message validation and prompt-injection checks
- Context retrieval with built-in fallback passages
- System prompt assembly and transcript windowing
- Streaming responses, with a single-shot fallback answer when the
  streaming model cannot be reached
"""

from typing import Optional, List, Dict, Any, AsyncIterator, Sequence

from posh_assistant.core.config import settings
from posh_assistant.core.errors import StreamRelayError
from posh_assistant.core.logging import get_logger
from posh_assistant.llm.client import get_llm_client, get_gemini_client, message_to_dict
from posh_assistant.llm.streaming import stream_chat_sse, encode_token_frame, SSE_DONE_FRAME
from posh_assistant.rag.posh_context import (
    POSH_FALLBACK_CONTEXT,
    FALLBACK_ANSWER_PASSAGE_COUNT,
    select_fallback_context,
)
from posh_assistant.rag.prompt import (
    build_posh_system_prompt,
    build_fallback_answer_prompt,
    FALLBACK_APOLOGY,
)
from posh_assistant.rag.retriever import get_retriever
from posh_assistant.utils.guards import detect_prompt_injection, sanitize_input

logger = get_logger(__name__)


class ChatService:
    """
    Service for handling POSH chatbot conversations.
    """

    def __init__(self, retriever=None, llm_client=None, gemini_client=None):
        """Initialize chat service with RAG components"""
        self.retriever = retriever or get_retriever()
        self.llm_client = llm_client or get_llm_client()
        self.gemini_client = gemini_client or get_gemini_client()

        logger.info("Initialized ChatService")

    def validate_query(self, query: str) -> str:
        """
        Validate and clean an employee message.

        Args:
            query: Raw message

        Returns:
            Sanitized message

        Raises:
            ValueError: If the message is empty, too long or looks like an
                attempt to override the assistant's instructions
        """
        cleaned = sanitize_input(query)
        if not cleaned:
            raise ValueError("Message is required")

        if len(cleaned) > settings.MAX_MESSAGE_CHARS:
            raise ValueError(f"Message too long (max {settings.MAX_MESSAGE_CHARS} characters)")

        if settings.ENABLE_PROMPT_INJECTION_GUARD:
            is_safe, message = detect_prompt_injection(cleaned)
            if not is_safe:
                raise ValueError(f"Suspicious message pattern detected: {message}")

        return cleaned

    def build_transcript(
        self,
        history: Sequence[Any],
        message: str
    ) -> List[Dict[str, str]]:
        """
        Build the transcript sent after the system prompt.

        Only the last HISTORY_WINDOW history entries are kept. Entries not
        written by the user are sent as assistant turns, so a caller cannot
        smuggle in a second system message.
        """
        transcript = []
        for entry in list(history)[-settings.HISTORY_WINDOW:]:
            item = message_to_dict(entry)
            role = "user" if item["role"] == "user" else "assistant"
            transcript.append({"role": role, "content": item["content"]})

        transcript.append({"role": "user", "content": message})
        return transcript

    async def gather_context(self, message: str) -> List[str]:
        """Retrieve passages for a message, falling back to built-in ones"""
        context_chunks = await self.retriever.retrieve(message)
        if context_chunks:
            return context_chunks

        logger.debug("No vector context found, selecting built-in passages")
        return select_fallback_context(message)

    async def fallback_answer(self, message: str) -> str:
        """Single-shot answer over the first built-in passages"""
        prompt = build_fallback_answer_prompt(
            message,
            POSH_FALLBACK_CONTEXT[:FALLBACK_ANSWER_PASSAGE_COUNT],
        )
        try:
            return await self.gemini_client.generate(prompt)
        except Exception as e:
            logger.error(f"Fallback answer failed: {e}")
            return FALLBACK_APOLOGY

    async def stream_response(
        self,
        message: str,
        history: Optional[Sequence[Any]] = None
    ) -> AsyncIterator[bytes]:
        """
        Stream the assistant's answer as SSE frames.

        If the chat stream fails before the first frame, a fallback answer is
        sent as one token frame followed by [DONE]. A failure after tokens
        have been sent is re-raised so the stream aborts.

        Args:
            message: Validated employee message
            history: Previous conversation turns

        Yields:
            Encoded SSE frames
        """
        context_chunks = await self.gather_context(message)
        system_prompt = build_posh_system_prompt(context_chunks)
        transcript = self.build_transcript(history or [], message)

        logger.info(f"Streaming answer with {len(context_chunks)} context passages")

        frames = stream_chat_sse(self.llm_client, transcript, system_prompt)
        started = False
        try:
            async for frame in frames:
                started = True
                yield frame
        except StreamRelayError as e:
            if started:
                raise
            logger.warning(f"Chat stream unavailable, sending fallback answer: {e}")
            answer = await self.fallback_answer(message)
            yield encode_token_frame(answer)
            yield SSE_DONE_FRAME
        finally:
            await frames.aclose()

    async def generate_response(
        self,
        message: str,
        history: Optional[Sequence[Any]] = None
    ) -> Dict[str, Any]:
        """
        Generate a complete (non-streaming) answer.

        Returns:
            Dict with status, message, context_count and model_used

        Raises:
            LLMProviderError: If the chat model call fails
        """
        context_chunks = await self.gather_context(message)
        answer = await self.llm_client.chat(
            self.build_transcript(history or [], message),
            system_prompt=build_posh_system_prompt(context_chunks),
        )
        return {
            "status": "success",
            "message": answer,
            "context_count": len(context_chunks),
            "model_used": getattr(self.llm_client, "model", None),
        }


# Global service instance
_chat_service = None


def get_chat_service() -> ChatService:
    """Get or create chat service instance"""
    global _chat_service
    if _chat_service is None:
        _chat_service = ChatService()
    return _chat_service
