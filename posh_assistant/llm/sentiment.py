"""
Quick sentiment check

A small, fast classification call used for real-time feedback while an
employee is writing. It maps the model's reply onto three labels and never
raises: any failure resolves to NEUTRAL so the caller's flow is unaffected.

Label priority when parsing the reply: "distressed" is checked first, then
"negative". A reply that mentions both resolves to DISTRESSED.
"""

from enum import Enum
from typing import Optional

from posh_assistant.core.config import settings
from posh_assistant.core.logging import get_logger
from posh_assistant.llm.client import LLMClient, get_llm_client

logger = get_logger(__name__)


class SentimentLabel(str, Enum):
    """Emotional tone of a short text"""
    DISTRESSED = "distressed"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"


CLASSIFICATION_PROMPT = (
    'Classify this text\'s emotional tone as exactly one word: '
    '"distressed", "negative", or "neutral".\nText: "{text}"'
)


def build_classification_prompt(text: str) -> str:
    """Truncate the text and embed it in the classification instruction"""
    return CLASSIFICATION_PROMPT.format(text=text[:settings.SENTIMENT_MAX_INPUT_CHARS])


def parse_sentiment(reply: Optional[str]) -> SentimentLabel:
    """Map a raw model reply to a label (case-insensitive substring match)"""
    normalized = (reply or "").lower().strip()
    if SentimentLabel.DISTRESSED.value in normalized:
        return SentimentLabel.DISTRESSED
    if SentimentLabel.NEGATIVE.value in normalized:
        return SentimentLabel.NEGATIVE
    return SentimentLabel.NEUTRAL


async def quick_sentiment_check(
    text: str,
    client: Optional[LLMClient] = None,
) -> SentimentLabel:
    """
    Classify the emotional tone of a text.

    Texts shorter than SENTIMENT_MIN_CHARS are treated as uninformative and
    return NEUTRAL without a remote call.

    Args:
        text: Text to classify
        client: Chat client (uses the default client if None)

    Returns:
        One of DISTRESSED, NEGATIVE, NEUTRAL
    """
    if len(text or "") < settings.SENTIMENT_MIN_CHARS:
        return SentimentLabel.NEUTRAL

    try:
        client = client or get_llm_client()
        reply = await client.chat(
            [{"role": "user", "content": build_classification_prompt(text)}],
            model=settings.GROQ_SENTIMENT_MODEL,
            temperature=0,
            max_tokens=settings.SENTIMENT_MAX_TOKENS,
        )
        label = parse_sentiment(reply)
    except Exception as e:
        logger.warning(f"Sentiment check failed, defaulting to neutral: {e}")
        return SentimentLabel.NEUTRAL

    logger.debug(f"Sentiment reply {reply!r} classified as {label.value}")
    return label
