import asyncio

import httpx

from posh_assistant.core.errors import LLMProviderError
from posh_assistant.llm.client import GroqClient
from posh_assistant.llm.sentiment import (
    SentimentLabel,
    build_classification_prompt,
    parse_sentiment,
    quick_sentiment_check,
)

LONG_TEXT = "My manager keeps sending me messages late at night and I feel unsafe."


class FakeClassifier:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def chat(self, messages, **kwargs):
        self.calls.append({"messages": messages, **kwargs})
        if self.error is not None:
            raise self.error
        return self.reply


def test_short_text_is_neutral_without_remote_call():
    client = FakeClassifier(reply="distressed")

    assert asyncio.run(quick_sentiment_check("help me now", client=client)) == SentimentLabel.NEUTRAL
    assert client.calls == []


def test_mixed_case_reply_is_recognised():
    client = FakeClassifier(reply="Distressed")

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.DISTRESSED


def test_reply_with_both_words_prefers_distressed():
    client = FakeClassifier(reply="negative, bordering on distressed")

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.DISTRESSED


def test_negative_reply():
    client = FakeClassifier(reply="  Negative.\n")

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.NEGATIVE


def test_unrecognised_reply_is_neutral():
    client = FakeClassifier(reply="angry")

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.NEUTRAL


def test_empty_reply_is_neutral():
    assert parse_sentiment("") == SentimentLabel.NEUTRAL
    assert parse_sentiment(None) == SentimentLabel.NEUTRAL


def test_remote_failure_is_neutral():
    client = FakeClassifier(error=LLMProviderError("Groq API error: 503", status_code=503))

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.NEUTRAL


def test_unexpected_reply_type_is_neutral():
    client = FakeClassifier(reply=42)

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.NEUTRAL


def test_request_uses_small_model_and_deterministic_sampling():
    client = FakeClassifier(reply="neutral")
    text = "x" * 500

    asyncio.run(quick_sentiment_check(text, client=client))

    call = client.calls[0]
    assert call["model"] == "llama-3.1-8b-instant"
    assert call["temperature"] == 0
    assert call["max_tokens"] == 10
    content = call["messages"][0]["content"]
    assert call["messages"][0]["role"] == "user"
    assert "x" * 300 + '"' in content
    assert "x" * 301 not in content


def test_classification_prompt_lists_all_labels():
    prompt = build_classification_prompt("some text")

    for label in ("distressed", "negative", "neutral"):
        assert f'"{label}"' in prompt
    assert prompt.endswith('Text: "some text"')


def test_end_to_end_with_http_failure_is_neutral():
    client = GroqClient(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(500, text="boom")))

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.NEUTRAL


def test_end_to_end_with_http_reply():
    client = GroqClient(
        api_key="k",
        transport=httpx.MockTransport(
            lambda r: httpx.Response(200, json={"choices": [{"message": {"content": "negative"}}]})
        ),
    )

    assert asyncio.run(quick_sentiment_check(LONG_TEXT, client=client)) == SentimentLabel.NEGATIVE
