"""
Error types shared across the service.

Provider clients wrap transport, status and payload problems in
LLMProviderError / EmbeddingError; the streaming relay raises
StreamRelayError when the remote stream fails after it has started.
"""


class PoshAssistantError(Exception):
    """Base class for application errors"""


class LLMProviderError(PoshAssistantError):
    """A chat-completion provider call failed or returned an unusable payload"""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class StreamRelayError(PoshAssistantError):
    """The remote token stream failed before reaching its end"""


class EmbeddingError(PoshAssistantError):
    """An embedding request failed or returned no vector"""


class VectorStoreError(PoshAssistantError):
    """The external vector store rejected a search or insert"""
