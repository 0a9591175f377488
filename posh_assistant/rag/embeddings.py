"""
Embeddings Module

Generates vector embeddings with the Gemini embedding API.
Embeddings place questions and POSH policy passages in the same vector
space so the external pgvector store can rank passages by similarity.

Process:
1. Take input text (question or policy chunk)
2. Send to Gemini embedContent (text-embedding-004)
3. Get back a 768-dimensional vector
"""

import json
from typing import List, Optional

import httpx
import numpy as np

from posh_assistant.core.config import settings
from posh_assistant.core.errors import EmbeddingError
from posh_assistant.core.logging import get_logger
from posh_assistant.llm.client import build_timeout

logger = get_logger(__name__)


class EmbeddingClient:
    """
    Embedding client for generating vector representations using Gemini.
    """

    def __init__(
        self,
        api_key: str = settings.GEMINI_API_KEY,
        base_url: str = settings.GEMINI_BASE_URL,
        model: str = settings.EMBEDDING_MODEL,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize embedding client.

        Args:
            api_key: Gemini API key
            base_url: Gemini REST base URL
            model: Embedding model name (e.g., 'text-embedding-004')
            timeout: Request timeout
            transport: Optional httpx transport (tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout or build_timeout()
        self.transport = transport

        logger.info(f"Initialized Embedding Client with model: {self.model}")

    async def embed_text(self, text: str) -> np.ndarray:
        """
        Generate embedding for a single text.

        Args:
            text: Input text to embed

        Returns:
            Numpy array of embeddings; empty when the input is blank

        Raises:
            EmbeddingError: If the API call fails or returns no vector
        """
        if not text or not text.strip():
            logger.warning("Empty text provided for embedding")
            return np.zeros(0, dtype=np.float32)

        payload = {
            "model": f"models/{self.model}",
            "content": {"parts": [{"text": text.strip()}]},
        }
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                headers={"x-goog-api-key": self.api_key},
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post(f"/models/{self.model}:embedContent", json=payload)
                response.raise_for_status()
                values = response.json().get("embedding", {}).get("values", [])
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.error(f"Error generating embedding: {e}")
            raise EmbeddingError(f"Embedding request failed: {e}") from e

        if not values:
            raise EmbeddingError("No embedding returned from Gemini")

        logger.debug(f"Generated embedding for text (length: {len(text)})")
        return np.array(values, dtype=np.float32)

    async def embed_texts(self, texts: List[str]) -> List[np.ndarray]:
        """
        Generate embeddings for multiple texts, one request per text.

        Args:
            texts: List of input texts

        Returns:
            List of numpy arrays (one per text)
        """
        embeddings = []
        for text in texts:
            embeddings.append(await self.embed_text(text))

        logger.info(f"Generated embeddings for {len(embeddings)} texts")
        return embeddings


# Global embedding client instance
_embedding_client = None


def get_embedding_client() -> EmbeddingClient:
    """Get or create embedding client"""
    global _embedding_client
    if _embedding_client is None:
        _embedding_client = EmbeddingClient()
    return _embedding_client
