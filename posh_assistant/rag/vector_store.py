"""
Vector Store Module

Thin gateway to the external Supabase pgvector store that holds embedded
POSH Act and policy passages. The store itself is owned elsewhere; this
module only issues PostgREST calls against it.

Operations:
- search: RPC similarity match, returns passage texts best-first
- add_chunk: insert one passage with its embedding
"""

import json
from typing import List, Optional, Dict, Any

import httpx
import numpy as np

from posh_assistant.core.config import settings
from posh_assistant.core.errors import VectorStoreError
from posh_assistant.core.logging import get_logger
from posh_assistant.llm.client import build_timeout

logger = get_logger(__name__)


class VectorStore:
    """
    Supabase pgvector gateway for similarity search and inserts.
    """

    def __init__(
        self,
        url: Optional[str] = settings.SUPABASE_URL,
        key: Optional[str] = settings.SUPABASE_KEY,
        table_name: str = settings.SUPABASE_CHUNKS_TABLE,
        match_function: str = settings.SUPABASE_MATCH_FUNCTION,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize vector store gateway.

        Args:
            url: Supabase project URL
            key: Supabase API key
            table_name: Table holding passages and embeddings
            match_function: RPC function performing the similarity match
            timeout: Request timeout
            transport: Optional httpx transport (tests)
        """
        self.url = (url or "").rstrip("/")
        self.key = key or ""
        self.table_name = table_name
        self.match_function = match_function
        self.timeout = timeout or build_timeout()
        self.transport = transport

        if self.is_configured:
            logger.info(f"Using Supabase table: {table_name}")
        else:
            logger.info("Supabase not configured; vector search disabled")

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            headers={
                "apikey": self.key,
                "Authorization": f"Bearer {self.key}",
            },
            timeout=self.timeout,
            transport=self.transport,
        )

    async def search(
        self,
        embedding: np.ndarray,
        match_count: int = settings.RETRIEVAL_MATCH_COUNT,
        match_threshold: float = settings.SIMILARITY_THRESHOLD,
    ) -> List[str]:
        """
        Search for passages similar to an embedding.

        Args:
            embedding: Query embedding
            match_count: Maximum number of passages
            match_threshold: Minimum similarity score

        Returns:
            Passage texts in the order returned by the store

        Raises:
            VectorStoreError: If the store is unreachable or rejects the call
        """
        payload = {
            "query_embedding": [float(x) for x in embedding],
            "match_threshold": match_threshold,
            "match_count": match_count,
        }
        try:
            async with self._http_client() as client:
                response = await client.post(f"/rpc/{self.match_function}", json=payload)
                response.raise_for_status()
                rows: List[Dict[str, Any]] = response.json() or []
        except (httpx.HTTPError, json.JSONDecodeError) as e:
            logger.error(f"Vector search failed: {e}")
            raise VectorStoreError(f"Vector search failed: {e}") from e

        passages = [row["content"] for row in rows if isinstance(row, dict) and row.get("content")]
        logger.debug(f"Vector search returned {len(passages)} passages")
        return passages

    async def add_chunk(
        self,
        content: str,
        embedding: np.ndarray,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """
        Insert one passage with its embedding.

        Raises:
            VectorStoreError: If the insert is rejected
        """
        row = {
            "content": content,
            "embedding": [float(x) for x in embedding],
            **(metadata or {}),
        }
        try:
            async with self._http_client() as client:
                response = await client.post(
                    f"/{self.table_name}",
                    json=row,
                    headers={"Prefer": "return=minimal"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to store policy embedding: {e}")
            raise VectorStoreError(f"Insert failed: {e}") from e


# Global vector store instance
_vector_store = None


def get_vector_store() -> VectorStore:
    """Get or create vector store instance"""
    global _vector_store
    if _vector_store is None:
        _vector_store = VectorStore()
    return _vector_store
