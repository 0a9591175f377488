"""
Retriever Module

Finds POSH Act passages relevant to an employee's question.

Retrieval Process:
1. Convert the question to an embedding
2. Ask the vector store for passages above the similarity threshold
3. Return passage texts best-first

Retrieval is best-effort: any failure yields an empty list and the chat
service falls back to the built-in passages.
"""

from typing import List, Optional

from posh_assistant.core.config import settings
from posh_assistant.core.logging import get_logger
from posh_assistant.rag.embeddings import get_embedding_client
from posh_assistant.rag.vector_store import get_vector_store

logger = get_logger(__name__)


class Retriever:
    """
    Retrieves relevant passages from the vector store based on question similarity.
    """

    def __init__(
        self,
        vector_store=None,
        embedding_client=None,
        match_count: int = settings.RETRIEVAL_MATCH_COUNT,
        similarity_threshold: float = settings.SIMILARITY_THRESHOLD
    ):
        """
        Initialize retriever.

        Args:
            vector_store: Vector store instance (uses default if None)
            embedding_client: Embedding client (uses default if None)
            match_count: Number of passages to retrieve
            similarity_threshold: Minimum similarity score (0.0-1.0)
        """
        self.vector_store = vector_store or get_vector_store()
        self.embedding_client = embedding_client or get_embedding_client()
        self.match_count = match_count
        self.similarity_threshold = similarity_threshold

        logger.info(
            f"Initialized Retriever: match_count={match_count}, "
            f"threshold={similarity_threshold}"
        )

    async def retrieve(
        self,
        question: str,
        match_count: Optional[int] = None
    ) -> List[str]:
        """
        Retrieve passages relevant to a question.

        Args:
            question: Employee question
            match_count: Override default number of passages

        Returns:
            Passage texts, or an empty list when nothing could be retrieved
        """
        if not question or not question.strip():
            logger.warning("Empty question provided")
            return []

        if not getattr(self.vector_store, "is_configured", True):
            return []

        try:
            embedding = await self.embedding_client.embed_text(question)
            if len(embedding) == 0:
                return []

            passages = await self.vector_store.search(
                embedding,
                match_count=match_count or self.match_count,
                match_threshold=self.similarity_threshold,
            )
        except Exception as e:
            logger.warning(f"Retrieval failed, continuing without vector context: {e}")
            return []

        logger.info(f"Retrieved {len(passages)} relevant passages")
        return passages


# Global retriever instance
_retriever = None


def get_retriever() -> Retriever:
    """Get or create retriever instance"""
    global _retriever
    if _retriever is None:
        _retriever = Retriever()
    return _retriever
