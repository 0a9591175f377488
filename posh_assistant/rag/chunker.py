"""
Policy Chunking Module

Splits policy documents into paragraph-sized passages for embedding.
Paragraph boundaries are preferred; consecutive short paragraphs are packed
together up to the chunk size, and only oversized paragraphs are split
further on line, sentence and word boundaries.
"""

from typing import List, Dict, Any, Optional
from langchain_text_splitters import RecursiveCharacterTextSplitter

from posh_assistant.core.config import settings
from posh_assistant.core.logging import get_logger

logger = get_logger(__name__)

PARAGRAPH_SEPARATORS = ["\n\n", "\n", ". ", " ", ""]


class PolicyChunker:
    """
    Paragraph-first chunker built on LangChain's RecursiveCharacterTextSplitter.
    """

    def __init__(self, chunk_size: int = settings.CHUNK_SIZE):
        """
        Args:
            chunk_size: Maximum size of each chunk (characters)
        """
        self.chunk_size = chunk_size
        self.splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=0,
            separators=PARAGRAPH_SEPARATORS,
            length_function=len,
        )

        logger.info(f"Initialized PolicyChunker: chunk_size={chunk_size}")

    def split(self, text: str) -> List[str]:
        """Split text into stripped, non-empty passages"""
        if not text or not text.strip():
            logger.warning("Empty text provided for chunking")
            return []
        return [chunk.strip() for chunk in self.splitter.split_text(text) if chunk.strip()]

    def chunk_document(
        self,
        text: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Split a document into passages with metadata.

        Returns:
            List of dicts with 'text', 'chunk_index', 'chunk_total' and metadata
        """
        chunks = self.split(text)
        logger.debug(f"Split text into {len(chunks)} chunks")
        return [
            {
                "text": chunk,
                "chunk_index": i,
                "chunk_total": len(chunks),
                **(metadata or {}),
            }
            for i, chunk in enumerate(chunks)
        ]


# Default chunker instance
_chunker = None


def get_chunker() -> PolicyChunker:
    """Get or create default chunker instance"""
    global _chunker
    if _chunker is None:
        _chunker = PolicyChunker()
    return _chunker
