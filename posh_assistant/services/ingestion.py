"""
Policy Ingestion Service Module

Loads organisation policy documents, splits them into passages, embeds each
passage and stores it in the external vector store so the chatbot can
retrieve it.
"""

from typing import Optional, Dict, Any, List
import os
from pathlib import Path

from posh_assistant.core.config import settings
from posh_assistant.core.logging import get_logger
from posh_assistant.rag.chunker import get_chunker
from posh_assistant.rag.embeddings import get_embedding_client
from posh_assistant.rag.loader import load_document
from posh_assistant.rag.vector_store import get_vector_store

logger = get_logger(__name__)


class IngestionService:
    """
    Service for policy document ingestion.
    """

    def __init__(self, chunker=None, embedding_client=None, vector_store=None):
        """Initialize ingestion service with RAG components"""
        self.chunker = chunker or get_chunker()
        self.embedding_client = embedding_client or get_embedding_client()
        self.vector_store = vector_store or get_vector_store()

        logger.info("Initialized IngestionService")

    def _validate_file(self, file_path: str) -> Optional[str]:
        """Return an error message, or None if the file can be ingested"""
        if not os.path.exists(file_path):
            return f"File not found: {file_path}"

        file_ext = Path(file_path).suffix.lower()
        if file_ext not in settings.SUPPORTED_FILE_TYPES:
            return f"Unsupported file type: {file_ext}"

        file_size_mb = os.path.getsize(file_path) / (1024 * 1024)
        if file_size_mb > settings.MAX_FILE_SIZE_MB:
            return f"File too large: {file_size_mb:.1f}MB (max {settings.MAX_FILE_SIZE_MB}MB)"

        return None

    async def ingest_text(
        self,
        text: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> int:
        """
        Chunk, embed and store a block of policy text.

        Returns:
            Number of passages stored

        Raises:
            EmbeddingError, VectorStoreError: If a passage cannot be stored
        """
        chunks = self.chunker.split(text)
        # Embed everything before the first insert so a failure stores nothing
        embeddings = await self.embedding_client.embed_texts(chunks)
        for chunk, embedding in zip(chunks, embeddings):
            await self.vector_store.add_chunk(chunk, embedding, metadata)

        logger.info(f"Stored {len(chunks)} policy passages")
        return len(chunks)

    async def ingest_file(
        self,
        file_path: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Ingest a single policy document.

        Args:
            file_path: Path to document file
            metadata: Extra columns stored with each passage (e.g. org_id)

        Returns:
            Ingestion result with statistics
        """
        error_msg = self._validate_file(file_path)
        if error_msg:
            logger.error(error_msg)
            return {"status": "error", "message": error_msg}

        if not self.vector_store.is_configured:
            return {"status": "error", "message": "Vector store is not configured"}

        try:
            logger.info(f"Ingesting file: {file_path}")
            document = load_document(file_path)
            stored = await self.ingest_text(document["text"], metadata)

            return {
                "status": "success",
                "message": f"Successfully ingested {document['filename']}",
                "filename": document["filename"],
                "chunks_stored": stored,
            }

        except Exception as e:
            logger.error(f"Error ingesting file {file_path}: {e}")
            return {
                "status": "error",
                "message": str(e)
            }

    async def ingest_directory(
        self,
        directory_path: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Ingest all supported policy documents from a directory.

        Returns:
            Batch ingestion results
        """
        if not os.path.isdir(directory_path):
            error_msg = f"Directory not found: {directory_path}"
            logger.error(error_msg)
            return {"status": "error", "message": error_msg}

        logger.info(f"Ingesting directory: {directory_path}")

        results: List[Dict[str, Any]] = []
        for path in sorted(Path(directory_path).iterdir()):
            if path.suffix.lower() in settings.SUPPORTED_FILE_TYPES:
                results.append(await self.ingest_file(str(path), metadata))

        failed = [r for r in results if r.get("status") == "error"]
        return {
            "status": "error" if failed and len(failed) == len(results) else "success",
            "message": f"Ingestion complete: {len(results) - len(failed)} documents",
            "documents_processed": len(results) - len(failed),
            "documents_failed": len(failed),
            "chunks_stored": sum(r.get("chunks_stored", 0) for r in results),
            "results": results,
        }


# Global service instance
_ingestion_service = None


def get_ingestion_service() -> IngestionService:
    """Get or create ingestion service instance"""
    global _ingestion_service
    if _ingestion_service is None:
        _ingestion_service = IngestionService()
    return _ingestion_service
