#!/usr/bin/env python3
"""
CLI for loading organisation POSH policies into the Supabase vector store.

Usage examples:
  python ingest.py --file /path/to/posh_policy.pdf --org-id acme
  python ingest.py --dir ./policies --chunk-size 800
  python ingest.py --file ./policy.docx --dry-run

--dry-run only loads and chunks the document and prints the passages; no
embedding or storage calls are made. Exit codes: 0 ok, 1 ingestion error,
2 unexpected failure.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from posh_assistant.core.logging import get_logger
from posh_assistant.rag.chunker import PolicyChunker, get_chunker
from posh_assistant.rag.loader import load_document
from posh_assistant.services.ingestion import IngestionService, get_ingestion_service

logger = get_logger(__name__)


def preview(file_path: str, chunker: PolicyChunker) -> dict:
    document = load_document(file_path)
    passages = chunker.split(document["text"])
    return {
        "status": "success",
        "filename": document["filename"],
        "chunks": len(passages),
        "passages": passages,
    }


async def run(args) -> dict:
    chunker = PolicyChunker(chunk_size=args.chunk_size) if args.chunk_size else get_chunker()
    if args.dry_run:
        if not args.file:
            return {"status": "error", "message": "--dry-run needs --file"}
        return preview(args.file, chunker)

    service = IngestionService(chunker=chunker) if args.chunk_size else get_ingestion_service()
    metadata = {"org_id": args.org_id} if args.org_id else None
    if args.file:
        return await service.ingest_file(args.file, metadata)
    return await service.ingest_directory(args.dir, metadata)


def main() -> int:
    parser = argparse.ArgumentParser(description="Ingest POSH policy documents into the vector store")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--file", "-f", help="Path to a single policy document")
    group.add_argument("--dir", "-d", help="Directory containing policy documents")
    parser.add_argument("--org-id", default=None, help="Organisation id stored with each passage")
    parser.add_argument("--chunk-size", type=int, default=None, help="Passage size override (characters)")
    parser.add_argument("--dry-run", action="store_true", help="Chunk and print passages without storing")
    args = parser.parse_args()

    try:
        result = asyncio.run(run(args))
    except Exception as e:
        logger.exception("Unhandled error during ingestion: %s", e)
        print(json.dumps({"status": "error", "message": str(e)}))
        return 2

    print(json.dumps(result, indent=2, default=str, ensure_ascii=False))
    if result.get("status") == "error":
        logger.error("Ingestion failed: %s", result.get("message"))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
