"""
Policy Document Loading

Reads organisation policy documents (.pdf, .txt, .md, .docx) into plain
text for chunking and embedding.
"""

from pathlib import Path
from typing import Dict, Any
from PyPDF2 import PdfReader
import docx

from posh_assistant.core.logging import get_logger
from posh_assistant.utils.guards import sanitize_input

logger = get_logger(__name__)


def read_pdf(path: Path) -> str:
    pages = []
    reader = PdfReader(str(path))
    for page_num, page in enumerate(reader.pages):
        try:
            page_text = page.extract_text()
        except Exception as e:
            logger.warning(f"Error extracting page {page_num} from {path}: {e}")
            continue
        if page_text:
            pages.append(page_text.encode("utf-8", "replace").decode("utf-8", "replace"))
    logger.debug(f"Extracted {len(reader.pages)} pages from {path}")
    return "\n\n".join(pages)


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.debug(f"Falling back to latin-1 for {path}")
        return path.read_text(encoding="latin-1")


def read_docx(path: Path) -> str:
    # Each docx paragraph becomes its own paragraph for the chunker
    paragraphs = [p.text for p in docx.Document(str(path)).paragraphs if p.text.strip()]
    return "\n\n".join(paragraphs)


READERS = {
    ".pdf": read_pdf,
    ".txt": read_text,
    ".md": read_text,
    ".docx": read_docx,
}


def load_document(file_path: str) -> Dict[str, Any]:
    """
    Load a single policy document.

    Returns:
        Dict with 'filename', 'text', 'source', 'file_type' and 'file_size_bytes'

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file type is not supported
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix not in READERS:
        raise ValueError(
            f"Unsupported file type: {suffix}. "
            f"Supported types: {list(READERS.keys())}"
        )

    text = sanitize_input(READERS[suffix](path))
    if not text:
        logger.warning(f"Loaded document is empty: {path}")

    return {
        "filename": path.name,
        "text": text,
        "source": str(path),
        "file_type": suffix[1:],
        "file_size_bytes": path.stat().st_size,
    }
