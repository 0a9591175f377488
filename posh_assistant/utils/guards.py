"""
Prompt & input guards

Heuristics that reject obvious attempts to override the assistant's
instructions or extract other employees' case data. They are a first line
of defence only; the system prompt carries the actual confidentiality rules.
"""
import re
from typing import Tuple

from posh_assistant.core.logging import get_logger

logger = get_logger(__name__)

_PROMPT_INJECTION_PATTERNS = [
    r"ignore (?:all |your |the )?(?:previous|above|all|prior) (?:instructions|rules|guidelines)",
    r"disregard (?:all |your |the )?(?:previous|above|all|prior) (?:instructions|rules|guidelines)",
    r"forget (?:the |your )?(?:previous|earlier) (?:instructions|rules)",
    r"you are no longer aasha",
    r"reveal (?:your |the )?system prompt",
    r"(?:show|list|reveal) (?:me )?(?:all |other )(?:complaints|cases|complainants)",
]

_COMPILED_INJECTION = [re.compile(p, re.IGNORECASE) for p in _PROMPT_INJECTION_PATTERNS]


def detect_prompt_injection(query: str) -> Tuple[bool, str]:
    """Detect likely prompt injection patterns.

    Returns (is_safe, message). If is_safe is False, message explains why.
    """
    if not query:
        return True, ""
    for patt in _COMPILED_INJECTION:
        m = patt.search(query)
        if m:
            msg = f"Prompt-injection pattern: {m.group(0)}"
            logger.warning(msg)
            return False, msg
    return True, ""


def sanitize_input(text: str) -> str:
    """Remove NUL and other control characters (keeping newlines and tabs) and trim."""
    if not text:
        return ""
    sanitized = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]+", "", text)
    return sanitized.strip()
