from __future__ import annotations

import re
from typing import List, Optional

# Sentence end (. ! ?), whitespace, then an uppercase letter or digit.
SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")
ELLIPSIS = "…"


def split_sentences(text: Optional[str]) -> List[str]:
    """
    Heuristic sentence splitter. Abbreviations followed by a capitalised
    word ("Dr. Smith") split too.
    """
    if not text:
        return []
    parts = SENTENCE_BOUNDARY.split(text)
    return [p.strip() for p in parts if p.strip()]


def force_sentence_case(text: Optional[str]) -> str:
    if not text:
        return ""
    s = text.strip()
    return s[:1].upper() + s[1:]


def truncate(text: Optional[str], max_length: int = 180) -> Optional[str]:
    if not text or len(text) <= max_length:
        return text
    return text[: max_length - 1].rstrip() + ELLIPSIS
