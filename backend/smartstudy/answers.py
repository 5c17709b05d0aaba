from __future__ import annotations

import re
from typing import Optional

ANSWER_TOLERANCE = 1e-4

_WHITESPACE = re.compile(r"\s+")
_DISALLOWED = re.compile(r"[^\w\s.-]")
_UNIT_WORDS = re.compile(r"\bunits?\b")
_TRAILING_PERIODS = re.compile(r"\.+$")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def normalize_answer(answer: Optional[str]) -> str:
    if not answer:
        return ""
    s = _WHITESPACE.sub(" ", answer.lower().strip())
    s = _DISALLOWED.sub("", s)
    s = _UNIT_WORDS.sub("", s)
    s = _WHITESPACE.sub(" ", s).strip()
    # A full stop closing the answer is punctuation, not part of it ("6." == "6").
    return _TRAILING_PERIODS.sub("", s).strip()


def parse_leading_number(text: str) -> Optional[float]:
    m = _LEADING_NUMBER.match(text.strip())
    if not m:
        return None
    return float(m.group(0))


def answers_equivalent(user_answer: Optional[str], canonical_answer: Optional[str]) -> bool:
    """
    Lenient comparison for free-text math answers: normalized text match,
    else both parse as numbers within ANSWER_TOLERANCE.
    """
    user = normalize_answer(user_answer)
    canonical = normalize_answer(canonical_answer)
    if user == canonical:
        return True

    user_num = parse_leading_number(user)
    canonical_num = parse_leading_number(canonical)
    if user_num is None or canonical_num is None:
        return False
    return abs(user_num - canonical_num) < ANSWER_TOLERANCE
