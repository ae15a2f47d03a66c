"""Text quality gate: decides whether extracted text is good enough to skip OCR."""

from typing import Optional

# Below this many letters the text layer is treated as missing
MIN_VALID_LETTER_COUNT = 40


def count_letters(text: str) -> int:
    """Count Unicode letter code points (general category L*)."""
    return sum(1 for ch in text if ch.isalpha())


def is_meaningful(text: Optional[str], min_letters: Optional[int] = None) -> bool:
    """
    Return True when ``text`` holds at least ``min_letters`` letters.

    Args:
        text: Candidate text; None and whitespace-only are rejected
        min_letters: Threshold override; defaults to MIN_VALID_LETTER_COUNT
    """
    if not text:
        return False
    trimmed = text.strip()
    if not trimmed:
        return False

    threshold = MIN_VALID_LETTER_COUNT if min_letters is None else min_letters
    return count_letters(trimmed) >= threshold
