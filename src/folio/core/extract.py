"""Structural text extraction: rebuild plain text from a PDF's text runs."""

import re
import logging
from typing import List

from .errors import StructuralExtractionError
from .pdf import ParsedPdf, PdfPage

logger = logging.getLogger(__name__)

_TRAILING_BLANKS = re.compile(r"[ \t]+\n")
PAGE_SEPARATOR = "\n\n"


def sanitize_text(text: str) -> str:
    """Strip NUL characters and surrounding whitespace."""
    return (text or "").replace("\x00", "").strip()


def page_text(page: PdfPage) -> str:
    """Join a page's runs: a newline after end-of-line runs, a space otherwise."""
    pieces: List[str] = []
    for run in page.text_runs():
        pieces.append(run.text)
        pieces.append("\n" if run.has_eol else " ")
    joined = _TRAILING_BLANKS.sub("\n", "".join(pieces))
    return joined.rstrip()


def extract_structural_text(pdf: ParsedPdf) -> str:
    """
    Extract the text layer of every page, in page order.

    Pages are separated by a blank line, including pages that contribute
    nothing. Each page is released as soon as its text has been captured.
    No column or reading-order reconstruction is attempted.

    Args:
        pdf: An open document

    Returns:
        Sanitized text, possibly empty

    Raises:
        StructuralExtractionError: If walking the content stream fails
    """
    total = pdf.page_count
    parts: List[str] = []

    try:
        for number in range(1, total + 1):
            with pdf.page(number) as page:
                parts.append(page_text(page))
            if number < total:
                parts.append(PAGE_SEPARATOR)
    except Exception as e:
        raise StructuralExtractionError(f"Structural extraction failed: {e}") from e

    text = sanitize_text("".join(parts))
    logger.debug(f"Structural extraction produced {len(text)} characters from {total} pages")
    return text
