"""PyMuPDF wrapper: open a PDF from bytes and expose pages, text runs and rendering."""

import math
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

from .errors import UnreadablePdfError

logger = logging.getLogger(__name__)


@dataclass
class TextRun:
    """A positioned piece of text as stored in the content stream."""
    text: str
    has_eol: bool


class PdfPage:
    """One page of an open document. Only valid inside ``ParsedPdf.page()``."""

    def __init__(self, fitz_module, page, number: int):
        self._fitz = fitz_module
        self._page = page
        self.number = number

    def text_runs(self) -> Iterator[TextRun]:
        """Yield text runs in stream order; the last run of each line ends it."""
        blocks = self._page.get_text("dict")["blocks"]
        for block in blocks:
            if block.get("type", 0) != 0:  # image block
                continue
            for line in block.get("lines", []):
                spans = line.get("spans", [])
                for index, span in enumerate(spans):
                    yield TextRun(
                        text=span.get("text") or "",
                        has_eol=index == len(spans) - 1,
                    )

    def viewport(self, scale: float) -> Tuple[int, int]:
        """Pixel size of the page when rendered at ``scale``."""
        rect = self._page.rect
        return math.ceil(rect.width * scale), math.ceil(rect.height * scale)

    def render(self, surface, scale: float, canvas_factory) -> None:
        """Rasterize the page and draw it onto a canvas surface.

        The surface is resized through ``canvas_factory`` when the pixmap
        rounds to a different size than the viewport.
        """
        matrix = self._fitz.Matrix(scale, scale)
        pix = self._page.get_pixmap(matrix=matrix, alpha=False, colorspace=self._fitz.csRGB)
        if (pix.width, pix.height) != (surface.width, surface.height):
            canvas_factory.reset(surface, pix.width, pix.height)
        surface.draw_rgb(pix.width, pix.height, pix.samples)
        del pix

    def release(self) -> None:
        self._page = None


class ParsedPdf:
    """An open document owned by a single extraction run.

    Must be closed on every exit path; use it as a context manager.
    """

    def __init__(self, fitz_module, document):
        self._fitz = fitz_module
        self._doc = document
        self.closed = False

    @property
    def page_count(self) -> int:
        return self._doc.page_count

    @contextmanager
    def page(self, number: int) -> Iterator[PdfPage]:
        """Open page ``number`` (1-based) and release it when the block exits."""
        if number < 1 or number > self.page_count:
            raise IndexError(f"Page {number} out of range 1..{self.page_count}")
        pdf_page = PdfPage(self._fitz, self._doc.load_page(number - 1), number)
        try:
            yield pdf_page
        finally:
            pdf_page.release()

    def page_numbers(self, limit: Optional[int] = None) -> List[int]:
        last = self.page_count if limit is None else min(self.page_count, limit)
        return list(range(1, last + 1))

    def close(self) -> None:
        """Drop cached native buffers and destroy the document."""
        if self.closed:
            return
        self.closed = True
        try:
            self._fitz.TOOLS.store_shrink(100)
        finally:
            self._doc.close()
            self._doc = None

    def __enter__(self) -> "ParsedPdf":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class PdfParser:
    """Opens PDF bytes with PyMuPDF."""

    def __init__(self, fitz_module):
        self._fitz = fitz_module

    def open(self, data: bytes) -> ParsedPdf:
        """
        Open a document from raw bytes.

        Raises:
            UnreadablePdfError: If the bytes are empty, corrupt or password protected.
        """
        if not data:
            raise UnreadablePdfError("PDF is empty.")

        try:
            document = self._fitz.open(stream=data, filetype="pdf")
        except Exception as e:
            raise UnreadablePdfError(f"Could not open PDF: {e}") from e

        if document.needs_pass:
            document.close()
            raise UnreadablePdfError("PDF is password protected.")

        logger.debug(f"Opened PDF with {document.page_count} pages")
        return ParsedPdf(self._fitz, document)
