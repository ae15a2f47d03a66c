"""Folio: PDF text extraction with OCR fallback."""

__version__ = "0.1.0"
