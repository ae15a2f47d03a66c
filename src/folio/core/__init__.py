"""Core extraction pipeline: parsing, classification, language and OCR."""
