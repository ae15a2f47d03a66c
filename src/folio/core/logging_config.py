"""Structured logging configuration for Folio."""

import logging
from typing import Optional

import structlog
from structlog.stdlib import LoggerFactory

from .records import RecordId


def configure_logging(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Configure structured logging for Folio."""

    # Set log level
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level)

    # Configure structlog processors
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
    ]

    if json_logs:
        # JSON output for production/audit
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Human-readable for development
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_audit_logger(component: str) -> structlog.BoundLogger:
    """Get a logger with audit context for a specific component."""
    logger = structlog.get_logger(component)
    return logger.bind(component=component, audit=True)


def log_extraction_event(
    logger: structlog.BoundLogger,
    record_id: Optional[RecordId],
    used_ocr: bool,
    language: str,
    text_length: int,
    pages: int,
    ocr_pages: int,
    processing_time_ms: float
) -> None:
    """Log a completed extraction for the audit trail."""
    logger.info(
        "extraction_completed",
        record_id=record_id,
        used_ocr=used_ocr,
        language=language,
        text_length=text_length,
        pages=pages,
        ocr_pages=ocr_pages,
        processing_time_ms=processing_time_ms,
        event_type="document_extraction"
    )


def log_backfill_summary(
    logger: structlog.BoundLogger,
    processed: int,
    skipped: int,
    failed: int,
    limit: Optional[int],
    processing_time_ms: float
) -> None:
    """Log the outcome of a backfill run."""
    logger.info(
        "backfill_completed",
        processed=processed,
        skipped=skipped,
        failed=failed,
        limit=limit,
        processing_time_ms=processing_time_ms,
        event_type="backfill"
    )
