"""Batch extraction for records that have no stored text yet."""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .logging_config import get_audit_logger, log_backfill_summary
from .pipeline import ExtractionPipeline, ExtractionResult
from .records import RecordStore

PAGE_SIZE = 1000


@dataclass
class BackfillReport:
    """Outcome of a backfill run."""
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    used_ocr: int = 0
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.processed + self.skipped + self.failed


def backfill_extracted_text(
    store: RecordStore,
    pipeline: ExtractionPipeline,
    force: bool = False,
    limit: Optional[int] = None,
    on_result: Optional[Callable[[str, Optional[ExtractionResult], Optional[str]], None]] = None
) -> BackfillReport:
    """
    Extract and store text for every record that lacks it.

    Records with meaningful text are skipped unless ``force`` is set. A
    failure on one record is counted and the run moves on.

    Args:
        store: Record store to walk
        pipeline: Pipeline used for each record
        force: Re-extract records that already have text
        limit: Stop after this many records were processed successfully
        on_result: Called with (record_id, result, error) after each attempt

    Returns:
        BackfillReport with counts and per-record error messages
    """
    logger = get_audit_logger("backfill")
    start_time = time.time()
    report = BackfillReport()

    for record in store.iter_records(page_size=PAGE_SIZE):
        if limit is not None and report.processed >= limit:
            break

        record_key = str(record.id)
        if not force and pipeline.is_meaningful(record.extracted_text):
            report.skipped += 1
            continue

        if not record.pdf_url:
            logger.warning("backfill_record_skipped", record_id=record.id, reason="missing pdf_url")
            report.failed += 1
            report.failures[record_key] = "missing pdf_url"
            if on_result:
                on_result(record_key, None, "missing pdf_url")
            continue

        try:
            result = pipeline.extract(record.id, force=force)
        except Exception as e:
            logger.error("backfill_record_failed", record_id=record.id, error=str(e), error_type=type(e).__name__)
            report.failed += 1
            report.failures[record_key] = str(e)
            if on_result:
                on_result(record_key, None, str(e))
            continue

        report.processed += 1
        if result.used_ocr:
            report.used_ocr += 1
        if on_result:
            on_result(record_key, result, None)

    log_backfill_summary(
        logger,
        processed=report.processed,
        skipped=report.skipped,
        failed=report.failed,
        limit=limit,
        processing_time_ms=(time.time() - start_time) * 1000,
    )
    return report
