import structlog
from structlog.testing import capture_logs

from folio.core.logging_config import log_backfill_summary, log_extraction_event


def test_extraction_event_keeps_integer_record_id():
    with capture_logs() as logs:
        log_extraction_event(
            structlog.get_logger("test"),
            record_id=42,
            used_ocr=True,
            language="hin",
            text_length=120,
            pages=3,
            ocr_pages=3,
            processing_time_ms=12.5,
        )

    assert logs[0]["event"] == "extraction_completed"
    assert logs[0]["record_id"] == 42
    assert logs[0]["event_type"] == "document_extraction"


def test_extraction_event_without_record():
    with capture_logs() as logs:
        log_extraction_event(
            structlog.get_logger("test"),
            record_id=None,
            used_ocr=False,
            language="eng",
            text_length=10,
            pages=1,
            ocr_pages=0,
            processing_time_ms=1.0,
        )

    assert logs[0]["record_id"] is None
    assert logs[0]["ocr_pages"] == 0


def test_backfill_summary_fields():
    with capture_logs() as logs:
        log_backfill_summary(
            structlog.get_logger("test"), processed=5, skipped=2, failed=1, limit=None, processing_time_ms=40.0
        )

    assert logs[0]["event"] == "backfill_completed"
    assert (logs[0]["processed"], logs[0]["skipped"], logs[0]["failed"]) == (5, 2, 1)
