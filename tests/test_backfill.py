from conftest import ENGLISH_PAGE, make_pdf
from folio.core.backfill import backfill_extracted_text
from folio.core.pipeline import ExtractionPipeline
from folio.core.records import DocumentRecord, InMemoryRecordStore

EXISTING = "Text already stored for this record, long enough to be meaningful."


def _setup(backends, settings, server, records):
    store = InMemoryRecordStore([DocumentRecord(**r) for r in records])
    pipeline = ExtractionPipeline(backends, settings=settings, store=store, fetcher=server.fetcher())
    return store, pipeline


def test_backfill_counts(backends, settings, server):
    text_url = server.add("/a.pdf", make_pdf([ENGLISH_PAGE]))
    scan_url = server.add("/b.pdf", make_pdf([None]))
    store, pipeline = _setup(backends, settings, server, [
        {"id": 1, "pdf_url": text_url},
        {"id": 2, "pdf_url": scan_url},
        {"id": 3, "pdf_url": text_url, "extracted_text": EXISTING},
        {"id": 4},
        {"id": 5, "pdf_url": "http://testserver/missing.pdf"},
    ])

    report = backfill_extracted_text(store, pipeline)

    assert report.processed == 2
    assert report.used_ocr == 1
    assert report.skipped == 1
    assert report.failed == 2
    assert report.total == 5
    assert set(report.failures) == {"4", "5"}
    assert store.records[1].extracted_text == ENGLISH_PAGE
    assert store.records[2].extracted_text
    assert store.records[3].extracted_text == EXISTING


def test_backfill_force_reprocesses(backends, settings, server):
    url = server.add("/a.pdf", make_pdf([ENGLISH_PAGE]))
    store, pipeline = _setup(backends, settings, server, [{"id": 1, "pdf_url": url, "extracted_text": EXISTING}])

    report = backfill_extracted_text(store, pipeline, force=True)

    assert report.processed == 1
    assert report.skipped == 0
    assert store.records[1].extracted_text == ENGLISH_PAGE


def test_backfill_limit(backends, settings, server):
    url = server.add("/a.pdf", make_pdf([ENGLISH_PAGE]))
    store, pipeline = _setup(backends, settings, server, [{"id": i, "pdf_url": url} for i in range(1, 6)])
    seen = []

    report = backfill_extracted_text(
        store, pipeline, limit=2, on_result=lambda record_id, result, error: seen.append(record_id)
    )

    assert report.processed == 2
    assert seen == ["1", "2"]
    assert store.records[3].extracted_text is None
