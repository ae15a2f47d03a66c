import pytest

from folio.core.errors import RecordNotFoundError
from folio.core.records import DocumentRecord, InMemoryRecordStore


def _store():
    return InMemoryRecordStore([
        DocumentRecord(id=2, pdf_url="/b.pdf"),
        DocumentRecord(id=1, pdf_url="/a.pdf", language="hin"),
    ])


def test_get_returns_copy():
    store = _store()
    record = store.get(1)
    record.extracted_text = "changed"
    assert store.get(1).extracted_text is None


def test_update_and_iterate():
    store = _store()
    store.update(2, {"extracted_text": "hello", "language": "eng"})

    assert store.get(2).extracted_text == "hello"
    assert [r.id for r in store.iter_records()] == [1, 2]
    assert store.updates == [{"id": 2, "extracted_text": "hello", "language": "eng"}]


def test_update_rejects_other_fields():
    with pytest.raises(ValueError):
        _store().update(1, {"pdf_url": "/other.pdf"})


def test_missing_record():
    store = _store()
    with pytest.raises(RecordNotFoundError):
        store.get(99)
    with pytest.raises(RecordNotFoundError):
        store.update(99, {"extracted_text": "x"})
