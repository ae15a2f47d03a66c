import pytest

from folio.core.errors import ConfigurationError
from folio.core.loaders import Backends, ResourceLoader, build_backends
from folio.core.settings import ExtractionSettings


def test_value_is_created_once():
    calls = []

    def factory():
        calls.append(1)
        return object()

    loader = ResourceLoader("thing", factory)

    assert loader.get() is loader.get()
    assert len(calls) == 1


def test_failure_is_cached():
    calls = []

    def factory():
        calls.append(1)
        raise ImportError("No module named 'missing'")

    loader = ResourceLoader("thing", factory)

    with pytest.raises(ConfigurationError) as first:
        loader.get()
    with pytest.raises(ConfigurationError) as second:
        loader.get()

    assert first.value is second.value
    assert len(calls) == 1
    assert loader.failed
    assert loader.status() == {"name": "thing", "available": False, "error": str(first.value)}


def test_configuration_error_passes_through():
    error = ConfigurationError("OCR is not configured on this server.")

    def factory():
        raise error

    loader = ResourceLoader("ocr_engine", factory)
    with pytest.raises(ConfigurationError) as excinfo:
        loader.get()
    assert excinfo.value is error


def test_build_backends_is_lazy():
    backends = build_backends(ExtractionSettings())
    assert not backends.ocr_engine.failed
    assert backends.pdf_parser.name == "pdf_parser"


def test_from_instances_substitutes():
    parser = object()
    backends = Backends.from_instances(pdf_parser=parser)

    assert backends.pdf_parser.get() is parser
    assert backends.detector.name == "detector"


def test_real_parser_and_canvas_load():
    statuses = build_backends(ExtractionSettings()).status()

    assert statuses["pdf_parser"]["available"] is True
    assert statuses["canvas"]["available"] is True
    assert statuses["detector"]["available"] is True
