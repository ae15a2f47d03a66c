"""Shared fixtures: generated PDFs and stand-ins for the OCR engine and detector."""

from typing import List, Optional

import fitz
import httpx
import pytest
from PIL import Image

from folio.core.canvas import CanvasFactory
from folio.core.fetch import PdfFetcher
from folio.core.loaders import Backends
from folio.core.pdf import PdfParser
from folio.core.settings import ExtractionSettings

ENGLISH_PAGE = "The quarterly report describes revenue growth across every region we serve."


def make_pdf(pages: List[Optional[str]]) -> bytes:
    """Build a PDF with one page per entry; None gives a page with no text layer."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
        else:
            # Something to rasterize, but nothing in the text layer
            page.draw_rect(fitz.Rect(72, 72, 300, 200), color=(0, 0, 0), fill=(0.5, 0.5, 0.5))
    data = doc.tobytes()
    doc.close()
    return data


class FakeOcrEngine:
    """Returns canned text per call and records what it was asked."""

    def __init__(self, responses: Optional[List[str]] = None, default: str = ""):
        self.responses = list(responses or [])
        self.default = default
        self.calls = []

    def recognize(self, image_bytes: bytes, language: str) -> str:
        assert image_bytes.startswith(b"\x89PNG")
        self.calls.append(language)
        index = len(self.calls) - 1
        if index < len(self.responses):
            return self.responses[index]
        return self.default


class FakeDetector:
    def __init__(self, result: Optional[str] = "en"):
        self.result = result
        self.calls = []

    def detect(self, text: str, min_length: int = 20) -> Optional[str]:
        self.calls.append(text)
        return self.result


class CountingCanvasFactory(CanvasFactory):
    """Real Pillow surfaces, with create/destroy bookkeeping."""

    def __init__(self):
        super().__init__(Image)
        self.created = 0
        self.destroyed = 0
        self.live = 0
        self.max_live = 0

    def create(self, width, height):
        surface = super().create(width, height)
        self.created += 1
        self.live += 1
        self.max_live = max(self.max_live, self.live)
        return surface

    def destroy(self, surface):
        if surface is not None and not surface.destroyed:
            self.destroyed += 1
            self.live -= 1
        super().destroy(surface)


class CountingParser(PdfParser):
    def __init__(self):
        super().__init__(fitz)
        self.opened = []

    def open(self, data):
        pdf = super().open(data)
        self.opened.append(pdf)
        return pdf


class PdfServer:
    """Serves PDFs through an httpx mock transport and records requests."""

    def __init__(self):
        self.files = {}
        self.requests = []

    def add(self, path: str, data: bytes, status_code: int = 200) -> str:
        self.files[path] = (status_code, data)
        return f"http://testserver{path}"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(str(request.url))
        status_code, data = self.files.get(request.url.path, (404, b"not found"))
        return httpx.Response(status_code, content=data)

    def fetcher(self) -> PdfFetcher:
        return PdfFetcher(client=httpx.Client(transport=httpx.MockTransport(self.handler)))


@pytest.fixture
def settings(tmp_path):
    return ExtractionSettings(
        tessdata_cache_dir=tmp_path / "tessdata",
        site_url="http://testserver",
    )


@pytest.fixture
def ocr_engine():
    return FakeOcrEngine(default="Scanned page recognized by the OCR engine with enough letters.")


@pytest.fixture
def detector():
    return FakeDetector("en")


@pytest.fixture
def canvas():
    return CountingCanvasFactory()


@pytest.fixture
def parser():
    return CountingParser()


@pytest.fixture
def backends(parser, ocr_engine, canvas, detector, settings):
    return Backends.from_instances(
        pdf_parser=parser,
        ocr_engine=ocr_engine,
        canvas=canvas,
        detector=detector,
        settings=settings,
    )


@pytest.fixture
def server():
    return PdfServer()
