"""Process-wide loaders for the heavyweight backends.

Each backend (PDF parser, OCR engine, canvas, language detector) is created
on first use and reused for the life of the process. A failed initialization
is remembered too, so an unusable environment fails fast on every request
instead of re-running an import or binary probe each time.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from .errors import ConfigurationError
from .settings import ExtractionSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UNSET = object()


class ResourceLoader(Generic[T]):
    """Memoize a backend, or the failure to create it."""

    def __init__(self, name: str, factory: Callable[[], T]):
        self.name = name
        self._factory = factory
        self._value: Any = _UNSET
        self._error: Optional[ConfigurationError] = None
        self._lock = threading.Lock()

    @classmethod
    def preloaded(cls, name: str, value: T) -> "ResourceLoader[T]":
        """Loader that already holds a value; used for substitution."""
        loader = cls(name, lambda: value)
        loader._value = value
        return loader

    def get(self) -> T:
        """Return the backend, creating it on first call."""
        if self._value is not _UNSET:
            return self._value

        with self._lock:
            if self._value is not _UNSET:
                return self._value
            if self._error is not None:
                raise self._error

            try:
                value = self._factory()
            except ConfigurationError as e:
                self._error = e
                logger.error(f"{self.name} backend unavailable: {e}")
                raise
            except Exception as e:
                error = ConfigurationError(f"{self.name} is not available: {e}")
                self._error = error
                logger.error(f"{self.name} backend unavailable: {e}")
                raise error from e

            self._value = value
            logger.info(f"Loaded {self.name} backend")
            return value

    @property
    def failed(self) -> bool:
        return self._error is not None

    def status(self) -> Dict[str, Any]:
        """Try to load and report the outcome without raising."""
        try:
            self.get()
            return {"name": self.name, "available": True, "error": None}
        except ConfigurationError as e:
            return {"name": self.name, "available": False, "error": str(e)}


def _load_pdf_parser(settings: ExtractionSettings):
    import fitz  # PyMuPDF

    from .pdf import PdfParser
    return PdfParser(fitz)


def _load_canvas(settings: ExtractionSettings):
    from PIL import Image

    from .canvas import CanvasFactory
    return CanvasFactory(Image)


def _load_ocr_engine(settings: ExtractionSettings):
    try:
        import pytesseract
    except ImportError as e:
        raise ConfigurationError("OCR is not configured on this server (pytesseract missing).") from e

    try:
        version = pytesseract.get_tesseract_version()
    except pytesseract.TesseractNotFoundError as e:
        raise ConfigurationError("OCR is not configured on this server (tesseract binary not found).") from e

    logger.info(f"Using tesseract {version}")

    from .ocr import LanguagePackStore, TesseractEngine
    packs = LanguagePackStore(
        cache_dir=settings.tessdata_cache_dir,
        base_url=settings.tessdata_url,
        timeout=settings.fetch_timeout,
    )
    return TesseractEngine(pytesseract, packs, default_language=settings.default_language)


def _load_detector(settings: ExtractionSettings):
    from langdetect import DetectorFactory

    # Deterministic results for the same input
    DetectorFactory.seed = 0

    from .language import LanguageDetector
    return LanguageDetector()


@dataclass
class Backends:
    """The four heavyweight dependencies handed to the pipeline."""
    pdf_parser: ResourceLoader
    ocr_engine: ResourceLoader
    canvas: ResourceLoader
    detector: ResourceLoader

    @classmethod
    def from_instances(
        cls,
        pdf_parser: Any = None,
        ocr_engine: Any = None,
        canvas: Any = None,
        detector: Any = None,
        settings: Optional[ExtractionSettings] = None,
    ) -> "Backends":
        """Build backends from ready objects, loading defaults for the rest."""
        defaults = build_backends(settings or ExtractionSettings())
        return cls(
            pdf_parser=ResourceLoader.preloaded("pdf_parser", pdf_parser) if pdf_parser is not None else defaults.pdf_parser,
            ocr_engine=ResourceLoader.preloaded("ocr_engine", ocr_engine) if ocr_engine is not None else defaults.ocr_engine,
            canvas=ResourceLoader.preloaded("canvas", canvas) if canvas is not None else defaults.canvas,
            detector=ResourceLoader.preloaded("detector", detector) if detector is not None else defaults.detector,
        )

    def status(self) -> Dict[str, Dict[str, Any]]:
        return {
            loader.name: loader.status()
            for loader in (self.pdf_parser, self.ocr_engine, self.canvas, self.detector)
        }


def build_backends(settings: ExtractionSettings) -> Backends:
    """Create the loaders once at process start. Nothing is imported until first use."""
    return Backends(
        pdf_parser=ResourceLoader("pdf_parser", lambda: _load_pdf_parser(settings)),
        ocr_engine=ResourceLoader("ocr_engine", lambda: _load_ocr_engine(settings)),
        canvas=ResourceLoader("canvas", lambda: _load_canvas(settings)),
        detector=ResourceLoader("detector", lambda: _load_detector(settings)),
    )
