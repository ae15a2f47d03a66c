"""OCR fallback: render pages to images and recognize them with Tesseract."""

import io
import logging
import threading
from pathlib import Path
from typing import List, Optional, Set

import httpx
from PIL import Image
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .canvas import CanvasFactory
from .errors import ConfigurationError, FolioError, LanguagePackError, OcrError
from .extract import PAGE_SEPARATOR, sanitize_text
from .pdf import ParsedPdf
from .settings import ExtractionSettings

logger = logging.getLogger(__name__)


class LanguagePackStore:
    """Local cache of Tesseract ``.traineddata`` files fetched from a remote base URL."""

    def __init__(
        self,
        cache_dir: Path,
        base_url: str,
        timeout: float = 60.0,
        client: Optional[httpx.Client] = None
    ):
        self.cache_dir = Path(cache_dir)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._lock = threading.Lock()

    def pack_path(self, language: str) -> Path:
        return self.cache_dir / f"{language}.traineddata"

    def has(self, language: str) -> bool:
        return self.pack_path(language).exists()

    def ensure(self, language: str) -> Path:
        """
        Make sure the pack for ``language`` is cached and return the tessdata directory.

        Raises:
            LanguagePackError: If the pack cannot be downloaded. ``status_code``
                is set when the server answered.
        """
        path = self.pack_path(language)
        if path.exists():
            return self.cache_dir

        with self._lock:
            if path.exists():
                return self.cache_dir

            url = f"{self.base_url}/{language}.traineddata"
            logger.info(f"Downloading language pack {language} from {url}")
            data = self._download(url, language)

            self.cache_dir.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".part")
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
            logger.info(f"Cached language pack {language} ({len(data)} bytes)")

        return self.cache_dir

    def _download(self, url: str, language: str) -> bytes:
        try:
            response = self._get(url)
        except httpx.HTTPError as e:
            raise LanguagePackError(f"Failed to download language pack '{language}': {e}", language) from e

        if response.status_code != 200:
            raise LanguagePackError(
                f"Failed to download language pack '{language}' (status {response.status_code})",
                language,
                status_code=response.status_code,
            )
        return response.content

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return self._client.get(url, follow_redirects=True)
        with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
            return client.get(url)


class TesseractEngine:
    """Recognize text in page images with pytesseract."""

    def __init__(self, tesseract, packs: LanguagePackStore, default_language: str = "eng"):
        self._tesseract = tesseract
        self.packs = packs
        self.default_language = default_language
        self._installed: Optional[Set[str]] = None
        self._missing: Set[str] = set()

    def installed_languages(self) -> Set[str]:
        """Languages available in the system tessdata directory."""
        if self._installed is None:
            try:
                self._installed = set(self._tesseract.get_languages(config=""))
            except self._tesseract.TesseractError as e:
                logger.warning(f"Could not list installed tesseract languages: {e}")
                self._installed = set()
        return self._installed

    def _config_for(self, language: str) -> str:
        if language in self.installed_languages():
            return ""
        tessdata_dir = self.packs.ensure(language)
        return f'--tessdata-dir "{tessdata_dir}"'

    def _usable_language(self, language: str) -> str:
        """Fall back to the default pack when the requested one does not exist upstream."""
        if language in self._missing:
            return self.default_language
        if language in self.installed_languages() or self.packs.has(language):
            return language
        try:
            self.packs.ensure(language)
            return language
        except LanguagePackError as e:
            if e.status_code == 404 and language != self.default_language:
                logger.warning(f"No language pack for '{language}', using '{self.default_language}'")
                self._missing.add(language)
                return self.default_language
            raise

    def recognize(self, image_bytes: bytes, language: str) -> str:
        """
        Run OCR over an encoded image.

        Args:
            image_bytes: PNG (or any Pillow-readable) buffer
            language: Tesseract language code

        Returns:
            Recognized text; empty if tesseract fails on this image
        """
        language = self._usable_language(language)
        config = self._config_for(language)

        with Image.open(io.BytesIO(image_bytes)) as image:
            try:
                return self._tesseract.image_to_string(image, lang=language, config=config) or ""
            except self._tesseract.TesseractError as e:
                logger.error(f"OCR extraction failed: {e}")
                return ""
            except self._tesseract.TesseractNotFoundError as e:
                raise ConfigurationError("OCR is not configured on this server (tesseract binary not found).") from e


def ocr_fallback(
    pdf: ParsedPdf,
    language: str,
    engine: TesseractEngine,
    canvas: CanvasFactory,
    settings: Optional[ExtractionSettings] = None
) -> str:
    """
    OCR the first pages of a document, one page at a time.

    Each page is rendered at ``settings.ocr_scale`` onto a surface that is
    destroyed before its image is handed to the engine. At most
    ``settings.ocr_page_limit`` pages are processed.

    Args:
        pdf: An open document
        language: Tesseract language code
        engine: OCR engine
        canvas: Surface factory for rendering
        settings: Scale and page cap

    Returns:
        Non-empty page texts joined by blank lines, possibly empty

    Raises:
        OcrError: If rendering or recognizing a page fails unexpectedly
    """
    settings = settings or ExtractionSettings()
    scale = settings.ocr_scale
    results: List[str] = []

    for number in pdf.page_numbers(limit=settings.ocr_page_limit):
        try:
            with pdf.page(number) as page:
                width, height = page.viewport(scale)
                with canvas.surface(width, height) as surface:
                    page.render(surface, scale, canvas)
                    image_bytes = surface.to_png()

            page_text = sanitize_text(engine.recognize(image_bytes, language))
        except FolioError:
            raise
        except Exception as e:
            raise OcrError(f"OCR failed on page {number}: {e}", page=number) from e
        if page_text:
            results.append(page_text)
        logger.debug(f"OCR page {number}: {len(page_text)} characters")

    return sanitize_text(PAGE_SEPARATOR.join(results))
