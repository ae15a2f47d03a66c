"""Extraction pipeline: structural text first, OCR only when that is not enough.

Stages run in a fixed order::

    START -> CACHE_CHECK -> STRUCTURAL -> CLASSIFY
          -> (sufficient)   SANITIZE -> PERSIST -> DONE
          -> (insufficient) LANG_DETECT_PRE_OCR -> OCR -> LANG_DETECT_POST_OCR
                            -> SANITIZE -> PERSIST -> DONE

Any stage may end in FAILED. The parsed document is closed before either
terminal state is reached.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List, Optional, Tuple, Union

from .errors import NoPdfError, PersistenceError, StructuralExtractionError, TextExtractionError
from .extract import extract_structural_text, sanitize_text
from .fetch import PdfFetcher, load_pdf_bytes
from .language import LanguageResolver, sanitize_language
from .loaders import Backends
from .logging_config import get_audit_logger, log_extraction_event
from .ocr import ocr_fallback
from .pdf import ParsedPdf
from .quality import is_meaningful
from .records import DocumentRecord, RecordId, RecordStore
from .settings import ExtractionSettings


class Stage(str, Enum):
    START = "start"
    CACHE_CHECK = "cache_check"
    STRUCTURAL = "structural"
    CLASSIFY = "classify"
    LANG_DETECT_PRE_OCR = "lang_detect_pre_ocr"
    OCR = "ocr"
    LANG_DETECT_POST_OCR = "lang_detect_post_ocr"
    SANITIZE = "sanitize"
    PERSIST = "persist"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Sufficient:
    """Structural text passed the quality gate."""
    text: str


@dataclass(frozen=True)
class Insufficient:
    """Structural text is missing or too thin; OCR is needed."""
    text: str


Outcome = Union[Sufficient, Insufficient]


@dataclass(frozen=True)
class ExtractionResult:
    """Final text of a document plus how it was obtained."""
    text: str
    language: str
    used_ocr: bool
    record_id: Optional[RecordId] = None
    cached: bool = False
    pages: int = 0
    stages: Tuple[Stage, ...] = ()


@dataclass
class _Trace:
    stages: List[Stage] = field(default_factory=lambda: [Stage.START])

    def enter(self, stage: Stage) -> None:
        self.stages.append(stage)


class ExtractionPipeline:
    """Produce the best available plain text for a PDF.

    Backends are created once per process and handed in; the pipeline keeps
    no other state between runs.
    """

    def __init__(
        self,
        backends: Backends,
        settings: Optional[ExtractionSettings] = None,
        store: Optional[RecordStore] = None,
        fetcher: Optional[PdfFetcher] = None
    ):
        self.backends = backends
        self.settings = settings or ExtractionSettings()
        self.store = store
        self.fetcher = fetcher or PdfFetcher(timeout=self.settings.fetch_timeout)
        self.resolver = LanguageResolver(backends.detector, self.settings)
        self.logger = get_audit_logger("extraction_pipeline")

    def is_meaningful(self, text: Optional[str]) -> bool:
        return is_meaningful(text, self.settings.min_letter_count)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def extract(
        self,
        record_id: RecordId,
        language_override: Optional[str] = None,
        force: bool = False
    ) -> ExtractionResult:
        """
        Extract text for a stored record and persist it.

        Args:
            record_id: Record to process
            language_override: Per-call hint; wins over the stored language
            force: Re-extract even when meaningful text is already stored

        Returns:
            ExtractionResult

        Raises:
            NoPdfError: Record has no PDF link
            FetchError: PDF could not be downloaded
            ConfigurationError: OCR needed but not available
            OcrError: A page could not be rendered or recognized
            TextExtractionError: No text could be produced
            PersistenceError: Store update failed; ``result`` holds the text
        """
        if self.store is None:
            raise ValueError("extract() needs a record store; use extract_bytes() for raw PDFs")

        start_time = time.time()
        trace = _Trace()
        self.logger.info("extraction_started", record_id=record_id, force=force)

        try:
            record = self.store.get(record_id)
            hint = language_override or record.language

            trace.enter(Stage.CACHE_CHECK)
            if not force and self.is_meaningful(record.extracted_text):
                self.logger.info("extraction_cache_hit", record_id=record_id)
                trace.enter(Stage.DONE)
                return ExtractionResult(
                    text=record.extracted_text,
                    language=self.resolver.resolve(hint, record.extracted_text),
                    used_ocr=False,
                    record_id=record_id,
                    cached=True,
                    stages=tuple(trace.stages),
                )

            if not record.pdf_url:
                raise NoPdfError()

            trace.enter(Stage.STRUCTURAL)
            pdf_bytes = load_pdf_bytes(record.pdf_url, self.fetcher, self.settings.site_url)
            result = self._run(pdf_bytes, hint, trace, record_id)

            trace.enter(Stage.PERSIST)
            self._persist(record, result)

            trace.enter(Stage.DONE)
            return self._finish(result, trace, start_time)

        except Exception as e:
            self._fail(record_id, e, trace)
            raise

    def extract_bytes(self, pdf_bytes: bytes, language_hint: Optional[str] = None) -> ExtractionResult:
        """Extract text from raw PDF bytes without touching the record store."""
        start_time = time.time()
        trace = _Trace()
        self.logger.info("extraction_started", record_id=None, size_bytes=len(pdf_bytes or b""))

        try:
            trace.enter(Stage.STRUCTURAL)
            result = self._run(pdf_bytes, language_hint, trace, None)
        except Exception as e:
            self._fail(None, e, trace)
            raise

        trace.enter(Stage.DONE)
        return self._finish(result, trace, start_time)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _run(
        self,
        pdf_bytes: bytes,
        hint: Optional[str],
        trace: _Trace,
        record_id: Optional[RecordId]
    ) -> ExtractionResult:
        parser = self.backends.pdf_parser.get()

        with parser.open(pdf_bytes) as pdf:
            pages = pdf.page_count
            outcome = self._classify(self._structural(pdf, record_id), trace)

            if isinstance(outcome, Sufficient):
                text = outcome.text
                language = self.resolver.resolve(hint, text)
                used_ocr = False
            else:
                trace.enter(Stage.LANG_DETECT_PRE_OCR)
                language = self.resolver.resolve(hint, outcome.text)

                trace.enter(Stage.OCR)
                text = self._ocr(pdf, language, record_id)

                trace.enter(Stage.LANG_DETECT_POST_OCR)
                language = self.resolver.resolve(hint, text)
                used_ocr = True

        trace.enter(Stage.SANITIZE)
        text = sanitize_text(text)
        if not text:
            raise TextExtractionError()

        return ExtractionResult(
            text=text,
            language=language,
            used_ocr=used_ocr,
            record_id=record_id,
            pages=pages,
        )

    def _structural(self, pdf: ParsedPdf, record_id: Optional[RecordId]) -> str:
        try:
            return extract_structural_text(pdf)
        except StructuralExtractionError as e:
            self.logger.warning("structural_extraction_failed", record_id=record_id, error=str(e))
            return ""

    def _classify(self, text: str, trace: _Trace) -> Outcome:
        trace.enter(Stage.CLASSIFY)
        if self.is_meaningful(text):
            return Sufficient(text)
        return Insufficient(text)

    def _ocr(self, pdf: ParsedPdf, language: str, record_id: Optional[RecordId]) -> str:
        engine = self.backends.ocr_engine.get()
        canvas = self.backends.canvas.get()

        self.logger.info(
            "ocr_fallback_started",
            record_id=record_id,
            language=language,
            pages=min(pdf.page_count, self.settings.ocr_page_limit),
        )
        return ocr_fallback(pdf, language, engine, canvas, self.settings)

    def _persist(self, record: DocumentRecord, result: ExtractionResult) -> None:
        fields = {"extracted_text": result.text}
        if not sanitize_language(record.language) and result.language:
            fields["language"] = result.language

        try:
            self.store.update(record.id, fields)
        except PersistenceError as e:
            e.result = result
            raise

    def _finish(self, result: ExtractionResult, trace: _Trace, start_time: float) -> ExtractionResult:
        processing_time_ms = (time.time() - start_time) * 1000
        ocr_pages = min(result.pages, self.settings.ocr_page_limit) if result.used_ocr else 0
        log_extraction_event(
            self.logger,
            record_id=result.record_id,
            used_ocr=result.used_ocr,
            language=result.language,
            text_length=len(result.text),
            pages=result.pages,
            ocr_pages=ocr_pages,
            processing_time_ms=processing_time_ms,
        )
        return replace(result, stages=tuple(trace.stages))

    def _fail(self, record_id: Optional[RecordId], error: Exception, trace: _Trace) -> None:
        trace.enter(Stage.FAILED)
        self.logger.error(
            "extraction_failed",
            record_id=record_id,
            error=str(error),
            error_type=type(error).__name__,
            retryable=getattr(error, "retryable", False),
            stages=[s.value for s in trace.stages],
        )
