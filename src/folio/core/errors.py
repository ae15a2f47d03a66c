"""Exception hierarchy for the extraction pipeline."""

from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .pipeline import ExtractionResult


class FolioError(Exception):
    """Base class for all errors surfaced to callers."""

    retryable: bool = False


class ConfigurationError(FolioError):
    """A required backend (parser, OCR engine, canvas, detector) is unavailable."""


class NoPdfError(FolioError):
    """The record has no PDF reference to extract from."""

    def __init__(self, message: str = "No PDF is available for this record."):
        super().__init__(message)


class RecordNotFoundError(FolioError):
    """The record store has no record with the requested id."""

    def __init__(self, record_id):
        super().__init__(f"Record {record_id} not found.")
        self.record_id = record_id


class FetchError(FolioError):
    """PDF bytes could not be retrieved. Safe to retry at the caller."""

    retryable = True

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class LanguagePackError(FolioError):
    """The OCR language pack could not be downloaded. Safe to retry at the caller."""

    retryable = True

    def __init__(self, message: str, language: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.language = language
        self.status_code = status_code


class UnreadablePdfError(FolioError):
    """The bytes could not be opened as a PDF document."""


class StructuralExtractionError(FolioError):
    """Walking the text runs of an opened PDF failed."""


class OcrError(FolioError):
    """Rendering or recognizing a page failed for a reason other than configuration."""

    def __init__(self, message: str, page: Optional[int] = None):
        super().__init__(message)
        self.page = page


class TextExtractionError(FolioError):
    """Neither structural extraction nor OCR produced any text."""

    def __init__(self, message: str = "Unable to extract text from this PDF."):
        super().__init__(message)


class StoreUnavailableError(FolioError):
    """The record store could not be read. Safe to retry at the caller."""

    retryable = True


class PersistenceError(FolioError):
    """The record store rejected the update.

    The computed result is kept on the exception so callers can still show
    it, as long as they do not report the update as successful.
    """

    def __init__(self, message: str, result: Optional["ExtractionResult"] = None):
        super().__init__(message)
        self.result = result
