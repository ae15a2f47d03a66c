"""Resolve a PDF reference (URL, local path or raw bytes) to bytes."""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import unquote, urljoin, urlparse

import httpx

from .errors import FetchError, NoPdfError

logger = logging.getLogger(__name__)

PdfReference = Union[bytes, bytearray, Path, str]


def resolve_pdf_url(pdf_url: str, site_url: Optional[str] = None) -> str:
    """Absolutize a relative PDF link against the site base URL."""
    if pdf_url.lower().startswith(("http://", "https://")):
        return pdf_url
    if not site_url:
        return pdf_url
    return urljoin(site_url.rstrip("/") + "/", pdf_url)


class PdfFetcher:
    """Download PDF bytes over HTTP."""

    def __init__(self, timeout: float = 60.0, client: Optional[httpx.Client] = None):
        self.timeout = timeout
        self._client = client

    def fetch(self, url: str) -> bytes:
        """
        Fetch a PDF.

        Raises:
            FetchError: On transport failure or a non-2xx response
        """
        logger.info(f"Downloading PDF from {url}")
        try:
            if self._client is not None:
                response = self._client.get(url, follow_redirects=True)
            else:
                with httpx.Client(timeout=self.timeout, follow_redirects=True) as client:
                    response = client.get(url)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch PDF from {url}: {e}", url=url) from e

        if not response.is_success:
            raise FetchError(
                f"Failed to fetch PDF from {url} (status {response.status_code})",
                url=url,
                status_code=response.status_code,
            )

        logger.info(f"Downloaded {len(response.content)} bytes from {url}")
        return response.content


def load_pdf_bytes(
    reference: Optional[PdfReference],
    fetcher: PdfFetcher,
    site_url: Optional[str] = None
) -> bytes:
    """
    Turn a PDF reference into bytes.

    Args:
        reference: Raw bytes, a local ``Path`` or ``file://`` URL, or an
            absolute or site-relative HTTP URL
        fetcher: Used for HTTP references
        site_url: Base for relative URLs

    Raises:
        NoPdfError: If the reference is missing
        FetchError: If the bytes cannot be read or downloaded
    """
    if reference is None or (isinstance(reference, str) and not reference.strip()):
        raise NoPdfError()

    if isinstance(reference, (bytes, bytearray)):
        return bytes(reference)

    if isinstance(reference, str) and reference.lower().startswith("file://"):
        reference = Path(unquote(urlparse(reference).path))

    if isinstance(reference, Path):
        try:
            return reference.read_bytes()
        except OSError as e:
            raise FetchError(f"Failed to read PDF from {reference}: {e}", url=str(reference)) from e

    return fetcher.fetch(resolve_pdf_url(reference.strip(), site_url))
