"""
Text Extraction Service

Fetches a source (URL or local path) and returns normalised plain text.

Supported formats:
    - HTML: BeautifulSoup, with page chrome (script, style, nav,
      header, footer) and in-page anchors stripped
    - PDF: PyMuPDF (fitz), page words in reading order

PyMuPDF is optional at runtime. When it cannot be imported, PDF sources
are skipped for the life of the process instead of failing per call.
"""

from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path

import httpx
from bs4 import BeautifulSoup

from redress.core.exceptions import ExtractionError, FetchError, SourceSkipped
from redress.models.schemas import Source, SourceFormat

try:
    import fitz  # PyMuPDF

    PDF_SUPPORT = True
except ImportError:
    fitz = None
    PDF_SUPPORT = False

logger = logging.getLogger(__name__)

REMOVED_TAGS: tuple[str, ...] = ("script", "style", "nav", "footer", "header")
USER_AGENT = "redress-knowledge-crawler/0.1 (+https://www.legislation.gov.uk)"

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse every whitespace run (NBSP included) into one space and trim."""
    return _WHITESPACE.sub(" ", text.replace("\u00a0", " ")).strip()


def html_to_text(html: str | bytes) -> str:
    """
    Visible body text of an HTML document, normalised.

    Bytes are decoded by BeautifulSoup, which honours a declared charset.
    """
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(list(REMOVED_TAGS)):
        tag.decompose()
    for anchor in soup.select('a[href^="#"]'):
        anchor.decompose()

    root = soup.body or soup
    return normalize_whitespace(root.get_text(" "))


def pdf_to_text(raw: bytes) -> str:
    """
    Extract normalised text from PDF bytes.

    Synchronous and CPU-bound: call via ``asyncio.to_thread``.

    Raises:
        ExtractionError: If the bytes are not a readable PDF.
    """
    if fitz is None:
        raise SourceSkipped("PDF backend unavailable")

    try:
        doc = fitz.open(stream=raw, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise ExtractionError(f"Unreadable PDF: {exc}") from exc

    try:
        if doc.needs_pass:
            raise ExtractionError("encrypted PDF")
        pages: list[str] = []
        for page in doc:
            words = page.get_text("words", sort=True)
            pages.append(" ".join(word[4] for word in words))
        return normalize_whitespace("\n".join(pages))
    except (RuntimeError, ValueError) as exc:
        raise ExtractionError(f"Unreadable PDF: {exc}") from exc
    finally:
        doc.close()


class TextExtractor:
    """
    Async extractor for HTML and PDF sources.

    The HTTP client is injected so its lifecycle (and connection pool)
    belongs to the caller. Redirects are followed; any non-2xx final
    status is a ``FetchError``.

    Usage::

        async with httpx.AsyncClient(follow_redirects=True, timeout=30) as http:
            extractor = TextExtractor(http)
            text = await extractor.extract(source)
    """

    def __init__(self, http: httpx.AsyncClient, *, pdf_enabled: bool | None = None) -> None:
        self._http = http
        self._pdf_enabled = PDF_SUPPORT if pdf_enabled is None else pdf_enabled and PDF_SUPPORT
        if not self._pdf_enabled:
            logger.warning(
                "PDF support disabled (PyMuPDF not available). "
                "PDF sources will be skipped; HTML sources are unaffected."
            )

    @property
    def pdf_enabled(self) -> bool:
        return self._pdf_enabled

    async def extract(self, source: Source) -> str:
        """
        Return the normalised text of a source (``fetch`` then ``parse``).

        Raises:
            FetchError: Source unreachable, timed out or non-2xx.
            ExtractionError: Content could not be parsed.
            SourceSkipped: PDF source while the PDF backend is disabled.
        """
        raw = await self.fetch(source)
        return await self.parse(source, raw)

    async def fetch(self, source: Source) -> bytes:
        """Raw bytes of a URL (redirects followed) or a local file."""
        if source.format is SourceFormat.PDF and not self._pdf_enabled:
            raise SourceSkipped(f"PDF backend unavailable: {source.location}")

        if not source.is_remote:
            path = Path(source.location)
            try:
                return await asyncio.to_thread(path.read_bytes)
            except OSError as exc:
                raise FetchError(source.location) from exc

        try:
            response = await self._http.get(
                source.location,
                headers={"User-Agent": USER_AGENT},
                follow_redirects=True,
            )
        except httpx.HTTPError as exc:
            logger.debug("Transport error for %s: %s", source.location, exc)
            raise FetchError(source.location) from exc

        if not response.is_success:
            raise FetchError(source.location, response.status_code)
        return response.content

    async def parse(self, source: Source, raw: bytes) -> str:
        """Turn fetched bytes into normalised text according to the source format."""
        if source.format is SourceFormat.PDF:
            if not self._pdf_enabled:
                raise SourceSkipped(f"PDF backend unavailable: {source.location}")
            return await asyncio.to_thread(pdf_to_text, raw)

        try:
            return html_to_text(raw)
        except (ValueError, TypeError, AssertionError) as exc:
            raise ExtractionError(f"Unparseable HTML from {source.location}: {exc}") from exc
