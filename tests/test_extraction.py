"""
Text Extraction Unit Tests

Verifies HTML cleaning, PDF text extraction (remote and local),
status handling, redirects and the disabled-PDF-backend path.

HTTP is served by ``httpx.MockTransport``; PDFs are generated with
PyMuPDF. No network access required.
"""

from __future__ import annotations

from pathlib import Path

import fitz
import httpx
import pytest

from redress.core.exceptions import ExtractionError, FetchError, SourceSkipped
from redress.models.schemas import Source, SourceFormat
from redress.services.extraction import TextExtractor, html_to_text, normalize_whitespace

PAGE = """
<html>
  <head><title>Complaint Handling Code</title><style>body { color: red; }</style></head>
  <body>
    <header>Housing Ombudsman Service</header>
    <nav><a href="/home">Home</a> <a href="/code">Code</a></nav>
    <a href="#main">Skip to main content</a>
    <main>
      <h1>Section 5:&nbsp;Stage 1</h1>
      <p>Landlords must   acknowledge the complaint
         within five working days.</p>
      <p>See <a href="/annex">the annex</a>.</p>
    </main>
    <script>track("pageview");</script>
    <footer>Cookie policy</footer>
  </body>
</html>
"""

LEGACY_PAGE = """<html>
  <head><meta charset="windows-1252"><title>Rent</title></head>
  <body><p>Service charge of £25 applies to the café.</p></body>
</html>
"""

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _pdf_bytes(*pages: str) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def _encrypted_pdf_bytes(text: str) -> bytes:
    doc = fitz.open()
    doc.new_page().insert_text((72, 72), text)
    data = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="tenant",
    )
    doc.close()
    return data


def _handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/code":
        return httpx.Response(200, html=PAGE)
    if path == "/old-code":
        return httpx.Response(301, headers={"Location": "https://example.org/code"})
    if path == "/code.pdf":
        return httpx.Response(
            200,
            content=_pdf_bytes("Page one text", "Page two text"),
            headers={"Content-Type": "application/pdf"},
        )
    if path == "/legacy":
        return httpx.Response(
            200,
            content=LEGACY_PAGE.encode("cp1252"),
            headers={"Content-Type": "text/html"},
        )
    if path == "/locked.pdf":
        return httpx.Response(200, content=_encrypted_pdf_bytes("Private"))
    if path == "/broken.pdf":
        return httpx.Response(200, content=b"this is not a pdf")
    return httpx.Response(404, text="Not Found")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def http() -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(_handler))


@pytest.fixture
def extractor(http: httpx.AsyncClient) -> TextExtractor:
    return TextExtractor(http)


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


class TestNormalisation:
    def test_collapses_whitespace_and_nbsp(self) -> None:
        assert normalize_whitespace("  a  b\n\n\tc  ") == "a b c"

    def test_html_chrome_removed(self) -> None:
        text = html_to_text(PAGE)

        assert "Section 5: Stage 1" in text
        assert "Landlords must acknowledge the complaint within five working days." in text
        for removed in ("Housing Ombudsman Service", "Home", "Skip to main", "track(", "Cookie"):
            assert removed not in text

    def test_regular_links_keep_their_text(self) -> None:
        assert "See the annex ." in html_to_text(PAGE)


# ---------------------------------------------------------------------------
# HTML sources
# ---------------------------------------------------------------------------


class TestHTMLExtraction:
    @pytest.mark.asyncio
    async def test_extracts_body_text(self, extractor: TextExtractor) -> None:
        text = await extractor.extract(Source(location="https://example.org/code"))

        assert text.startswith("Section 5: Stage 1")
        assert "  " not in text

    @pytest.mark.asyncio
    async def test_follows_redirects(self, extractor: TextExtractor) -> None:
        text = await extractor.extract(Source(location="https://example.org/old-code"))

        assert "five working days" in text

    @pytest.mark.asyncio
    async def test_non_2xx_raises_fetch_error(self, extractor: TextExtractor) -> None:
        with pytest.raises(FetchError) as excinfo:
            await extractor.extract(Source(location="https://example.org/missing"))

        assert excinfo.value.status == 404

    @pytest.mark.asyncio
    async def test_transport_error_raises_fetch_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        extractor = TextExtractor(httpx.AsyncClient(transport=httpx.MockTransport(refuse)))

        with pytest.raises(FetchError) as excinfo:
            await extractor.extract(Source(location="https://example.org/code"))
        assert excinfo.value.status is None

    @pytest.mark.asyncio
    async def test_declared_charset_is_honoured(self, extractor: TextExtractor) -> None:
        text = await extractor.extract(Source(location="https://example.org/legacy"))

        assert text == "Service charge of £25 applies to the café."
        assert "\ufffd" not in text


# ---------------------------------------------------------------------------
# PDF sources
# ---------------------------------------------------------------------------


class TestPDFExtraction:
    @pytest.mark.asyncio
    async def test_remote_pdf_pages_in_order(self, extractor: TextExtractor) -> None:
        source = Source(location="https://example.org/code.pdf")
        assert source.format is SourceFormat.PDF

        text = await extractor.extract(source)

        assert text == "Page one text Page two text"

    @pytest.mark.asyncio
    async def test_local_pdf(self, extractor: TextExtractor, tmp_path: Path) -> None:
        path = tmp_path / "rights.pdf"
        path.write_bytes(_pdf_bytes("Understand your rights"))

        text = await extractor.extract(Source(location=str(path)))

        assert text == "Understand your rights"

    @pytest.mark.asyncio
    async def test_missing_local_file(self, extractor: TextExtractor, tmp_path: Path) -> None:
        with pytest.raises(FetchError):
            await extractor.extract(Source(location=str(tmp_path / "ghost.pdf")))

    @pytest.mark.asyncio
    async def test_malformed_pdf_raises_extraction_error(self, extractor: TextExtractor) -> None:
        with pytest.raises(ExtractionError):
            await extractor.extract(Source(location="https://example.org/broken.pdf"))

    @pytest.mark.asyncio
    async def test_encrypted_pdf_raises_extraction_error(self, extractor: TextExtractor) -> None:
        with pytest.raises(ExtractionError, match="encrypted"):
            await extractor.extract(Source(location="https://example.org/locked.pdf"))

    @pytest.mark.asyncio
    async def test_disabled_backend_skips_without_fetching(self) -> None:
        calls: list[httpx.Request] = []

        def record(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return _handler(request)

        extractor = TextExtractor(
            httpx.AsyncClient(transport=httpx.MockTransport(record)),
            pdf_enabled=False,
        )

        assert extractor.pdf_enabled is False
        with pytest.raises(SourceSkipped):
            await extractor.extract(Source(location="https://example.org/code.pdf"))
        assert calls == []

    @pytest.mark.asyncio
    async def test_disabled_backend_still_handles_html(self) -> None:
        extractor = TextExtractor(
            httpx.AsyncClient(transport=httpx.MockTransport(_handler)),
            pdf_enabled=False,
        )

        text = await extractor.extract(Source(location="https://example.org/code"))
        assert "five working days" in text


# ---------------------------------------------------------------------------
# Source model
# ---------------------------------------------------------------------------


class TestSourceFormat:
    @pytest.mark.parametrize(
        ("location", "expected"),
        [
            ("https://example.org/Code.PDF", SourceFormat.PDF),
            ("https://example.org/doc.pdf?download=1", SourceFormat.PDF),
            ("https://www.legislation.gov.uk/ukpga/2018/34", SourceFormat.HTML),
            ("local/rights.pdf", SourceFormat.PDF),
        ],
    )
    def test_format_inferred(self, location: str, expected: SourceFormat) -> None:
        assert Source(location=location).format is expected

    def test_explicit_format_wins(self) -> None:
        source = Source(location="https://example.org/download?id=3", format=SourceFormat.PDF)
        assert source.format is SourceFormat.PDF
