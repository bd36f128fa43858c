"""
PDF release-notes adapter.
"""

from io import BytesIO

import httpx
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from version_vault.core.exceptions import FetchError, SourceParseError
from version_vault.sources.base import SourceContent, SourceKind
from version_vault.sources.http import get_document
from version_vault.sources.text import normalize_lines
from version_vault.utils.logging import get_logger

logger = get_logger(__name__)

PAGE_SEPARATOR = "\n\n--- PAGE {number} ---\n\n"


def is_pdf_url(url: str) -> bool:
    return url.lower().split("?", 1)[0].endswith(".pdf")


def extract_pdf_text(data: bytes) -> str:
    """
    Extract the text of every page, separated by page markers.

    Raises:
        SourceParseError: If the bytes are not a readable PDF
    """
    try:
        reader = PdfReader(BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PdfReadError, ValueError) as e:
        raise SourceParseError(f"Unreadable PDF: {e}", source_kind="pdf") from e

    parts = []
    for number, text in enumerate(pages, start=1):
        parts.append(PAGE_SEPARATOR.format(number=number) + normalize_lines(text))
    return "".join(parts).strip()


async def fetch_pdf_text(url: str, client: httpx.AsyncClient | None = None) -> SourceContent:
    """Download a PDF and return its text; empty content on any failure."""
    try:
        response = await get_document(url, client=client, accept="application/pdf")
        text = extract_pdf_text(response.content)
    except (FetchError, SourceParseError) as e:
        logger.warning(f"PDF extraction failed for {url}: {e}")
        return SourceContent(url=url, kind=SourceKind.PDF, text="", method="pdf", success=False)

    logger.info(f"Extracted {len(text)} characters from PDF {url}")
    return SourceContent(url=url, kind=SourceKind.PDF, text=text, method="pdf")
