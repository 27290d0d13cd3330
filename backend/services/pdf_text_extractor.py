"""
PDF Text Extraction
Per-page text from an uploaded document, with an ordered list of extraction
strategies so a parser that chokes on a file does not end the request.
"""

import io
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import fitz  # PyMuPDF
import pdfplumber
from PyPDF2 import PdfReader

from services.error_types import CorruptedFileError, FileTooLargeError, InvalidInputError, ScannedPdfError

logger = logging.getLogger(__name__)

MIN_TEXT_CHARS = 20


@dataclass
class RawPage:
    """Text pulled from a single page (1-indexed)"""
    page_number: int
    text: str

    @property
    def has_text(self) -> bool:
        return len(self.text.strip()) > MIN_TEXT_CHARS


@dataclass
class PdfExtractionResult:
    pages: List[RawPage]
    total_pages: int
    strategy: str = ""
    errors: List[str] = field(default_factory=list)

    @property
    def pages_with_text(self) -> int:
        return sum(1 for page in self.pages if page.has_text)

    @property
    def has_embedded_text(self) -> bool:
        return self.pages_with_text > 0


class TextExtractionStrategy:
    """One way of reading page text out of PDF bytes"""

    name = "base"

    def extract(self, data: bytes) -> PdfExtractionResult:
        raise NotImplementedError


class PyMuPDFTextStrategy(TextExtractionStrategy):
    """Primary extractor: PyMuPDF plain-text rendering of each page"""

    name = "pymupdf"

    def extract(self, data: bytes) -> PdfExtractionResult:
        doc = fitz.open(stream=data, filetype="pdf")
        try:
            page_count = doc.page_count
            pages = []
            for page_index in range(page_count):
                try:
                    text = doc[page_index].get_text() or ""
                except Exception as page_error:
                    logger.warning(f"Error extracting text from page {page_index + 1}: {page_error}")
                    text = ""
                pages.append(RawPage(page_number=page_index + 1, text=text))
        finally:
            doc.close()
        return PdfExtractionResult(pages=pages, total_pages=page_count, strategy=self.name)


class PdfPlumberTextStrategy(TextExtractionStrategy):
    """Secondary extractor: pdfplumber word tokens joined with spaces"""

    name = "pdfplumber"

    def extract(self, data: bytes) -> PdfExtractionResult:
        pages = []
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            page_count = len(pdf.pages)
            for page_index, page in enumerate(pdf.pages):
                try:
                    words = page.extract_words()
                    text = " ".join(str(word["text"]) for word in words)
                except Exception as page_error:
                    logger.warning(f"pdfplumber failed on page {page_index + 1}: {page_error}")
                    text = ""
                pages.append(RawPage(page_number=page_index + 1, text=text))
        return PdfExtractionResult(pages=pages, total_pages=page_count, strategy=self.name)


def default_text_strategies() -> List[TextExtractionStrategy]:
    return [PyMuPDFTextStrategy(), PdfPlumberTextStrategy()]


def check_file_size(data: bytes, max_bytes: int) -> None:
    """Reject empty or oversized uploads before any parser sees them"""
    if not data:
        raise InvalidInputError("Uploaded file is empty")
    if len(data) > max_bytes:
        raise FileTooLargeError(
            f"File too large: {len(data) / (1024 * 1024):.1f}MB exceeds {max_bytes / (1024 * 1024):.0f}MB limit",
            {'size_bytes': len(data), 'max_bytes': max_bytes}
        )


def _pad_pages(result: PdfExtractionResult) -> PdfExtractionResult:
    """Guarantee one page record per page, numbered 1..total_pages"""
    by_number = {page.page_number: page for page in result.pages if 1 <= page.page_number <= result.total_pages}
    result.pages = [
        by_number.get(number, RawPage(page_number=number, text=""))
        for number in range(1, result.total_pages + 1)
    ]
    return result


def extract_pdf_pages_with_text(
    data: bytes,
    strategies: Optional[Sequence[TextExtractionStrategy]] = None,
    max_bytes: Optional[int] = None
) -> PdfExtractionResult:
    """
    Extract per-page text, trying each strategy in order

    Args:
        data: Raw PDF bytes
        strategies: Ordered extraction strategies (PyMuPDF then pdfplumber by default)
        max_bytes: Optional size limit checked before parsing

    Returns:
        PdfExtractionResult with exactly total_pages page records

    Raises:
        FileTooLargeError: If data exceeds max_bytes
        CorruptedFileError: If every strategy fails
    """
    if max_bytes is not None:
        check_file_size(data, max_bytes)
    elif not data:
        raise InvalidInputError("Uploaded file is empty")

    strategies = list(strategies) if strategies is not None else default_text_strategies()
    errors = []

    for strategy in strategies:
        try:
            result = strategy.extract(data)
        except Exception as e:
            logger.warning(f"Text extraction strategy '{strategy.name}' failed: {e}")
            errors.append(f"{strategy.name}: {e}")
            continue

        result = _pad_pages(result)
        result.errors = errors
        logger.info(
            f"Extracted text with {strategy.name}: "
            f"{result.pages_with_text}/{result.total_pages} pages have text"
        )
        return result

    raise CorruptedFileError(
        "Could not read PDF. The file may be corrupted or password-protected.",
        {'strategy_errors': errors}
    )


def get_pdf_page_count(data: bytes) -> int:
    """Lightweight page-count probe; 0 when the document cannot be read"""
    try:
        return len(PdfReader(io.BytesIO(data)).pages)
    except Exception as e:
        logger.warning(f"Could not determine page count: {e}")
        return 0


def extract_text_only(
    data: bytes,
    max_bytes: int,
    strategies: Optional[Sequence[TextExtractionStrategy]] = None
) -> PdfExtractionResult:
    """
    Text extraction for callers that only want the text layer

    Raises:
        ScannedPdfError: If no page yields any text
    """
    result = extract_pdf_pages_with_text(data, strategies=strategies, max_bytes=max_bytes)
    if not any(page.text.strip() for page in result.pages):
        raise ScannedPdfError(
            "This PDF appears to be scanned or image-only. Text extraction is not available.",
            {'total_pages': result.total_pages}
        )
    return result
