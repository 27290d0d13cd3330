"""
PDF Type Detection
Decides whether a document has a usable text layer or needs the vision path
"""

import logging
from dataclasses import dataclass
from typing import Optional

from models.enums import PdfType
from services.pdf_text_extractor import PdfExtractionResult

logger = logging.getLogger(__name__)

TEXT_RATIO_THRESHOLD = 0.8
SCANNED_RATIO_THRESHOLD = 0.2


@dataclass
class PdfTypeResult:
    type: PdfType
    reason: str
    text_ratio: float
    total_pages: int
    pages_with_text: int

    @property
    def pages_without_text(self) -> int:
        return self.total_pages - self.pages_with_text


def detect_pdf_type(
    extraction: PdfExtractionResult,
    file_size_bytes: Optional[int] = None,
    text_threshold: float = TEXT_RATIO_THRESHOLD,
    scanned_threshold: float = SCANNED_RATIO_THRESHOLD
) -> PdfTypeResult:
    """
    Classify a document as text, mixed or scanned from its text-bearing page ratio.

    A document with no text-bearing pages is always scanned, never text.
    """
    total = extraction.total_pages
    with_text = extraction.pages_with_text

    if total == 0:
        return PdfTypeResult(PdfType.scanned, "No pages found in PDF", 0.0, 0, 0)

    ratio = with_text / total
    size_note = f" ({file_size_bytes / 1024:.0f}KB)" if file_size_bytes else ""

    if not extraction.has_embedded_text or ratio <= scanned_threshold:
        result = PdfTypeResult(
            PdfType.scanned,
            f"Only {with_text}/{total} pages have extractable text{size_note}",
            ratio, total, with_text
        )
    elif ratio >= text_threshold:
        result = PdfTypeResult(
            PdfType.text,
            f"{with_text}/{total} pages have extractable text",
            ratio, total, with_text
        )
    else:
        result = PdfTypeResult(
            PdfType.mixed,
            f"{with_text}/{total} pages have text, some may be scanned",
            ratio, total, with_text
        )

    logger.info(f"PDF type detected: {result.type.value} ({result.reason})")
    return result
