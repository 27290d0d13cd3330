"""
Page sampling and text preparation for classification.

Large plan sets are sampled down to a fixed number of pages, and each page's
text is truncated so the whole batch fits a single classifier call.
"""

import re
from typing import List

from services.pdf_text_extractor import RawPage

DEFAULT_MAX_PAGES = 20
DEFAULT_MAX_CHARS_PER_PAGE = 1500
DEFAULT_MAX_TOTAL_CHARS = 50000


def _evenly_spaced(pool: List[RawPage], count: int) -> List[RawPage]:
    if count <= 0 or not pool:
        return []
    if count >= len(pool):
        return list(pool)
    step = len(pool) / count
    return [pool[int(i * step)] for i in range(count)]


def sample_pages_for_classification(pages: List[RawPage], max_pages: int = DEFAULT_MAX_PAGES) -> List[RawPage]:
    """
    Pick at most max_pages pages for classification.

    Documents that fit are returned whole. Otherwise text-bearing pages are
    preferred and drawn at an even stride; remaining slots, if any, are filled
    evenly from pages without text. Output is unique and in page order.
    """
    if len(pages) <= max_pages:
        return list(pages)

    text_pages = [p for p in pages if p.has_text]
    sampled = _evenly_spaced(text_pages, max_pages)

    remaining = max_pages - len(sampled)
    if remaining > 0:
        blank_pages = [p for p in pages if not p.has_text]
        sampled.extend(_evenly_spaced(blank_pages, remaining))

    seen = set()
    result = []
    for page in sorted(sampled, key=lambda p: p.page_number):
        if page.page_number not in seen:
            seen.add(page.page_number)
            result.append(page)
    return result


def truncate_page_text(text: str, max_chars: int = DEFAULT_MAX_CHARS_PER_PAGE) -> str:
    """Normalize whitespace and cut at a sentence or line break near max_chars"""
    text = re.sub(r'[ \t]+', ' ', text)
    text = re.sub(r'\n{3,}', '\n\n', text).strip()

    if len(text) <= max_chars:
        return text

    truncated = text[:max_chars]
    cut = max(truncated.rfind('.'), truncated.rfind('\n'))
    floor = max(0, max_chars - 100)
    if cut < floor:
        cut = floor
    return truncated[:cut + 1].rstrip() + '...'


def prepare_pages_for_classification(
    pages: List[RawPage],
    max_total_chars: int = DEFAULT_MAX_TOTAL_CHARS,
    max_chars_per_page: int = DEFAULT_MAX_CHARS_PER_PAGE
) -> List[RawPage]:
    """Truncate each page to its share of the total character budget"""
    if not pages:
        return []

    per_page = min(max_chars_per_page, max_total_chars // len(pages))
    prepared = []
    total = 0

    for page in pages:
        text = truncate_page_text(page.text, per_page)
        prepared.append(RawPage(page_number=page.page_number, text=text))
        total += len(text)
        if total > max_total_chars:
            break

    return prepared
