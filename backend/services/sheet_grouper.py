"""
Sheet grouping - choose which classified pages get per-sheet room extraction
"""

import logging
from typing import Iterable, List

from models.enums import PageType
from models.schemas import EnrichedClassification, SheetInfo

logger = logging.getLogger(__name__)

RELEVANT_PAGE_TYPES = frozenset({PageType.floor_plan, PageType.demolition})


def group_sheets(
    enriched: List[EnrichedClassification],
    relevant_types: Iterable[PageType] = RELEVANT_PAGE_TYPES,
    min_confidence: float = 0.5
) -> List[SheetInfo]:
    """
    One SheetInfo per relevant page, in page order.

    A page qualifies when its type is relevant and it either carries room
    labels or was classified with confidence above min_confidence. Pages are
    never merged, even when two share a title.
    """
    relevant = set(relevant_types)
    sheets = [
        SheetInfo(
            page_number=c.page_number,
            sheet_title=c.sheet_title,
            detected_level=c.detected_level,
            classification=c.type,
            confidence=c.confidence
        )
        for c in sorted(enriched, key=lambda c: c.page_number)
        if c.type in relevant and (c.has_room_labels or c.confidence > min_confidence)
    ]

    logger.info(f"Grouped {len(sheets)} sheets for extraction from {len(enriched)} classified pages")
    return sheets
