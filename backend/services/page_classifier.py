"""
Page Classifier - AI classification of blueprint pages by sheet type
One batched call classifies every sampled page; the result always has exactly
one entry per submitted page, in submission order.
"""

import logging
import re
from typing import Any, Dict, List, Optional

from models.enums import PageType
from models.schemas import PageClassification
from services.ai_client import ChatModelClient
from services.plan_config import PlanParseConfig
from services.pdf_text_extractor import RawPage
from services.error_types import UnparseableModelOutputError

logger = logging.getLogger(__name__)


CLASSIFIER_SYSTEM_PROMPT = """You are an expert at analyzing construction blueprint and plan documents.

Classify each page of the document based on its text content.

For each page, determine:
1. pageNumber: The page number provided
2. type: One of: floor_plan, elevation, schedule, cover, detail, demolition, electrical, other
3. confidence: 0-100 how confident you are in the classification
4. hasRoomLabels: true if the page contains room names/labels (BEDROOM, KITCHEN, BATH, LIVING, etc.)
5. reason: Brief reason for classification (max 50 characters)

Return JSON:
{
  "pages": [
    { "pageNumber": 1, "type": "cover", "confidence": 95, "hasRoomLabels": false, "reason": "Title sheet" },
    { "pageNumber": 2, "type": "floor_plan", "confidence": 90, "hasRoomLabels": true, "reason": "First floor layout" }
  ]
}

CLASSIFICATION GUIDE:
- cover: Title sheets, drawing indexes, general notes, specifications
- floor_plan: Room layouts showing walls, doors, room labels - MOST IMPORTANT
- demolition: Existing-conditions or demo plans that still show room layouts
- schedule: Room, door, window and finish schedules
- elevation: Building views from sides, sections
- detail: Enlarged construction details
- electrical: Electrical, plumbing, mechanical and other system plans
- other: Site plans, certifications and anything else

PRIORITY: Accurately identify floor_plan pages - they contain room information."""


# Synonyms the model uses for the closed set of page types
PAGE_TYPE_SYNONYMS: Dict[str, PageType] = {
    'floorplan': PageType.floor_plan,
    'floor_plan': PageType.floor_plan,
    'plan': PageType.floor_plan,
    'elevation': PageType.elevation,
    'elevations': PageType.elevation,
    'section': PageType.elevation,
    'schedule': PageType.schedule,
    'roomschedule': PageType.schedule,
    'room_schedule': PageType.schedule,
    'finishschedule': PageType.schedule,
    'finish_schedule': PageType.schedule,
    'cover': PageType.cover,
    'index': PageType.cover,
    'title': PageType.cover,
    'notes': PageType.cover,
    'specs': PageType.cover,
    'specifications': PageType.cover,
    'detail': PageType.detail,
    'details': PageType.detail,
    'demolition': PageType.demolition,
    'demo': PageType.demolition,
    'demo_plan': PageType.demolition,
    'demolition_plan': PageType.demolition,
    'electrical': PageType.electrical,
    'plumbing': PageType.electrical,
    'mechanical': PageType.electrical,
}


def normalize_page_type(value: Optional[str]) -> PageType:
    """Map a model-supplied type string onto the closed PageType set"""
    if not value or not isinstance(value, str):
        return PageType.other
    normalized = re.sub(r'[^a-z_]', '', value.strip().lower().replace(' ', '_').replace('-', '_'))
    if normalized in PageType.__members__:
        return PageType(normalized)
    return PAGE_TYPE_SYNONYMS.get(normalized, PAGE_TYPE_SYNONYMS.get(normalized.replace('_', ''), PageType.other))


def normalize_confidence(value: Any) -> float:
    """Model confidence may be 0-1 or 0-100; clamp into [0, 1]"""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0.5
    confidence = float(value)
    if confidence > 1:
        confidence = confidence / 100.0
    return max(0.0, min(1.0, confidence))


def _coerce_page_number(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _raw_entries(payload: Any) -> List[Dict[str, Any]]:
    if isinstance(payload, list):
        entries = payload
    elif isinstance(payload, dict):
        entries = payload.get('pages') or payload.get('classifications') or []
    else:
        raise UnparseableModelOutputError("Classifier returned an unexpected JSON shape")
    return [entry for entry in entries if isinstance(entry, dict)]


def build_classifications(payload: Any, submitted_pages: List[int]) -> List[PageClassification]:
    """
    Reconcile the model's answer with the submitted pages.

    Entries for pages that were not submitted are dropped, duplicates keep the
    first entry, and pages the model skipped default to other/0.
    """
    submitted = set(submitted_pages)
    by_page: Dict[int, PageClassification] = {}

    for entry in _raw_entries(payload):
        page_number = _coerce_page_number(entry.get('pageNumber', entry.get('page_number')))
        if page_number not in submitted:
            logger.debug(f"Dropping classification for unsubmitted page {page_number}")
            continue
        if page_number in by_page:
            continue
        reason = entry.get('reason')
        by_page[page_number] = PageClassification(
            page_number=page_number,
            type=normalize_page_type(entry.get('type')),
            confidence=normalize_confidence(entry.get('confidence')),
            has_room_labels=bool(entry.get('hasRoomLabels', entry.get('has_room_labels', False))),
            reason=reason[:100] if isinstance(reason, str) else None
        )

    missing = [n for n in submitted_pages if n not in by_page]
    if missing:
        logger.warning(f"Classifier skipped pages {missing}, defaulting them to 'other'")

    return [
        by_page.get(n) or PageClassification(
            page_number=n,
            type=PageType.other,
            confidence=0.0,
            has_room_labels=False,
            reason="Not classified"
        )
        for n in submitted_pages
    ]


async def classify_pages(
    pages: List[RawPage],
    client: ChatModelClient,
    config: PlanParseConfig
) -> List[PageClassification]:
    """
    Classify prepared pages in a single model call

    Raises:
        ModelCallError: If the model call fails
        UnparseableModelOutputError: If the output cannot be recovered as JSON
    """
    if not pages:
        return []

    user_content = "\n\n".join(
        f"--- PAGE {page.page_number} ---\n{page.text[:config.classifier_page_chars]}"
        for page in pages
    )

    logger.info(f"Classifying {len(pages)} pages with {config.classifier_model.name}")
    payload = await client.complete_json(
        config.classifier_model,
        CLASSIFIER_SYSTEM_PROMPT,
        f"Classify these {len(pages)} pages:\n\n{user_content}"
    )

    classifications = build_classifications(payload, [page.page_number for page in pages])
    floor_plans = sum(1 for c in classifications if c.type == PageType.floor_plan)
    logger.info(f"Classified {len(classifications)} pages ({floor_plans} floor plans)")
    return classifications
