"""
Legacy Room Extraction - coarse fallback for text documents with no plan sheets
All usable pages are merged into one prompt; rooms come back without levels.
"""

import logging
from typing import List

from models.schemas import VisionResult
from services.ai_client import ChatModelClient
from services.pdf_text_extractor import RawPage
from services.plan_config import PlanParseConfig
from services.room_postprocess import apply_deterministic_names, rooms_from_model_payload

logger = logging.getLogger(__name__)


LEGACY_SYSTEM_PROMPT = """You are an expert construction estimator analyzing floor plans and blueprints.

Extract ALL rooms and spaces from the document. For each room:
1. name: Room name as shown (expand abbreviations: MBR=Master Bedroom, BA=Bathroom)
2. type: One of: bedroom, bathroom, kitchen, living, dining, garage, closet, utility, laundry, hallway, foyer, office, basement, attic, deck, patio, porch, mudroom, pantry, storage, mechanical, other
3. area_sqft: Square footage if shown (number only, or null)
4. dimensions: Dimensions if shown (e.g., "12'-0\\" x 14'-6\\"" or null)
5. notes: Special notes about the room
6. confidence: 0-100 confidence this is a real, distinct room

Return JSON:
{
  "rooms": [
    { "name": "Master Bedroom", "type": "bedroom", "area_sqft": 250, "dimensions": "12'-0\\" x 20'-0\\"", "notes": null, "confidence": 95 }
  ],
  "assumptions": ["Assumed 'BR' means Bedroom"],
  "missingInfo": ["Kitchen dimensions not visible"],
  "warnings": ["Some room labels unclear"]
}

CRITICAL RULES:
- Extract ALL distinct rooms/spaces (bedrooms, bathrooms, closets, pantries, etc.)
- If plan shows 3 bathrooms, return 3 separate entries; NEVER merge.
- Use clear, professional names (expand abbreviations)
- Set lower confidence for unclear or inferred rooms
- DO NOT include any pricing information"""


def select_legacy_pages(pages: List[RawPage], max_pages: int = 5) -> List[RawPage]:
    """First max_pages text-bearing pages (same threshold as type detection)"""
    return [page for page in pages if page.has_text][:max_pages]


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


async def extract_rooms_legacy(
    pages: List[RawPage],
    client: ChatModelClient,
    config: PlanParseConfig
) -> VisionResult:
    """
    Level-unaware extraction over the first few text pages.

    Model failures degrade to an empty result with a warning.
    """
    selected = select_legacy_pages(pages, config.legacy_max_pages)
    if not selected:
        return VisionResult(
            assumptions=["No pages provided for room extraction"],
            missing_info=["Document content unavailable"],
            warnings=["Please add rooms manually"]
        )

    combined = "\n\n".join(f"=== PAGE {page.page_number} ===\n{page.text}" for page in selected)
    if len(combined) > config.legacy_max_chars:
        combined = combined[:config.legacy_max_chars] + "\n\n[... content truncated ...]"

    page_numbers = [page.page_number for page in selected]
    logger.info(f"Legacy extraction over pages {page_numbers}")

    try:
        payload = await client.complete_json(
            config.extraction_model,
            LEGACY_SYSTEM_PROMPT,
            f"Extract all rooms from these {len(selected)} pages:\n\n{combined}"
        )
    except Exception as e:
        logger.error(f"Legacy room extraction failed for pages {page_numbers}: {e}")
        return VisionResult(warnings=[f"Room extraction error: {e}"])

    if not isinstance(payload, dict):
        payload = {}

    rooms = rooms_from_model_payload(payload.get('rooms'), default_level=None)
    return VisionResult(
        rooms=apply_deterministic_names(rooms, None),
        assumptions=_string_list(payload.get('assumptions')),
        warnings=_string_list(payload.get('warnings')),
        missing_info=_string_list(payload.get('missingInfo')),
    )
