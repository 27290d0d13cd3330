"""
Per-Sheet Room Extraction

Each sheet is extracted with its own model call, scoped to that page's text
and told the sheet's level. Calls run concurrently under a semaphore with a
per-sheet timeout. A failing sheet contributes zero rooms and a warning; it
never fails the batch. Results are returned in sheet order.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from models.schemas import ExtractedRoom, SheetInfo, SheetResult
from services.ai_client import ChatModelClient
from services.plan_config import PlanParseConfig
from services.pdf_text_extractor import RawPage
from services.room_postprocess import post_process_rooms, rooms_from_model_payload

logger = logging.getLogger(__name__)


SHEET_SYSTEM_PROMPT = """You are an expert construction estimator analyzing a SINGLE floor plan sheet.

THIS SHEET IS: "{sheet_title}"
BUILDING LEVEL: {level}

Extract ALL rooms and spaces shown on THIS sheet. For EACH distinct room or space:
1. name: Room name EXACTLY as labeled on the plan. Expand abbreviations (MBR=Master Bedroom, BA=Bathroom, BR=Bedroom, KIT=Kitchen, LR=Living Room, DR=Dining Room, FR=Family Room, GR=Great Room, WIC=Walk-in Closet, PWDR=Powder Room).
2. type: One of: bedroom, bathroom, kitchen, living, dining, garage, closet, utility, laundry, hallway, foyer, office, basement, attic, deck, patio, porch, mudroom, pantry, storage, mechanical, other
3. area_sqft: Square footage if shown (number or null)
4. dimensions: Dimension string if shown (e.g. "12'-0\\" x 14'-6\\"") or null
5. notes: Special notes visible on plan
6. confidence: 0-100

Return JSON:
{{
  "rooms": [
    {{ "name": "Master Bedroom", "type": "bedroom", "area_sqft": 250, "dimensions": "12'-0\\" x 20'-0\\"", "notes": null, "confidence": 95 }}
  ],
  "room_count_by_type": {{ "bedroom": 3, "bathroom": 2, "kitchen": 1 }},
  "assumptions": [],
  "missingInfo": [],
  "warnings": []
}}

CRITICAL RULES:
- Report EVERY distinct room/space shown. If the plan shows 3 bedrooms, return 3 separate bedroom entries.
- Do NOT merge rooms. Two rooms with the same label are TWO rooms; return both.
- Include closets, pantries, walk-in closets, powder rooms, laundry, utility, storage.
- Include hallways only if they are labeled as a room on the plan.
- Use the room name from the plan. Do NOT invent names.
- If a room label is unclear, use the type with a number (e.g. "Bedroom 1", "Bathroom 2").
- DO NOT include any pricing information.
- "room_count_by_type" MUST match the rooms array per type."""


@dataclass
class SheetExtractionBatch:
    sheet_results: List[SheetResult] = field(default_factory=list)
    assumptions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    missing_info: List[str] = field(default_factory=list)

    @property
    def rooms(self) -> List[ExtractedRoom]:
        return [room for result in self.sheet_results for room in result.rooms]


@dataclass
class _SheetOutcome:
    result: SheetResult
    skipped: bool = False
    assumptions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    missing_info: List[str] = field(default_factory=list)


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _check_room_counts(payload: dict, rooms: List[ExtractedRoom], page_number: int) -> None:
    counts = payload.get('room_count_by_type')
    if not isinstance(counts, dict):
        return
    expected = sum(n for n in counts.values() if isinstance(n, int) and not isinstance(n, bool))
    if len(rooms) < expected:
        logger.warning(
            f"Room count mismatch on page {page_number}: "
            f"model reported {expected} in counts but returned {len(rooms)} rooms"
        )


async def extract_rooms_from_sheet(
    sheet: SheetInfo,
    page_text: str,
    client: ChatModelClient,
    config: PlanParseConfig
) -> _SheetOutcome:
    """
    Extract rooms from one sheet; every room is stamped with the sheet's level and title

    Raises:
        ModelCallError, UnparseableModelOutputError: Left to the batch to isolate
    """
    if len(page_text) > config.max_sheet_text_chars:
        page_text = page_text[:config.max_sheet_text_chars] + '\n[... truncated ...]'

    system_prompt = SHEET_SYSTEM_PROMPT.format(sheet_title=sheet.sheet_title, level=sheet.detected_level)
    payload = await client.complete_json(
        config.extraction_model,
        system_prompt,
        f"Extract all rooms from this {sheet.detected_level} floor plan sheet:\n\n{page_text}"
    )
    if not isinstance(payload, dict):
        payload = {'rooms': payload if isinstance(payload, list) else []}

    raw_rooms = rooms_from_model_payload(payload.get('rooms'), default_level=sheet.detected_level)
    _check_room_counts(payload, raw_rooms, sheet.page_number)

    rooms = [
        room.model_copy(update={'sheet_label': sheet.sheet_title or None})
        for room in post_process_rooms(raw_rooms, sheet.detected_level)
    ]

    return _SheetOutcome(
        result=SheetResult(sheet=sheet, rooms=rooms),
        assumptions=_string_list(payload.get('assumptions')),
        warnings=_string_list(payload.get('warnings')),
        missing_info=_string_list(payload.get('missingInfo')),
    )


async def extract_rooms_per_sheet(
    sheets: List[SheetInfo],
    pages: List[RawPage],
    client: ChatModelClient,
    config: PlanParseConfig
) -> SheetExtractionBatch:
    """Extract every sheet concurrently (bounded); failures are isolated per sheet"""
    page_text: Dict[int, str] = {page.page_number: page.text for page in pages}
    semaphore = asyncio.Semaphore(max(1, config.max_concurrent_sheets))

    async def run_sheet(sheet: SheetInfo) -> _SheetOutcome:
        label = f"Page {sheet.page_number} ({sheet.sheet_title})"
        text = page_text.get(sheet.page_number, "")

        if len(text.strip()) < config.min_sheet_text_chars:
            return _SheetOutcome(
                result=SheetResult(sheet=sheet, rooms=[]),
                skipped=True,
                warnings=[f"{label}: insufficient text for extraction"]
            )

        async with semaphore:
            logger.info(f"Extracting rooms from page {sheet.page_number}: '{sheet.sheet_title}' -> {sheet.detected_level}")
            try:
                return await asyncio.wait_for(
                    extract_rooms_from_sheet(sheet, text, client, config),
                    timeout=config.sheet_timeout_seconds
                )
            except asyncio.TimeoutError:
                error = f"timed out after {config.sheet_timeout_seconds:.0f}s"
            except Exception as e:
                error = str(e) or type(e).__name__

        logger.error(f"Room extraction failed for page {sheet.page_number}: {error}")
        return _SheetOutcome(
            result=SheetResult(sheet=sheet, rooms=[], error=error),
            warnings=[f"{label}: room extraction failed ({error})"]
        )

    outcomes = await asyncio.gather(*(run_sheet(sheet) for sheet in sheets))

    batch = SheetExtractionBatch()
    for sheet, outcome in zip(sheets, outcomes):
        batch.sheet_results.append(outcome.result)
        batch.assumptions.extend(outcome.assumptions)
        batch.warnings.extend(outcome.warnings)
        batch.missing_info.extend(outcome.missing_info)

        label = f"Page {sheet.page_number} ({sheet.sheet_title})"
        if outcome.result.rooms:
            batch.assumptions.append(
                f"{label}: found {len(outcome.result.rooms)} rooms on {sheet.detected_level}"
            )
        elif outcome.result.error is None and not outcome.skipped:
            batch.warnings.append(f"{label}: no rooms detected")

    logger.info(f"Extracted {len(batch.rooms)} rooms from {len(sheets)} sheets")
    return batch
