"""
Vision Fallback - room extraction from rendered page images
Used for scanned documents with no usable text layer, and for image uploads
"""

import asyncio
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional

from models.enums import DEFAULT_LEVEL
from models.schemas import ExtractedRoom, VisionResult
from services.ai_client import ChatModelClient
from services.pdf_text_extractor import get_pdf_page_count
from services.pdf_to_images import PageImage, PdfRasterizer
from services.plan_config import PlanParseConfig
from services.room_postprocess import post_process_rooms, rooms_from_model_payload

logger = logging.getLogger(__name__)


VISION_SYSTEM_PROMPT = """You are an expert construction estimator analyzing floor plan images from architectural blueprints.

Look at each floor plan image and extract ALL rooms and spaces you can identify.

FIRST: Determine the building level for EACH page from the sheet title, header, or context.
Use canonical level names: "Level 1", "Level 2", "Basement", "Garage", "Attic". Default to "Level 1".

For each room:
1. name: Room name EXACTLY as labeled on the plan (expand abbreviations: BR=Bedroom, BA=Bathroom, MBR=Master Bedroom, KIT=Kitchen)
2. level: Building level this room is on
3. type: bedroom, bathroom, kitchen, living, dining, garage, closet, utility, laundry, hallway, foyer, office, basement, attic, deck, patio, porch, mudroom, pantry, storage, mechanical, other
4. area_sqft: Square footage if determinable (calculate from dimensions, or null)
5. dimensions: Dimension string if shown (e.g. "12'-0\\" x 14'-6\\"") or null
6. notes: Any relevant notes about finishes, features
7. confidence: 0-100

Return JSON:
{
  "rooms": [
    { "name": "Primary Bedroom", "level": "Level 1", "type": "bedroom", "area_sqft": 180, "dimensions": "12' x 15'", "notes": "Walk-in closet", "confidence": 90 }
  ],
  "assumptions": [],
  "missingInfo": [],
  "warnings": []
}

CRITICAL RULES:
- Report EVERY distinct room/space visible across all images. If you see 5 bathrooms, return 5.
- Do NOT merge rooms; each is a separate space even if the same type.
- Use names from the plan. If unclear, use type with number: "Bedroom 1", "Bathroom 2".
- Include closets, pantries, laundry rooms, garages
- DO NOT include any pricing information"""


@dataclass
class VisionRun:
    result: VisionResult
    total_pages: int
    rendered_pages: int

    @property
    def success(self) -> bool:
        return self.rendered_pages > 0


def select_pages_for_vision_analysis(total_pages: int, max_pages: int = 5) -> List[int]:
    """All pages for short documents; otherwise skip the cover and take the next max_pages"""
    if total_pages <= 0:
        return []
    if total_pages <= max_pages:
        return list(range(1, total_pages + 1))
    return list(range(2, max_pages + 2))


def _string_list(value) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]


def _post_process_by_level(rooms: List[ExtractedRoom]) -> List[ExtractedRoom]:
    by_level: Dict[str, List[ExtractedRoom]] = OrderedDict()
    for room in rooms:
        by_level.setdefault(room.level or DEFAULT_LEVEL, []).append(room)

    processed = []
    for level, level_rooms in by_level.items():
        processed.extend(post_process_rooms(level_rooms, level))
    return processed


async def analyze_images_for_rooms(
    images: List[PageImage],
    client: ChatModelClient,
    config: PlanParseConfig
) -> VisionResult:
    """
    One batched vision call over every image.

    Model failures degrade to an empty result with a warning. Assumptions,
    warnings and missingInfo from the model are passed through unmodified.
    """
    if not images:
        return VisionResult(warnings=["No images provided for analysis"])

    content = [{"type": "text", "text": f"Analyze these {len(images)} floor plan page(s) and extract all rooms:"}]
    for image in images:
        content.append({
            "type": "image_url",
            "image_url": {"url": image.data_url, "detail": config.vision_model.image_detail}
        })

    total_kb = sum(len(image.image_base64) for image in images) / 1024
    logger.info(f"Sending {len(images)} image(s) to {config.vision_model.name}, total base64: {total_kb:.0f}KB")

    try:
        payload = await client.complete_json(config.vision_model, VISION_SYSTEM_PROMPT, content)
    except Exception as e:
        logger.error(f"Vision analysis failed: {e}")
        return VisionResult(warnings=[f"Vision analysis error: {e}"])

    if not isinstance(payload, dict):
        payload = {}

    rooms = rooms_from_model_payload(payload.get('rooms'), default_level=DEFAULT_LEVEL)
    return VisionResult(
        rooms=_post_process_by_level(rooms),
        assumptions=_string_list(payload.get('assumptions')),
        warnings=_string_list(payload.get('warnings')),
        missing_info=_string_list(payload.get('missingInfo')),
    )


async def run_vision_fallback(
    data: bytes,
    total_pages: int,
    client: ChatModelClient,
    config: PlanParseConfig,
    rasterizer: Optional[PdfRasterizer] = None
) -> VisionRun:
    """
    Render up to max_vision_pages pages and analyze them.

    When no page renders to a usable image the model is not called and the
    run reports zero rendered pages.
    """
    rasterizer = rasterizer or PdfRasterizer(
        max_base64_bytes=config.max_image_base64_bytes,
        reduced_scale=config.vision_reduced_scale,
        min_base64_chars=config.min_image_base64_chars
    )

    effective_total = total_pages
    if effective_total <= 0:
        effective_total = await asyncio.to_thread(get_pdf_page_count, data)
    if effective_total <= 0:
        logger.warning(f"Page count unknown, assuming {config.vision_default_page_count} pages")
        effective_total = config.vision_default_page_count

    page_numbers = select_pages_for_vision_analysis(effective_total, config.max_vision_pages)
    images = await asyncio.to_thread(rasterizer.render_pages, data, page_numbers, config.vision_render_scale)

    if not images:
        logger.error("Could not render any pages for vision analysis")
        return VisionRun(result=VisionResult(), total_pages=effective_total, rendered_pages=0)

    result = await analyze_images_for_rooms(images, client, config)
    logger.info(f"Vision analysis found {len(result.rooms)} rooms on {len(images)} pages")
    return VisionRun(result=result, total_pages=effective_total, rendered_pages=len(images))
