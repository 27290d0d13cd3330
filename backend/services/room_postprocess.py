"""
Room Post-Processing

Deterministic clean-up applied to rooms returned by the model:
- dimension strings parsed into length_ft / width_ft
- abbreviations expanded and names title-cased
- repeated names on one sheet numbered ("Bathroom 1", "Bathroom 2")

Post-processing never drops a room and never merges two rooms.
"""

import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from models.enums import RoomType
from models.schemas import ExtractedRoom

logger = logging.getLogger(__name__)


ROOM_ABBREVIATIONS: Dict[str, str] = {
    'mbr': 'Master Bedroom',
    'mba': 'Master Bathroom',
    'mbath': 'Master Bathroom',
    'br': 'Bedroom',
    'ba': 'Bathroom',
    'kit': 'Kitchen',
    'lr': 'Living Room',
    'dr': 'Dining Room',
    'fr': 'Family Room',
    'gr': 'Great Room',
    'gar': 'Garage',
    'lndry': 'Laundry',
    'util': 'Utility',
    'mech': 'Mechanical',
    'wic': 'Walk-in Closet',
    'pwdr': 'Powder Room',
    'foy': 'Foyer',
    'pnt': 'Pantry',
    'mud': 'Mudroom',
}

ROOM_TYPE_SYNONYMS: Dict[str, RoomType] = {
    'bath': RoomType.bathroom,
    'livingroom': RoomType.living,
    'diningroom': RoomType.dining,
    'hall': RoomType.hallway,
    'entry': RoomType.foyer,
    'study': RoomType.office,
}

LEVEL_SUFFIX = re.compile(r'\s*[-–—]\s*(?:Level\s*\d+|Basement|Garage|Attic|Roof)', re.I)

FEET_INCHES = re.compile(
    r"(\d+)'[-\s]?(\d+)?\"?\s*[xX×]\s*(\d+)'[-\s]?(\d+)?\"?"
)
FEET_ONLY = re.compile(
    r"(\d+(?:\.\d+)?)['\s]*[xX×]\s*(\d+(?:\.\d+)?)['\s]*"
)


def parse_dimensions(dimensions: Optional[str]) -> Optional[Tuple[float, float]]:
    """
    Parse a dimension string into (length_ft, width_ft).

    "12'-6\\" x 14'-0\\"" -> (12.5, 14.0)
    "12' x 14'"         -> (12.0, 14.0)
    "12.5 x 14.5"       -> (12.5, 14.5)
    """
    if not dimensions:
        return None

    cleaned = (
        dimensions
        .replace('‘', "'").replace('’', "'")
        .replace('“', '"').replace('”', '"')
        .replace('″', '"').replace('′', "'")
    )
    cleaned = re.sub(r'\s+', ' ', cleaned).strip()

    match = FEET_INCHES.search(cleaned)
    if match:
        ft1, in1, ft2, in2 = match.groups()
        return (
            round(int(ft1) + int(in1 or 0) / 12, 2),
            round(int(ft2) + int(in2 or 0) / 12, 2),
        )

    match = FEET_ONLY.search(cleaned)
    if match:
        return round(float(match.group(1)), 2), round(float(match.group(2)), 2)

    return None


def normalize_room_type(value: Optional[str]) -> Optional[str]:
    if not value or not isinstance(value, str):
        return None
    normalized = re.sub(r'[^a-z]', '', value.lower())
    if normalized in RoomType.__members__:
        return normalized
    return ROOM_TYPE_SYNONYMS.get(normalized, RoomType.other).value


def _base_name(name: str) -> str:
    name = LEVEL_SUFFIX.sub('', name)
    name = re.sub(r'\s+\d+\s*$', '', name)
    name = re.sub(r'\s*#\d+\s*$', '', name)
    return name.strip()


def clean_room_name(name: str) -> str:
    """Expand abbreviations, strip level suffixes and title-case"""
    cleaned = LEVEL_SUFFIX.sub('', name).strip()
    lower = cleaned.lower()

    if lower in ROOM_ABBREVIATIONS:
        return ROOM_ABBREVIATIONS[lower]

    # "BR1" / "BR 2"
    match = re.match(r'^([a-z]+)\s*(\d+)?$', lower)
    if match and match.group(1) in ROOM_ABBREVIATIONS:
        return ROOM_ABBREVIATIONS[match.group(1)]

    return ' '.join(word[:1].upper() + word[1:].lower() for word in cleaned.split())


def apply_deterministic_names(rooms: List[ExtractedRoom], level: Optional[str]) -> List[ExtractedRoom]:
    """Name rooms deterministically; repeated base names are numbered in order"""
    base_counts: Dict[str, int] = {}
    for room in rooms:
        base = _base_name(room.name).lower()
        base_counts[base] = base_counts.get(base, 0) + 1

    counters: Dict[str, int] = {}
    named = []
    for room in rooms:
        base = _base_name(room.name)
        key = base.lower()
        if base_counts.get(key, 1) == 1:
            display_name = clean_room_name(room.name)
        else:
            counters[key] = counters.get(key, 0) + 1
            display_name = f"{clean_room_name(base)} {counters[key]}"
        named.append(room.model_copy(update={'name': display_name or room.name, 'level': level}))
    return named


def post_process_rooms(rooms: List[ExtractedRoom], level: Optional[str]) -> List[ExtractedRoom]:
    """Fill numeric dimensions, then apply deterministic naming at the given level"""
    with_dimensions = []
    for room in rooms:
        parsed = parse_dimensions(room.dimensions)
        update: Dict[str, Any] = {}
        if parsed:
            length_ft, width_ft = parsed
            if room.length_ft is None and length_ft > 0:
                update['length_ft'] = length_ft
            if room.width_ft is None and width_ft > 0:
                update['width_ft'] = width_ft
        with_dimensions.append(room.model_copy(update=update) if update else room)

    return apply_deterministic_names(with_dimensions, level)


def _number_or_none(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if value > 0 else None


def _text_or_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def rooms_from_model_payload(raw_rooms: Any, default_level: Optional[str] = None) -> List[ExtractedRoom]:
    """
    Validate raw room dicts from a model response.

    Entries without a usable name or failing validation are skipped; a
    model-supplied level is kept when present, otherwise default_level.
    """
    if not isinstance(raw_rooms, list):
        return []

    rooms = []
    for raw in raw_rooms:
        if not isinstance(raw, dict):
            continue
        name = _text_or_none(raw.get('name'))
        if not name:
            logger.debug("Skipping room without a name")
            continue

        confidence = raw.get('confidence')
        if isinstance(confidence, (int, float)) and not isinstance(confidence, bool):
            confidence = confidence / 100.0 if confidence > 1 else float(confidence)
            confidence = max(0.0, min(1.0, confidence))
        else:
            confidence = 0.5

        try:
            rooms.append(ExtractedRoom(
                name=name[:100],
                type=normalize_room_type(raw.get('type')),
                level=_text_or_none(raw.get('level')) or default_level,
                area_sqft=_number_or_none(raw.get('area_sqft')),
                length_ft=_number_or_none(raw.get('length_ft')),
                width_ft=_number_or_none(raw.get('width_ft')),
                ceiling_height_ft=_number_or_none(raw.get('ceiling_height_ft')),
                dimensions=_text_or_none(raw.get('dimensions')),
                notes=_text_or_none(raw.get('notes')),
                confidence=confidence,
            ))
        except ValidationError as e:
            logger.debug(f"Skipping invalid room {name!r}: {e}")

    return rooms
