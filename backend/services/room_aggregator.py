"""
Room aggregation - count extracted rooms per level and per type for the response
"""

from typing import Dict, List

from models.enums import DEFAULT_LEVEL, RoomType
from models.schemas import ExtractedRoom


def group_rooms_by_level(rooms: List[ExtractedRoom]) -> Dict[str, int]:
    grouped: Dict[str, int] = {}
    for room in rooms:
        level = room.level or DEFAULT_LEVEL
        grouped[level] = grouped.get(level, 0) + 1
    return grouped


def group_rooms_by_type(rooms: List[ExtractedRoom]) -> Dict[str, int]:
    grouped: Dict[str, int] = {}
    for room in rooms:
        room_type = room.type or RoomType.other.value
        grouped[room_type] = grouped.get(room_type, 0) + 1
    return grouped
