"""
Enums for blueprint parsing models to ensure type safety and consistency
"""

from enum import Enum


class PdfType(str, Enum):
    """How much of the document carries an embedded text layer"""
    text = 'text'
    mixed = 'mixed'
    scanned = 'scanned'


class PageType(str, Enum):
    """Closed set of sheet categories the classifier may assign"""
    floor_plan = 'floor_plan'
    elevation = 'elevation'
    schedule = 'schedule'
    cover = 'cover'
    detail = 'detail'
    demolition = 'demolition'
    electrical = 'electrical'
    other = 'other'


class ExtractionMethod(str, Enum):
    """Room extraction strategy that produced a pipeline result"""
    per_sheet = 'per-sheet'
    legacy_fallback = 'legacy-fallback'
    vision = 'vision'


class RoomType(str, Enum):
    """Normalized room categories used for roomsByType grouping"""
    bedroom = 'bedroom'
    bathroom = 'bathroom'
    kitchen = 'kitchen'
    living = 'living'
    dining = 'dining'
    garage = 'garage'
    closet = 'closet'
    utility = 'utility'
    laundry = 'laundry'
    hallway = 'hallway'
    foyer = 'foyer'
    office = 'office'
    basement = 'basement'
    attic = 'attic'
    deck = 'deck'
    patio = 'patio'
    porch = 'porch'
    mudroom = 'mudroom'
    pantry = 'pantry'
    storage = 'storage'
    mechanical = 'mechanical'
    other = 'other'


DEFAULT_LEVEL = "Level 1"
