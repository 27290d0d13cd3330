"""
Level Detection - sheet titles and building levels from page text

Levels are inferred with an ordered list of patterns, checked against the
sheet title first and then against the top of the page text. More specific
patterns come first, so "Garage Level" resolves to Garage rather than a
numbered level.
"""

import logging
import re
from typing import Dict, List, Tuple

from models.enums import DEFAULT_LEVEL
from models.schemas import EnrichedClassification, PageClassification
from services.pdf_text_extractor import RawPage

logger = logging.getLogger(__name__)

CANONICAL_LEVELS = (
    'Basement',
    'Level 1',
    'Level 2',
    'Level 3',
    'Level 4',
    'Garage',
    'Attic',
    'Roof',
)

UNTITLED_SHEET = "Untitled Sheet"
HEADER_CHARS = 500

LEVEL_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r'\bbasement\b', re.I), 'Basement'),
    (re.compile(r'\blower\s*level\b', re.I), 'Basement'),
    (re.compile(r'\bcellar\b', re.I), 'Basement'),

    (re.compile(r'\bgarage\b', re.I), 'Garage'),

    (re.compile(r'\battic\b', re.I), 'Attic'),
    (re.compile(r'\broof\s*(?:plan|level)?\b', re.I), 'Roof'),

    (re.compile(r'\blevel\s*4\b', re.I), 'Level 4'),
    (re.compile(r'\blevel\s*3\b', re.I), 'Level 3'),
    (re.compile(r'\blevel\s*2\b', re.I), 'Level 2'),
    (re.compile(r'\blevel\s*1\b', re.I), 'Level 1'),

    (re.compile(r'\b(?:4th|fourth)\s*floor\b', re.I), 'Level 4'),
    (re.compile(r'\b(?:3rd|third)\s*floor\b', re.I), 'Level 3'),
    (re.compile(r'\b(?:2nd|second)\s*floor\b', re.I), 'Level 2'),
    (re.compile(r'\b(?:1st|first|ground)\s*floor\b', re.I), 'Level 1'),
    (re.compile(r'\bmain\s*(?:level|floor)\b', re.I), 'Level 1'),

    # Unnumbered upper/lower
    (re.compile(r'\bupper\s*(?:level|floor|story)\b', re.I), 'Level 2'),
    (re.compile(r'\blower\s*(?:floor|story)\b', re.I), 'Level 1'),

    # Sheet numbering: A1-01 is level 1, A2-01 level 2
    (re.compile(r'\bA-?1[-\s]', re.I), 'Level 1'),
    (re.compile(r'\bA-?2[-\s]', re.I), 'Level 2'),
    (re.compile(r'\bA-?3[-\s]', re.I), 'Level 3'),
]

SHEET_TITLE_PATTERN = re.compile(r'(?:floor\s*plan|level\s*\d|basement|garage|attic)', re.I)


def _match_level(text: str):
    for pattern, level in LEVEL_PATTERNS:
        if pattern.search(text):
            return level
    return None


def detect_level_from_text(sheet_title: str, page_text: str = "") -> str:
    """Canonical level for a sheet; title wins over page text, default Level 1"""
    level = _match_level(sheet_title or "")
    if level:
        return level
    if page_text:
        level = _match_level(page_text[:HEADER_CHARS])
        if level:
            return level
    return DEFAULT_LEVEL


def extract_sheet_title(page_text: str) -> str:
    """Guess a sheet title from the first lines of page text"""
    lines = [line.strip() for line in (page_text or "").split('\n') if line.strip()]

    for line in lines[:15]:
        if SHEET_TITLE_PATTERN.search(line):
            return line[:100]

    for line in lines[:5]:
        if 5 < len(line) < 120:
            return line

    return UNTITLED_SHEET


def enrich_classifications_with_level(
    classifications: List[PageClassification],
    pages: List[RawPage]
) -> List[EnrichedClassification]:
    """Attach sheet title and level, read from each page's full (untruncated) text"""
    page_text: Dict[int, str] = {page.page_number: page.text for page in pages}
    enriched = []

    for classification in classifications:
        text = page_text.get(classification.page_number, "")
        sheet_title = extract_sheet_title(text)
        enriched.append(EnrichedClassification(
            **classification.model_dump(),
            detected_level=detect_level_from_text(sheet_title, text),
            sheet_title=sheet_title
        ))

    return enriched
