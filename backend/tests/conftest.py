"""
Pytest configuration and fixtures
"""
import asyncio
import json
from typing import Callable, List, Optional

import fitz  # PyMuPDF
import pytest

from services.ai_client import ChatModelClient
from services.pipeline_context import PipelineContext
from services.plan_config import PlanParseConfig


class FakeChatClient(ChatModelClient):
    """
    Scripted stand-in for the OpenAI client.

    The responder receives (model_config, system_prompt, user_content) and
    returns a dict/list (sent back as JSON), a raw string, or an exception
    instance to raise. It may also be a coroutine function.
    """

    def __init__(self, responder: Callable):
        self.client = None
        self.responder = responder
        self.calls = []

    async def complete(self, model_config, system_prompt, user_content):
        self.calls.append({
            'model': model_config.name,
            'system_prompt': system_prompt,
            'user_content': user_content,
        })
        result = self.responder(model_config, system_prompt, user_content)
        if asyncio.iscoroutine(result):
            result = await result
        if isinstance(result, Exception):
            raise result
        if isinstance(result, str):
            return result
        return json.dumps(result)


def call_kind(system_prompt: str, user_content) -> str:
    """Which pipeline stage issued a model call"""
    if isinstance(user_content, list):
        return 'vision'
    if user_content.startswith('Classify these'):
        return 'classify'
    if 'THIS SHEET IS' in system_prompt:
        return 'sheet'
    return 'legacy'


def make_pdf(page_texts: List[Optional[str]]) -> bytes:
    """
    Build a real PDF in memory. A None entry produces an image-only page
    (a filled shape and no text layer).
    """
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page(width=612, height=792)
        if text is None:
            page.draw_rect(fitz.Rect(72, 72, 540, 400), color=(0, 0, 0), fill=(0.6, 0.6, 0.6))
            page.draw_line(fitz.Point(72, 500), fitz.Point(540, 700), color=(0, 0, 0), width=3)
        elif text:
            page.insert_text((72, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def config() -> PlanParseConfig:
    return PlanParseConfig(
        openai_api_key="test-key",
        max_concurrent_sheets=4,
        sheet_timeout_seconds=5.0,
        request_timeout_seconds=30.0,
        max_file_size_bytes=10 * 1024 * 1024
    )


@pytest.fixture
def make_context(config):
    def _make(responder: Callable) -> PipelineContext:
        return PipelineContext(config=config, client=FakeChatClient(responder))
    return _make


FLOOR_PLAN_1 = """FIRST FLOOR PLAN
SCALE 1/4" = 1'-0"
KITCHEN 12'-0" x 14'-6"
LIVING ROOM 16'-0" x 18'-0"
BATH 5'-0" x 8'-0"
BEDROOM 11'-0" x 12'-0"
"""

FLOOR_PLAN_2 = """SECOND FLOOR PLAN
SCALE 1/4" = 1'-0"
BEDROOM 12'-0" x 13'-0"
BEDROOM 11'-0" x 12'-0"
BATH 5'-0" x 9'-0"
CLOSET 4'-0" x 6'-0"
"""

COVER_SHEET = """SMITH RESIDENCE
SHEET INDEX
A0 COVER SHEET
A1-01 FIRST FLOOR PLAN
A2-01 SECOND FLOOR PLAN
"""

ELEVATION_SHEET = """NORTH ELEVATION
EXTERIOR FINISH: FIBER CEMENT SIDING
ROOF: ARCHITECTURAL SHINGLES
"""
