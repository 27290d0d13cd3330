"""
Tests for AI page classification and its reconciliation with submitted pages
"""

import pytest

from models.enums import PageType
from services.error_types import ModelCallError, UnparseableModelOutputError
from services.page_classifier import build_classifications, classify_pages, normalize_confidence, normalize_page_type
from services.pdf_text_extractor import RawPage
from conftest import FakeChatClient

PAGES = [RawPage(n, f"PAGE {n} FLOOR PLAN KITCHEN BEDROOM BATH") for n in (2, 5, 9)]


@pytest.mark.parametrize("raw,expected", [
    ("floor_plan", PageType.floor_plan),
    ("Floor Plan", PageType.floor_plan),
    ("floorplan", PageType.floor_plan),
    ("room_schedule", PageType.schedule),
    ("finish-schedule", PageType.schedule),
    ("index", PageType.cover),
    ("demo", PageType.demolition),
    ("plumbing", PageType.electrical),
    ("site_plan", PageType.other),
    ("", PageType.other),
    (None, PageType.other),
])
def test_normalize_page_type(raw, expected):
    assert normalize_page_type(raw) == expected


@pytest.mark.parametrize("raw,expected", [
    (95, 0.95),
    (0.7, 0.7),
    (150, 1.0),
    (-5, 0.0),
    ("high", 0.5),
    (None, 0.5),
])
def test_normalize_confidence(raw, expected):
    assert normalize_confidence(raw) == pytest.approx(expected)


def test_one_result_per_submitted_page_in_order():
    payload = {"pages": [
        {"pageNumber": 9, "type": "elevation", "confidence": 80},
        {"pageNumber": 2, "type": "floor_plan", "confidence": 90, "hasRoomLabels": True},
        {"pageNumber": 2, "type": "cover", "confidence": 99},
        {"pageNumber": 42, "type": "floor_plan", "confidence": 99},
    ]}

    result = build_classifications(payload, [2, 5, 9])

    assert [c.page_number for c in result] == [2, 5, 9]
    assert result[0].type == PageType.floor_plan
    assert result[0].has_room_labels is True
    assert result[1].type == PageType.other
    assert result[1].confidence == 0.0
    assert result[1].has_room_labels is False
    assert result[2].type == PageType.elevation


def test_accepts_bare_list_and_classifications_key():
    entries = [{"pageNumber": 1, "type": "floor_plan", "confidence": 90}]

    assert build_classifications(entries, [1])[0].type == PageType.floor_plan
    assert build_classifications({"classifications": entries}, [1])[0].type == PageType.floor_plan


@pytest.mark.asyncio
async def test_classify_pages_single_batched_call(config):
    client = FakeChatClient(lambda *_: {"pages": [
        {"pageNumber": 2, "type": "floor_plan", "confidence": 92, "hasRoomLabels": True, "reason": "First floor"},
        {"pageNumber": 5, "type": "cover", "confidence": 88},
        {"pageNumber": 9, "type": "elevation", "confidence": 75},
    ]})

    result = await classify_pages(PAGES, client, config)

    assert len(client.calls) == 1
    assert client.calls[0]['model'] == config.classifier_model.name
    assert "--- PAGE 5 ---" in client.calls[0]['user_content']
    assert [c.type for c in result] == [PageType.floor_plan, PageType.cover, PageType.elevation]
    assert result[0].confidence == pytest.approx(0.92)


@pytest.mark.asyncio
async def test_fenced_json_is_recovered(config):
    fenced = '```json\n{"pages": [{"pageNumber": 2, "type": "floor_plan", "confidence": 90}]}\n```'
    client = FakeChatClient(lambda *_: fenced)

    result = await classify_pages(PAGES, client, config)

    assert result[0].type == PageType.floor_plan
    assert len(result) == 3


@pytest.mark.asyncio
async def test_unparseable_output_raises(config):
    client = FakeChatClient(lambda *_: "Sorry, I cannot help with that.")

    with pytest.raises(UnparseableModelOutputError):
        await classify_pages(PAGES, client, config)


@pytest.mark.asyncio
async def test_model_failure_raises(config):
    client = FakeChatClient(lambda *_: ModelCallError("connection reset"))

    with pytest.raises(ModelCallError):
        await classify_pages(PAGES, client, config)


@pytest.mark.asyncio
async def test_no_pages_no_call(config):
    client = FakeChatClient(lambda *_: {"pages": []})

    assert await classify_pages([], client, config) == []
    assert client.calls == []
