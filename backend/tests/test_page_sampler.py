"""
Tests for classification sampling and text truncation
"""

from services.page_sampler import (
    prepare_pages_for_classification,
    sample_pages_for_classification,
    truncate_page_text,
)
from services.pdf_text_extractor import RawPage

TEXT = "FLOOR PLAN WITH ROOM LABELS AND DIMENSIONS"


def test_small_document_returned_whole():
    pages = [RawPage(i, TEXT) for i in range(1, 6)]

    assert sample_pages_for_classification(pages, max_pages=20) == pages


def test_sampling_caps_and_orders_pages():
    pages = [RawPage(i, TEXT) for i in range(1, 101)]

    sampled = sample_pages_for_classification(pages, max_pages=20)
    numbers = [p.page_number for p in sampled]

    assert len(sampled) == 20
    assert numbers == sorted(numbers)
    assert len(set(numbers)) == 20
    assert numbers[0] == 1
    assert numbers[-1] > 90


def test_sampling_prefers_text_pages():
    pages = [RawPage(i, TEXT if i % 2 == 0 else "") for i in range(1, 61)]

    sampled = sample_pages_for_classification(pages, max_pages=20)

    assert len(sampled) == 20
    assert all(p.has_text for p in sampled)


def test_sampling_fills_from_blank_pages_when_text_runs_out():
    pages = [RawPage(i, TEXT if i <= 5 else "") for i in range(1, 41)]

    sampled = sample_pages_for_classification(pages, max_pages=10)
    numbers = [p.page_number for p in sampled]

    assert len(sampled) == 10
    assert {1, 2, 3, 4, 5} <= set(numbers)
    assert numbers == sorted(numbers)


def test_truncate_short_text_untouched_but_normalized():
    assert truncate_page_text("KITCHEN    12x14\n\n\n\nBATH", 1500) == "KITCHEN 12x14\n\nBATH"


def test_truncate_cuts_at_sentence_boundary():
    text = ("Room notes apply. " * 100).strip()

    result = truncate_page_text(text, 500)

    assert result.endswith("...")
    assert len(result) <= 503
    assert result[:-3].endswith(".")


def test_truncate_without_boundary_cuts_near_limit():
    text = "A" * 3000

    result = truncate_page_text(text, 1500)

    assert result.endswith("...")
    assert 1400 <= len(result) - 3 <= 1500


def test_prepare_respects_per_page_budget():
    pages = [RawPage(i, "X" * 5000) for i in range(1, 51)]

    prepared = prepare_pages_for_classification(pages, max_total_chars=50000)

    assert len(prepared) == 50
    assert all(len(p.text) <= 1003 for p in prepared)


def test_prepare_empty():
    assert prepare_pages_for_classification([]) == []
