"""
Tests for rendering pages and the vision room extraction fallback
"""

import base64

import pytest

from services.error_types import ModelCallError
from services.pdf_to_images import PageImage, PdfRasterizer, image_bytes_to_page_image
from services.vision_fallback import analyze_images_for_rooms, run_vision_fallback, select_pages_for_vision_analysis
from conftest import FakeChatClient, make_pdf


class NoImageRasterizer(PdfRasterizer):
    def render_pages(self, data, page_numbers, scale=1.5):
        return []


def fake_image(page_number=1) -> PageImage:
    return PageImage(page_number=page_number, image_base64="A" * 400, width_px=10, height_px=10, scale=1.5)


@pytest.mark.parametrize("total,expected", [
    (0, []),
    (1, [1]),
    (3, [1, 2, 3]),
    (5, [1, 2, 3, 4, 5]),
    (12, [2, 3, 4, 5, 6]),
])
def test_select_pages_for_vision(total, expected):
    assert select_pages_for_vision_analysis(total, max_pages=5) == expected


def test_rasterizer_renders_requested_pages():
    images = PdfRasterizer().render_pages(make_pdf([None, None, None]), [1, 3, 9], scale=0.5)

    assert [image.page_number for image in images] == [1, 3]
    assert all(len(image.image_base64) > 100 for image in images)
    base64.b64decode(images[0].image_base64)


def test_rasterizer_reduces_oversized_images():
    images = PdfRasterizer(max_base64_bytes=1, reduced_scale=0.25).render_pages(make_pdf([None]), [1], scale=1.0)

    assert images[0].scale == 0.25


def test_rasterizer_unreadable_document():
    assert PdfRasterizer().render_pages(b"not a pdf", [1, 2]) == []


def test_image_upload_is_reencoded_as_png():
    rendered = PdfRasterizer().render_pages(make_pdf([None]), [1], scale=0.25)[0]

    image = image_bytes_to_page_image(base64.b64decode(rendered.image_base64))

    assert image.page_number == 1
    assert image.data_url.startswith("data:image/png;base64,")
    assert image.width_px == rendered.width_px


class TestAnalyzeImages:

    @pytest.mark.asyncio
    async def test_single_batched_call_with_every_image(self, config):
        client = FakeChatClient(lambda *_: {
            "rooms": [
                {"name": "Bedroom", "level": "Level 2", "type": "bedroom", "confidence": 80},
                {"name": "Bedroom", "level": "Level 2", "type": "bedroom", "confidence": 80},
                {"name": "Bedroom", "type": "bedroom", "confidence": 70},
            ],
            "assumptions": ["Scale assumed 1/4 inch"],
            "missingInfo": ["Ceiling heights"],
            "warnings": ["Page 3 is blurry"],
        })

        result = await analyze_images_for_rooms([fake_image(1), fake_image(2)], client, config)

        assert len(client.calls) == 1
        content = client.calls[0]['user_content']
        assert [part['type'] for part in content] == ["text", "image_url", "image_url"]
        assert content[1]['image_url']['detail'] == config.vision_model.image_detail
        assert [(r.name, r.level) for r in result.rooms] == [
            ("Bedroom 1", "Level 2"), ("Bedroom 2", "Level 2"), ("Bedroom", "Level 1"),
        ]
        assert result.assumptions == ["Scale assumed 1/4 inch"]
        assert result.missing_info == ["Ceiling heights"]
        assert result.warnings == ["Page 3 is blurry"]

    @pytest.mark.asyncio
    async def test_no_images(self, config):
        client = FakeChatClient(lambda *_: {"rooms": []})

        result = await analyze_images_for_rooms([], client, config)

        assert result.rooms == []
        assert result.warnings == ["No images provided for analysis"]
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_model_failure_degrades_to_warning(self, config):
        client = FakeChatClient(lambda *_: ModelCallError("vision model unavailable"))

        result = await analyze_images_for_rooms([fake_image()], client, config)

        assert result.rooms == []
        assert result.warnings[0].startswith("Vision analysis error: vision model unavailable")


class TestRunVisionFallback:

    @pytest.mark.asyncio
    async def test_renders_and_analyzes(self, config):
        client = FakeChatClient(lambda *_: {"rooms": [{"name": "Kitchen", "type": "kitchen", "confidence": 75}]})

        run = await run_vision_fallback(make_pdf([None, None]), 2, client, config)

        assert run.success
        assert run.rendered_pages == 2
        assert run.total_pages == 2
        assert [r.name for r in run.result.rooms] == ["Kitchen"]
        assert len(client.calls[0]['user_content']) == 3

    @pytest.mark.asyncio
    async def test_page_count_probed_when_unknown(self, config):
        client = FakeChatClient(lambda *_: {"rooms": []})

        run = await run_vision_fallback(make_pdf([None, None, None]), 0, client, config)

        assert run.total_pages == 3
        assert run.rendered_pages == 3

    @pytest.mark.asyncio
    async def test_nothing_rendered_skips_model(self, config):
        client = FakeChatClient(lambda *_: {"rooms": []})

        run = await run_vision_fallback(b"%PDF", 4, client, config, rasterizer=NoImageRasterizer())

        assert not run.success
        assert run.rendered_pages == 0
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_unknown_page_count_defaults(self, config):
        client = FakeChatClient(lambda *_: {"rooms": []})

        run = await run_vision_fallback(b"garbage", 0, client, config, rasterizer=NoImageRasterizer())

        assert run.total_pages == config.vision_default_page_count
