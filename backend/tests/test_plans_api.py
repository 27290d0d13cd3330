"""
API tests for the plan parsing endpoints
The shared pipeline context is swapped for one backed by a scripted model client.
"""

import asyncio
import dataclasses

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routes.plans import get_pipeline_context
from services.pipeline_context import PipelineContext
from services.pdf_to_images import PdfRasterizer
from conftest import FakeChatClient, FLOOR_PLAN_1, call_kind, make_pdf


def floor_plan_responder(model, system_prompt, user_content):
    kind = call_kind(system_prompt, user_content)
    if kind == 'classify':
        return {"pages": [{"pageNumber": 1, "type": "floor_plan", "confidence": 95, "hasRoomLabels": True}]}
    return {"rooms": [
        {"name": "KITCHEN", "type": "kitchen", "confidence": 90},
        {"name": "LIVING ROOM", "type": "living", "confidence": 90},
    ]}


@pytest.fixture
def client_for(config):
    def _client(responder, **overrides) -> TestClient:
        context = PipelineContext(
            config=dataclasses.replace(config, **overrides),
            client=FakeChatClient(responder)
        )
        app.dependency_overrides[get_pipeline_context] = lambda: context
        return TestClient(app)

    yield _client
    app.dependency_overrides.clear()


def upload(data, filename="plan.pdf", content_type="application/pdf"):
    return {"file": (filename, data, content_type)}


def rendered_page_base64() -> str:
    image = PdfRasterizer().render_pages(make_pdf([None]), [1], scale=0.25)[0]
    return image.image_base64


class TestParseEndpoint:

    def test_parse_text_pdf(self, client_for):
        client = client_for(floor_plan_responder)

        response = client.post("/api/v1/plans/parse", files=upload(make_pdf([FLOOR_PLAN_1])))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["method"] == "per-sheet"
        assert body["roomCount"] == 2
        assert body["roomsByLevel"] == {"Level 1": 2}
        assert body["roomsByType"] == {"kitchen": 1, "living": 1}
        assert body["sheets"][0]["sheet_title"] == "FIRST FLOOR PLAN"
        assert body["processingTimeMs"] >= 0

    def test_oversized_upload_maps_to_413(self, client_for):
        client = client_for(floor_plan_responder, max_file_size_bytes=100)

        response = client.post("/api/v1/plans/parse", files=upload(make_pdf([FLOOR_PLAN_1])))

        assert response.status_code == 413
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "FILE_TOO_LARGE"
        assert "processingTimeMs" in body

    def test_unsupported_upload_maps_to_400(self, client_for):
        client = client_for(floor_plan_responder)

        response = client.post("/api/v1/plans/parse", files=upload(b"just some notes", "notes.txt", "text/plain"))

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    def test_request_timeout_maps_to_504(self, client_for):
        async def slow(*_):
            await asyncio.sleep(5)
            return {"pages": []}

        client = client_for(slow, request_timeout_seconds=0.1)

        response = client.post("/api/v1/plans/parse", files=upload(make_pdf([FLOOR_PLAN_1])))

        assert response.status_code == 504
        assert response.json()["code"] == "TIMEOUT"

    def test_unconfigured_service(self):
        app.dependency_overrides.clear()
        app.state.pipeline_context = None

        response = TestClient(app).post("/api/v1/plans/parse", files=upload(make_pdf([FLOOR_PLAN_1])))

        assert response.status_code == 503
        assert response.json()["code"] == "CONFIGURATION_ERROR"


class TestVisionFallbackEndpoint:

    def test_client_rendered_pages(self, client_for):
        client = client_for(lambda *_: {
            "rooms": [{"name": "Bedroom", "type": "bedroom", "level": "Level 2", "confidence": 80}],
            "missingInfo": ["Window sizes"],
        })

        response = client.post("/api/v1/plans/vision-fallback", json={
            "pages": [{"pageNumber": 2, "base64": rendered_page_base64()}]
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["rooms"][0]["level"] == "Level 2"
        assert body["missingInfo"] == ["Window sizes"]

    def test_too_many_pages_rejected(self, client_for):
        client = client_for(lambda *_: {"rooms": []})
        page = {"pageNumber": 1, "base64": "A" * 200}

        response = client.post("/api/v1/plans/vision-fallback", json={"pages": [page] * 6})

        assert response.status_code == 400
        assert response.json()["code"] == "BAD_REQUEST"

    def test_tiny_image_rejected(self, client_for):
        client = client_for(lambda *_: {"rooms": []})

        response = client.post("/api/v1/plans/vision-fallback", json={"pages": [{"pageNumber": 1, "base64": "abc"}]})

        assert response.status_code == 400

    def test_model_failure_degrades_to_warning(self, client_for):
        client = client_for(lambda *_: RuntimeError("vision offline"))

        response = client.post("/api/v1/plans/vision-fallback", json={
            "pages": [{"pageNumber": 1, "base64": rendered_page_base64()}]
        })

        assert response.status_code == 200
        assert response.json()["warnings"][0].startswith("Vision analysis error")


class TestExtractTextEndpoint:

    def test_text_layer(self, client_for):
        client = client_for(floor_plan_responder)

        response = client.post("/api/v1/plans/extract-text", files=upload(make_pdf([FLOOR_PLAN_1, "", FLOOR_PLAN_1])))

        assert response.status_code == 200
        body = response.json()
        assert body["pageCount"] == 3
        assert body["text"].count("KITCHEN") == 2

    def test_scanned_document_rejected(self, client_for):
        client = client_for(floor_plan_responder)

        response = client.post("/api/v1/plans/extract-text", files=upload(make_pdf([None])))

        assert response.status_code == 422
        assert response.json()["code"] == "SCANNED_PDF"


def test_health_endpoints():
    client = TestClient(app)

    assert client.get("/healthz").json()["status"] == "ok"
    assert client.get("/health").json()["status"] == "healthy"
