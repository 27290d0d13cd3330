import asyncio
import logging

from fastapi import APIRouter, UploadFile, File, Depends, Request
from fastapi.responses import JSONResponse

from models.schemas import TextExtractionResponse, VisionFallbackRequest, VisionFallbackResponse
from services.blueprint_pipeline import BlueprintPipeline
from services.error_types import ConfigurationError, PipelineTimeoutError
from services.pdf_text_extractor import extract_text_only
from services.pipeline_context import PipelineContext
from utils.logging_utils import Timer, log_with_context

logger = logging.getLogger(__name__)
router = APIRouter()


def get_pipeline_context(request: Request) -> PipelineContext:
    """Process-wide context built at startup"""
    context = getattr(request.app.state, "pipeline_context", None)
    if context is None:
        raise ConfigurationError("Plan parsing is not configured (check OPENAI_API_KEY)")
    return context


def get_pipeline(context: PipelineContext = Depends(get_pipeline_context)) -> BlueprintPipeline:
    return BlueprintPipeline(context)


@router.post("/parse")
async def parse_plan(
    file: UploadFile = File(...),
    pipeline: BlueprintPipeline = Depends(get_pipeline)
):
    """
    Extract rooms from an uploaded plan (PDF or image).

    Returns the pipeline result, or a structured error with the mapped status code.
    """
    data = await file.read()
    filename = file.filename or "upload"
    log_with_context("info", f"Parsing plan {filename}", {'size_bytes': len(data), 'content_type': file.content_type}, logger)

    timeout = pipeline.config.request_timeout_seconds
    with Timer(f"Request for {filename}", logger) as timer:
        try:
            result = await asyncio.wait_for(
                pipeline.run(data, filename, file.content_type),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            logger.error(f"Plan parse for {filename} exceeded {timeout:.0f}s budget")
            error = BlueprintPipeline.build_error(
                PipelineTimeoutError(f"Plan parsing exceeded {timeout:.0f}s", {'filename': filename}),
                timer.elapsed_ms
            )
            return JSONResponse(status_code=error.status_code, content=error.to_response())

    status_code = 200 if result.success else result.status_code
    return JSONResponse(status_code=status_code, content=result.to_response())


@router.post("/vision-fallback", response_model=VisionFallbackResponse)
async def vision_fallback(
    body: VisionFallbackRequest,
    pipeline: BlueprintPipeline = Depends(get_pipeline)
):
    """Room extraction from 1-5 pages the client rendered to base64 PNG"""
    logger.info(f"Vision fallback for pages {[page.page_number for page in body.pages]}")
    timeout = pipeline.config.request_timeout_seconds
    try:
        result = await asyncio.wait_for(pipeline.analyze_client_pages(body.pages), timeout=timeout)
    except asyncio.TimeoutError:
        raise PipelineTimeoutError(f"Vision analysis exceeded {timeout:.0f}s")
    return VisionFallbackResponse(
        rooms=result.rooms,
        assumptions=result.assumptions,
        warnings=result.warnings,
        missing_info=result.missing_info
    )


@router.post("/extract-text", response_model=TextExtractionResponse)
async def extract_text(
    file: UploadFile = File(...),
    context: PipelineContext = Depends(get_pipeline_context)
):
    """Text-layer extraction only; scanned documents are rejected"""
    data = await file.read()
    extraction = await asyncio.to_thread(
        extract_text_only, data, context.config.max_file_size_bytes, context.text_strategies
    )
    text = "\n\n".join(page.text for page in extraction.pages if page.text.strip())
    return TextExtractionResponse(text=text, page_count=extraction.total_pages)
