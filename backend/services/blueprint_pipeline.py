"""
Blueprint Pipeline - Orchestrates the room extraction workflow
Coordinates text extraction, type detection, classification, per-sheet
extraction and the vision / legacy fallbacks for a single document
"""

import asyncio
import logging
from typing import List, Optional, Union

from models.enums import ExtractionMethod, PdfType
from models.schemas import (
    EnrichedClassification,
    PipelineError,
    PipelineResult,
    SheetResult,
    VisionPageInput,
    VisionResult,
)
from services.error_types import (
    InvalidInputError,
    PageRenderError,
    PlanParseError,
    categorize_exception,
    log_error_with_context,
)
from services.legacy_extractor import extract_rooms_legacy
from services.level_detection import enrich_classifications_with_level
from services.page_classifier import classify_pages
from services.page_sampler import prepare_pages_for_classification, sample_pages_for_classification
from services.pdf_text_extractor import PdfExtractionResult, check_file_size, extract_pdf_pages_with_text
from services.pdf_to_images import PageImage, image_bytes_to_page_image
from services.pdf_type_detector import PdfTypeResult, detect_pdf_type
from services.pipeline_context import PipelineContext
from services.room_aggregator import group_rooms_by_level, group_rooms_by_type
from services.room_extractor import extract_rooms_per_sheet
from services.sheet_grouper import group_sheets
from services.vision_fallback import analyze_images_for_rooms, run_vision_fallback
from utils.logging_utils import Timer, log_stage, log_performance_metric

logger = logging.getLogger(__name__)

IMAGE_SIGNATURES = (
    (b'\x89PNG\r\n\x1a\n', 'image/png'),
    (b'\xff\xd8\xff', 'image/jpeg'),
    (b'GIF87a', 'image/gif'),
    (b'GIF89a', 'image/gif'),
)
IMAGE_CONTENT_TYPES = {'image/png', 'image/jpeg', 'image/jpg', 'image/gif', 'image/webp'}


def detect_upload_kind(data: bytes, filename: str = "", content_type: Optional[str] = None) -> str:
    """'pdf' or 'image', from magic bytes first, then content type and extension"""
    head = data[:16]
    if head.startswith(b'%PDF'):
        return 'pdf'
    if any(head.startswith(signature) for signature, _ in IMAGE_SIGNATURES):
        return 'image'
    if head[:4] == b'RIFF' and head[8:12] == b'WEBP':
        return 'image'

    content_type = (content_type or "").lower()
    name = (filename or "").lower()
    if content_type == 'application/pdf' or name.endswith('.pdf'):
        return 'pdf'
    if content_type in IMAGE_CONTENT_TYPES:
        return 'image'
    raise InvalidInputError(
        "Unsupported file type. Upload a PDF or an image of the plan.",
        {'filename': filename, 'content_type': content_type}
    )


class BlueprintPipeline:
    """
    Orchestrates the complete room extraction pipeline for one document.
    Holds only the injected context; every call is independent.
    """

    def __init__(self, context: PipelineContext):
        self.context = context
        self.config = context.config
        self.client = context.client

    async def run(
        self,
        data: bytes,
        filename: str = "",
        content_type: Optional[str] = None
    ) -> Union[PipelineResult, PipelineError]:
        """
        Process a document and return a result or a structured error.

        Never raises for pipeline failures; both outcomes carry processing_time_ms.
        """
        with Timer(f"Plan parse for {filename or 'upload'}", logger) as timer:
            try:
                result = await self.process(data, filename, content_type)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                error = categorize_exception(e)
                log_error_with_context(error, {'document': filename, 'size_bytes': len(data or b'')})
                if not isinstance(e, PlanParseError):
                    logger.exception(f"Unexpected failure parsing {filename}")
                return self.build_error(error, timer.elapsed_ms)

        result.processing_time_ms = timer.elapsed_ms
        log_performance_metric("plan_parse_duration", result.processing_time_ms, tags={
            'method': result.method.value,
            'pdf_type': result.pdf_type.value,
        })
        return result

    @staticmethod
    def build_error(error: PlanParseError, processing_time_ms: int = 0) -> PipelineError:
        method = ExtractionMethod.vision if isinstance(error, PageRenderError) else None
        return PipelineError(
            code=error.error_code,
            message=error.message,
            method=method,
            details=error.details,
            status_code=error.status_code,
            processing_time_ms=processing_time_ms
        )

    async def process(self, data: bytes, filename: str = "", content_type: Optional[str] = None) -> PipelineResult:
        """
        Raising variant of run()

        Raises:
            PlanParseError: For every terminal failure
        """
        check_file_size(data, self.config.max_file_size_bytes)

        if detect_upload_kind(data, filename, content_type) == 'image':
            return await self._process_image(data, filename)
        return await self._process_pdf(data, filename)

    async def _process_pdf(self, data: bytes, filename: str) -> PipelineResult:
        with log_stage("text_extraction", {'document': filename, 'size_bytes': len(data)}, logger) as stage:
            extraction = await asyncio.to_thread(
                extract_pdf_pages_with_text, data, self.context.text_strategies
            )
            stage['strategy'] = extraction.strategy
            stage['pages_with_text'] = f"{extraction.pages_with_text}/{extraction.total_pages}"

        pdf_type = detect_pdf_type(
            extraction,
            file_size_bytes=len(data),
            text_threshold=self.config.text_ratio_threshold,
            scanned_threshold=self.config.scanned_ratio_threshold
        )

        if pdf_type.type == PdfType.scanned:
            return await self._process_scanned(data, extraction, pdf_type)
        return await self._process_text(extraction, pdf_type, filename)

    async def _process_scanned(
        self,
        data: bytes,
        extraction: PdfExtractionResult,
        pdf_type: PdfTypeResult
    ) -> PipelineResult:
        logger.info(f"Scanned document ({pdf_type.reason}), using vision analysis")
        with log_stage("vision_fallback", {'total_pages': extraction.total_pages}, logger) as stage:
            run = await run_vision_fallback(
                data, extraction.total_pages, self.client, self.config, self.context.rasterizer
            )
            stage['rendered_pages'] = run.rendered_pages

        if not run.success:
            raise PageRenderError(
                "Could not render pages for vision analysis",
                {'total_pages': run.total_pages}
            )

        return self._vision_result(
            run.result,
            pdf_type=PdfType.scanned,
            total_pages=run.total_pages,
            pages_with_text=extraction.pages_with_text,
            rendered_pages=run.rendered_pages
        )

    async def _process_image(self, data: bytes, filename: str) -> PipelineResult:
        try:
            image = await asyncio.to_thread(image_bytes_to_page_image, data)
        except Exception as e:
            raise InvalidInputError(f"Could not read image upload: {e}", {'filename': filename})

        with log_stage("vision_image_analysis", {'document': filename}, logger) as stage:
            result = await analyze_images_for_rooms([image], self.client, self.config)
            stage['rooms'] = len(result.rooms)

        return self._vision_result(result, pdf_type=PdfType.scanned, total_pages=1, pages_with_text=0, rendered_pages=1)

    async def _process_text(
        self,
        extraction: PdfExtractionResult,
        pdf_type: PdfTypeResult,
        filename: str
    ) -> PipelineResult:
        sampled = sample_pages_for_classification(extraction.pages, self.config.max_classification_pages)
        prepared = prepare_pages_for_classification(
            sampled,
            max_total_chars=self.config.max_total_classification_chars,
            max_chars_per_page=self.config.max_chars_per_page
        )

        with log_stage("page_classification", {'document': filename, 'pages': len(prepared)}, logger):
            classifications = await classify_pages(prepared, self.client, self.config)

        enriched = enrich_classifications_with_level(classifications, extraction.pages)
        sheets = group_sheets(enriched, min_confidence=self.config.min_sheet_confidence)

        if not sheets:
            logger.info("No floor plan sheets detected, using legacy extraction")
            with log_stage("legacy_extraction", {'document': filename}, logger) as stage:
                legacy = await extract_rooms_legacy(extraction.pages, self.client, self.config)
                stage['rooms'] = len(legacy.rooms)
            return self._assemble(
                method=ExtractionMethod.legacy_fallback,
                pdf_type=pdf_type,
                sheets=[],
                rooms_source=legacy,
                classifications=enriched
            )

        with log_stage("per_sheet_extraction", {'document': filename, 'sheets': len(sheets)}, logger) as stage:
            batch = await extract_rooms_per_sheet(sheets, extraction.pages, self.client, self.config)
            stage['rooms'] = len(batch.rooms)
            stage['failed_sheets'] = sum(1 for result in batch.sheet_results if result.error)

        return self._assemble(
            method=ExtractionMethod.per_sheet,
            pdf_type=pdf_type,
            sheets=batch.sheet_results,
            rooms_source=VisionResult(
                rooms=batch.rooms,
                assumptions=batch.assumptions,
                warnings=batch.warnings,
                missing_info=batch.missing_info
            ),
            classifications=enriched
        )

    def _assemble(
        self,
        method: ExtractionMethod,
        pdf_type: PdfTypeResult,
        sheets: List[SheetResult],
        rooms_source: VisionResult,
        classifications: List[EnrichedClassification]
    ) -> PipelineResult:
        rooms = rooms_source.rooms
        return PipelineResult(
            method=method,
            pdf_type=pdf_type.type,
            total_pages=pdf_type.total_pages,
            pages_with_text=pdf_type.pages_with_text,
            sheets=sheets,
            rooms=rooms,
            rooms_by_level=group_rooms_by_level(rooms),
            rooms_by_type=group_rooms_by_type(rooms),
            page_classifications=classifications,
            assumptions=rooms_source.assumptions,
            warnings=rooms_source.warnings,
            missing_info=rooms_source.missing_info
        )

    def _vision_result(
        self,
        result: VisionResult,
        pdf_type: PdfType,
        total_pages: int,
        pages_with_text: int,
        rendered_pages: int
    ) -> PipelineResult:
        return PipelineResult(
            method=ExtractionMethod.vision,
            pdf_type=pdf_type,
            total_pages=total_pages,
            pages_with_text=pages_with_text,
            rendered_pages=rendered_pages,
            rooms=result.rooms,
            rooms_by_level=group_rooms_by_level(result.rooms),
            rooms_by_type=group_rooms_by_type(result.rooms),
            assumptions=result.assumptions,
            warnings=result.warnings,
            missing_info=result.missing_info
        )

    async def analyze_client_pages(self, pages: List[VisionPageInput]) -> VisionResult:
        """Vision analysis over pages the client already rendered to base64 PNG"""
        images = [
            PageImage(page_number=page.page_number, image_base64=page.base64, width_px=0, height_px=0, scale=1.0)
            for page in pages
        ]
        return await analyze_images_for_rooms(images, self.client, self.config)
