"""
Pipeline Context - collaborators shared by every plan parsing request
Built once per process (app startup or CLI run) and passed in explicitly;
it holds no per-request state.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from services.ai_client import ChatModelClient
from services.pdf_text_extractor import TextExtractionStrategy, default_text_strategies
from services.pdf_to_images import PdfRasterizer
from services.plan_config import PlanParseConfig

logger = logging.getLogger(__name__)


@dataclass
class PipelineContext:
    config: PlanParseConfig
    client: ChatModelClient
    text_strategies: List[TextExtractionStrategy] = field(default_factory=default_text_strategies)
    rasterizer: Optional[PdfRasterizer] = None

    def __post_init__(self):
        if self.rasterizer is None:
            self.rasterizer = PdfRasterizer(
                max_base64_bytes=self.config.max_image_base64_bytes,
                reduced_scale=self.config.vision_reduced_scale,
                min_base64_chars=self.config.min_image_base64_chars
            )


def build_pipeline_context(config: Optional[PlanParseConfig] = None) -> PipelineContext:
    """
    Construct the production context from environment configuration

    Raises:
        ConfigurationError: If the configuration is invalid (e.g. no API key)
    """
    config = config or PlanParseConfig()
    config.validate()
    client = ChatModelClient(api_key=config.openai_api_key)
    logger.info(
        f"Pipeline context ready (classifier={config.classifier_model.name}, "
        f"extraction={config.extraction_model.name}, vision={config.vision_model.name}, "
        f"max_concurrent_sheets={config.max_concurrent_sheets})"
    )
    return PipelineContext(config=config, client=client)
