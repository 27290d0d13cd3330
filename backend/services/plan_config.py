"""
Plan Parsing Configuration - model settings and pipeline limits
Centralized configuration for the classifier, extraction and vision calls
"""

import os
from typing import Dict, Any
from dataclasses import dataclass, field

from core.environment import get_env_int, get_env_float
from services.error_types import ConfigurationError


@dataclass
class ModelConfig:
    """Configuration for a single chat model call"""
    name: str
    max_tokens: int
    temperature: float = 0.1
    json_mode: bool = True
    image_detail: str = "high"
    timeout_seconds: int = 60

    def get_api_params(self) -> Dict[str, Any]:
        """Get API parameters for this model"""
        params = {
            "model": self.name,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if self.json_mode:
            params["response_format"] = {"type": "json_object"}
        return params


@dataclass
class PlanParseConfig:
    """Central configuration for plan parsing"""

    # API configuration
    openai_api_key: str = field(default_factory=lambda: os.getenv("OPENAI_API_KEY", ""))

    classifier_model: ModelConfig = field(default_factory=lambda: ModelConfig(
        name=os.getenv("PLAN_CLASSIFIER_MODEL", "gpt-4o-mini"),
        max_tokens=4000,
        temperature=0.2,
        timeout_seconds=60
    ))
    extraction_model: ModelConfig = field(default_factory=lambda: ModelConfig(
        name=os.getenv("PLAN_EXTRACTION_MODEL", "gpt-4o"),
        max_tokens=4000,
        temperature=0.1,
        timeout_seconds=60
    ))
    vision_model: ModelConfig = field(default_factory=lambda: ModelConfig(
        name=os.getenv("PLAN_VISION_MODEL", "gpt-4o"),
        max_tokens=4000,
        temperature=0.3,
        timeout_seconds=90
    ))

    # Input limits
    max_file_size_bytes: int = field(default_factory=lambda: get_env_int("MAX_FILE_SIZE_MB", 10) * 1024 * 1024)

    # Type detection thresholds (fraction of pages with text)
    text_ratio_threshold: float = 0.8
    scanned_ratio_threshold: float = 0.2

    # Classification sampling
    max_classification_pages: int = 20
    max_chars_per_page: int = 1500
    max_total_classification_chars: int = 50000
    classifier_page_chars: int = 1200

    # Sheet grouping
    min_sheet_confidence: float = 0.5

    # Per-sheet extraction
    max_concurrent_sheets: int = field(default_factory=lambda: get_env_int("MAX_CONCURRENT_SHEETS", 4))
    sheet_timeout_seconds: float = field(default_factory=lambda: get_env_float("SHEET_TIMEOUT_SECONDS", 60.0))
    min_sheet_text_chars: int = 20
    max_sheet_text_chars: int = 20000

    # Legacy fallback
    legacy_max_pages: int = 5
    legacy_max_chars: int = 40000

    # Vision fallback
    max_vision_pages: int = 5
    vision_render_scale: float = 1.5
    vision_reduced_scale: float = 0.75
    vision_default_page_count: int = 3
    max_image_base64_bytes: int = 4 * 1024 * 1024
    min_image_base64_chars: int = 100

    # Whole-request wall-clock budget, enforced by the caller
    request_timeout_seconds: float = field(default_factory=lambda: get_env_float("REQUEST_TIMEOUT_SECONDS", 120.0))

    def validate(self) -> None:
        """Validate configuration"""
        if not self.openai_api_key or not self.openai_api_key.strip():
            raise ConfigurationError("OPENAI_API_KEY not configured")
        if self.max_concurrent_sheets < 1:
            raise ConfigurationError(
                "MAX_CONCURRENT_SHEETS must be at least 1",
                {'value': self.max_concurrent_sheets}
            )
        if not 0 <= self.scanned_ratio_threshold < self.text_ratio_threshold <= 1:
            raise ConfigurationError("Type detection thresholds are out of order")
