"""
Strict JSON Parser - Helper for parsing model responses
Accepts raw JSON or a single markdown-fenced JSON block; anything else is an error
"""

import json
import re
import logging
from typing import Any

from services.error_types import UnparseableModelOutputError

logger = logging.getLogger(__name__)

# ```json ... ``` or ``` ... ``` wrapping an object or array
JSON_FENCE_PATTERN = re.compile(r'```(?:json)?\s*([\[{].*?[\]}])\s*```', re.DOTALL | re.IGNORECASE)


def parse_model_json(content: str) -> Any:
    """
    Extract JSON from response content, handling markdown fences

    Args:
        content: Raw completion text

    Returns:
        Parsed JSON value (usually a dict)

    Raises:
        UnparseableModelOutputError: If neither a strict parse nor a fenced block parses
    """
    if not content or not content.strip():
        raise UnparseableModelOutputError("Model returned empty content")

    # Try direct JSON parsing first
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        pass

    match = JSON_FENCE_PATTERN.search(content)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError as e:
            logger.debug(f"Failed to parse JSON from markdown fence: {e}")

    logger.warning(f"Could not extract valid JSON from response (first 200 chars): {content[:200]}")
    raise UnparseableModelOutputError(
        "Model output is not valid JSON",
        {'preview': content[:200]}
    )
