#!/usr/bin/env python3
"""
Process a blueprint PDF (or plan image) from disk and extract room data
"""

import os
import sys
import json
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, Optional

# Add this directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from core.environment import load_environment
from models.enums import DEFAULT_LEVEL
from services.blueprint_pipeline import BlueprintPipeline
from services.error_types import PlanFileNotFoundError, PlanParseError, PipelineTimeoutError
from services.pipeline_context import PipelineContext, build_pipeline_context

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def print_summary(filename: str, result: Dict[str, Any]) -> None:
    print("\n=== PLAN PARSING RESULTS ===")
    print(f"File: {filename}")
    print(f"Method: {result['method']} ({result['pdfType']})")
    print(f"Pages: {result['totalPages']} ({result['pagesWithText']} with text)")
    print(f"Sheets: {result['sheetsDetected']}")
    print(f"Rooms Found: {result['roomCount']}")

    for level, count in result['roomsByLevel'].items():
        print(f"\n--- {level} ({count} rooms) ---")
        for room in result['rooms']:
            if room.get('level', DEFAULT_LEVEL) != level:
                continue
            details = []
            if room.get('type'):
                details.append(room['type'])
            if room.get('area_sqft'):
                details.append(f"{room['area_sqft']:.0f} sq ft")
            if room.get('dimensions'):
                details.append(room['dimensions'])
            suffix = f" ({', '.join(details)})" if details else ""
            print(f"  - {room['name']}{suffix}")

    for warning in result.get('warnings', []):
        print(f"WARNING: {warning}")


async def process_blueprint(
    path: str,
    output_path: Optional[str] = None,
    context: Optional[PipelineContext] = None
) -> Dict[str, Any]:
    """Run the pipeline on a file and write the JSON response next to it (or to output_path)"""
    if not os.path.exists(path):
        logger.error(f"File not found: {path}")
        return BlueprintPipeline.build_error(PlanFileNotFoundError(f"File not found: {path}", {'path': path})).to_response()

    context = context or build_pipeline_context()
    pipeline = BlueprintPipeline(context)
    filename = os.path.basename(path)
    data = Path(path).read_bytes()

    logger.info(f"Processing blueprint: {path}")
    timeout = context.config.request_timeout_seconds
    try:
        result = await asyncio.wait_for(pipeline.run(data, filename), timeout=timeout)
    except asyncio.TimeoutError:
        result = BlueprintPipeline.build_error(PipelineTimeoutError(f"Plan parsing exceeded {timeout:.0f}s"))

    response = result.to_response()
    output_path = output_path or str(Path(path).with_suffix('')) + '_rooms.json'
    with open(output_path, 'w') as f:
        json.dump(response, f, indent=2, default=str)
    logger.info(f"Saved parsed data to: {output_path}")

    if response['success']:
        print_summary(filename, response)
    return response


def main():
    """Main entry point"""
    if len(sys.argv) < 2:
        print("Usage: process_blueprint.py <plan.pdf> [output.json]")
        sys.exit(2)

    path = sys.argv[1]
    output_path = sys.argv[2] if len(sys.argv) > 2 else None

    load_environment()
    try:
        result = asyncio.run(process_blueprint(path, output_path))
    except PlanParseError as e:
        logger.error(f"Cannot start: {e}")
        sys.exit(1)

    if result['success']:
        print("\nPlan processing completed successfully!")
    else:
        print(f"\nPlan processing failed: {result['code']} - {result['message']}")
        sys.exit(1)


if __name__ == "__main__":
    main()
