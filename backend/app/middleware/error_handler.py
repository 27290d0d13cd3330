from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import traceback
import logging
from typing import Dict, Any

from app.config import DEBUG
from services.error_types import PlanParseError

logger = logging.getLogger(__name__)


def create_error_response(error_code: str, message: str, details: Dict[str, Any] = None) -> Dict[str, Any]:
    """Create structured error response"""
    return {
        "success": False,
        "code": error_code,
        "message": message,
        "details": details or {},
    }


async def plan_parse_exception_handler(request: Request, exc: PlanParseError):
    logger.warning(f"{request.method} {request.url.path} failed with {exc.error_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.error_code, exc.message, exc.details)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        field_path = " -> ".join(str(x) for x in error['loc'])
        errors.append(f"{field_path}: {error['msg']}")
    return JSONResponse(
        status_code=400,
        content=create_error_response("BAD_REQUEST", "Invalid request", {'errors': errors})
    )


async def traceback_exception_handler(request: Request, exc: Exception):
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    logger.error(tb)

    message = tb if DEBUG else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=create_error_response("UNEXPECTED_ERROR", message)
    )


def register_error_handlers(app) -> None:
    app.add_exception_handler(PlanParseError, plan_parse_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, traceback_exception_handler)
