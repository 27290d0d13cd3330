import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from datetime import datetime, timezone

from core.environment import load_environment
from app.config import ALLOWED_ORIGINS, API_PREFIX, setup_logging
from app.middleware.error_handler import register_error_handlers
from app.routes import plans
from services.error_types import ConfigurationError
from services.pipeline_context import build_pipeline_context

load_environment()
setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Plan Parse API",
    version="1.0.0",
    description="Room extraction from construction blueprints"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)

register_error_handlers(app)

# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = datetime.now(timezone.utc)
    response = await call_next(request)
    elapsed_ms = int((datetime.now(timezone.utc) - started).total_seconds() * 1000)
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms}ms)")
    return response

@app.on_event("startup")
async def startup_event():
    """Build the shared pipeline context (model client, config) once per process"""
    try:
        app.state.pipeline_context = build_pipeline_context()
    except ConfigurationError as e:
        app.state.pipeline_context = None
        logger.error(f"Plan parsing disabled: {e}")

app.include_router(plans.router, prefix=API_PREFIX)

@app.get("/")
async def root():
    return {"message": "Plan Parse API is running"}

@app.get("/health")
async def health():
    configured = getattr(app.state, "pipeline_context", None) is not None
    return {"status": "healthy", "configured": configured}

@app.get("/healthz")
async def healthz():
    """Liveness probe"""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": "plan-parse-api"
    }
