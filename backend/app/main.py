"""
Packaging Materials Advisor API v1.0
FastAPI backend: catalog scoring, LLM deep research, and graded
recommendations for sustainable packaging materials.
"""
import sys
import time
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from dotenv import load_dotenv

from app.api.deps import get_config
from app.services.logging_config import setup_logging
from app.services.middleware import RequestTimingMiddleware
from app.services.perf_monitor import tracker as perf_tracker

# Load .env file in dev (no-op when the file is missing)
load_dotenv()

config = get_config()
setup_logging(level=config.log_level, json_output=config.json_logs)
logger = logging.getLogger("packmat-api")

# Record process start time for uptime calculation
_PROCESS_START = time.monotonic()

# Startup report: missing credentials only disable the LLM-backed paths
for name, llm in [
    ("research", config.research_llm),
    ("synthesis", config.synthesis_llm),
    ("analysis", config.analysis_llm),
]:
    if llm.configured:
        logger.info(f"{name} LLM: {llm.model}")
    else:
        logger.warning(f"{name} LLM has no credential — running with deterministic fallbacks")


app = FastAPI(
    title="Packaging Materials Advisor API",
    version="1.0.0",
    description="Sustainable packaging material search and recommendation",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response."""
    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Accept", "X-Requested-With", "X-Request-ID"],
)
app.add_middleware(SecurityHeadersMiddleware)
# Request timing + X-Request-ID must be outermost so it wraps all other middleware
app.add_middleware(RequestTimingMiddleware)

# Routers
from app.api.materials_routes import router as materials_router
from app.api.analysis_routes import router as analysis_router

app.include_router(materials_router)
app.include_router(analysis_router)


@app.get("/health")
async def health_check():
    return {
        "status": "active",
        "version": "1.0.0",
        "research_llm_configured": config.research_llm.configured,
        "synthesis_llm_configured": config.synthesis_llm.configured,
        "analysis_llm_configured": config.analysis_llm.configured,
    }


@app.get("/metrics")
async def metrics():
    """
    Performance metrics endpoint.

    Pipeline throughput, average duration, per-stage timings and error
    counts, sourced from the in-process PerformanceTracker singleton.
    """
    uptime_seconds = round(time.monotonic() - _PROCESS_START, 1)

    memory_mb = 0.0
    try:
        import resource  # Unix only
        usage = resource.getrusage(resource.RUSAGE_SELF)
        # ru_maxrss is in kilobytes on Linux, bytes on macOS
        if sys.platform == "darwin":
            memory_mb = round(usage.ru_maxrss / (1024 * 1024), 2)
        else:
            memory_mb = round(usage.ru_maxrss / 1024, 2)
    except ImportError:
        memory_mb = 0.0

    snapshot = perf_tracker.get_metrics()
    return {
        "uptime_seconds": uptime_seconds,
        "memory_usage_mb": memory_mb,
        **snapshot,
    }
