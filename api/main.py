"""
RepairCheck API — Main Application

POST /analyze/document — Apology quality report (+ optional AI second opinion)
POST /analyze/safety   — Safety risk report (+ optional AI second opinion)
POST /analyze/batch    — Deterministic analysis of up to 50 texts
GET  /lexicon          — Lexicon categories, sizes and weights
GET  /resources        — Crisis resource directory
GET  /health           — Health check
"""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from repaircheck import lexicon
from repaircheck.cache import review_cache
from repaircheck.config import settings
from repaircheck.document_core import document_core
from repaircheck.lexicon import CORE_VERSION
from repaircheck.llm import LLMProvider
from repaircheck.llm.factory import get_provider
from repaircheck.logging import get_logger, setup_logging
from repaircheck.rate_limit import check_rate_limit, cleanup_stale_windows
from repaircheck.recommendations import CRISIS_RESOURCE_THRESHOLD, CRISIS_RESOURCES
from repaircheck.reviewer import review_document, review_safety
from repaircheck.safety_core import safety_core
from repaircheck.schemas.analysis import (
    AnalyzeRequest,
    BatchRequest,
    BatchResponse,
    HealthResponse,
    QualityReportResponse,
    ResourcesResponse,
    SafetyReportResponse,
)

logger = get_logger("api")


# ============================================================
# STARTUP / SHUTDOWN
# ============================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(
        "RepairCheck API starting",
        extra={"model": settings.GEMINI_MODEL if _ai_available() else None},
    )
    yield
    logger.info("RepairCheck API shutting down")


app = FastAPI(
    title="RepairCheck API",
    description="Apology quality and relationship safety analysis for the REPAIR Protocol",
    version=f"{settings.APP_VERSION} (lexicon {CORE_VERSION})",
    lifespan=lifespan,
)

# CORS: set REPAIRCHECK_CORS_ORIGINS in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",")],
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    allow_credentials=False,
)


# ============================================================
# GLOBAL ERROR HANDLER
# ============================================================

@app.exception_handler(Exception)
async def global_error_handler(request: Request, exc: Exception):
    """Catch unhandled exceptions — return structured error, don't leak internals."""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}",
        extra={
            "error": str(exc),
            "error_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error. The analysis could not be completed."},
    )


# Lazy LLM provider
_llm: Optional[LLMProvider] = None


def _get_llm() -> LLMProvider:
    global _llm
    if _llm is None:
        _llm = get_provider(settings.LLM_PROVIDER)
    return _llm


def _ai_available() -> bool:
    return bool(settings.GEMINI_API_KEY) and bool(settings.FEATURES)


def _client_key(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


# ============================================================
# ROUTES
# ============================================================

@app.post("/analyze/document", response_model=QualityReportResponse)
async def analyze_document(body: AnalyzeRequest, request: Request):
    """Score an apology document for sentiment, sincerity, empathy and completeness."""
    check_rate_limit(_client_key(request))
    llm = _get_llm() if body.enrich else None
    return await review_document(body.text, llm=llm)


@app.post("/analyze/safety", response_model=SafetyReportResponse)
async def analyze_safety(body: AnalyzeRequest, request: Request):
    """Assess a relationship narrative for abuse patterns and safety risk."""
    check_rate_limit(_client_key(request))
    llm = _get_llm() if body.enrich else None
    return await review_safety(body.text, llm=llm)


@app.post("/analyze/batch", response_model=BatchResponse)
async def analyze_batch(body: BatchRequest, request: Request):
    """Run the deterministic engines over several texts. No AI review."""
    check_rate_limit(_client_key(request))
    start = time.time()

    results = []
    for item in body.items:
        core = safety_core if item.engine == "safety" else document_core
        report = core.analyze(item.text)
        results.append({"engine": item.engine, "report": report.to_dict()})

    analyzed = sum(1 for r in results if r["report"]["error"] is None)
    duration = round((time.time() - start) * 1000, 1)
    logger.info(
        f"Batch complete: {analyzed}/{len(body.items)} analyzed",
        extra={"duration_ms": duration},
    )
    return {"results": results, "total": len(body.items), "analyzed": analyzed}


@app.get("/lexicon")
async def get_lexicon():
    """Expose the detection surface: categories, sizes, weights, severities."""
    return lexicon.describe()


@app.get("/resources", response_model=ResourcesResponse)
async def get_resources():
    """The crisis directory attached to safety reports scoring >= 60."""
    return {
        "threshold": CRISIS_RESOURCE_THRESHOLD,
        "resources": [r.to_dict() for r in CRISIS_RESOURCES],
    }


@app.get("/health", response_model=HealthResponse)
async def health():
    """Health check."""
    cleanup_stale_windows()
    return {
        "status": "operational",
        "version": settings.APP_VERSION,
        "core_version": CORE_VERSION,
        "llm_provider": settings.LLM_PROVIDER,
        "ai_review_available": _ai_available(),
        "features": sorted(settings.FEATURES),
        "review_cache": review_cache.stats,
    }


# --- Security + Version Headers Middleware ---
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security and version headers to all responses."""
    response = await call_next(request)
    response.headers["X-RepairCheck-Version"] = settings.APP_VERSION
    response.headers["X-Lexicon-Version"] = CORE_VERSION
    response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains; preload"
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Cache-Control"] = "no-store"
    return response


# --- Body Size Limit Middleware ---
_MAX_BODY_BYTES = 1_048_576  # 1 MB


@app.middleware("http")
async def enforce_body_size_limit(request: Request, call_next):
    """Reject requests exceeding 1MB — guards both Content-Length and chunked bodies."""
    content_length = request.headers.get("content-length")
    if content_length:
        try:
            if int(content_length) > _MAX_BODY_BYTES:
                return JSONResponse(
                    status_code=413,
                    content={"detail": "Request body too large."},
                )
        except ValueError:
            pass  # Malformed content-length; let the framework handle it

    if request.method in ("POST", "PUT", "PATCH"):
        body = await request.body()
        if len(body) > _MAX_BODY_BYTES:
            return JSONResponse(
                status_code=413,
                content={"detail": "Request body too large."},
            )

    return await call_next(request)


# --- Request Logging Middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log every API request with method, path, status, duration. Never the body."""
    path = request.url.path
    if path == "/health":
        return await call_next(request)

    start = time.time()
    response = await call_next(request)
    duration_ms = round((time.time() - start) * 1000, 1)

    logger.info(
        f"{request.method} {path} → {response.status_code} ({duration_ms}ms)",
        extra={
            "method": request.method,
            "path": path,
            "status_code": response.status_code,
            "duration_ms": duration_ms,
        },
    )
    return response


def serve():
    """Console entry point: run the API with uvicorn on HOST:PORT."""
    import uvicorn
    uvicorn.run("api.main:app", host=settings.HOST, port=settings.PORT)
