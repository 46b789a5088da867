"""
Call Event Sync - FastAPI Application Entry Point.

Keeps recruitment campaign records in sync with Retell AI call events:
- Call lifecycle tracking (started, ended, failed)
- Post-call analysis and candidate screening outcomes

Run with:
    uvicorn src.main:app --reload --port 8000
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.core.config import get_settings
from src.api.webhooks import router as webhook_router, test_router
from src.api.calls import router as calls_router


# ===========================================
# Logging Configuration
# ===========================================

def setup_logging():
    """Configure application logging."""
    settings = get_settings()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("hpack").setLevel(logging.WARNING)

    return logging.getLogger(__name__)


logger = setup_logging()


# ===========================================
# Application Lifespan
# ===========================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    logger.info("=" * 50)
    logger.info("Call Event Sync Starting Up")
    logger.info("=" * 50)
    logger.info(f"Environment: {'Development' if settings.DEBUG else 'Production'}")
    logger.info(f"Call store: {settings.CALL_STORE_BACKEND}")
    logger.info(f"Candidate outcome policy: {settings.CANDIDATE_OUTCOME_POLICY}")
    logger.info(f"Acknowledge on persistence error: {settings.ACKNOWLEDGE_ON_PERSISTENCE_ERROR}")

    if settings.CALL_STORE_BACKEND == "supabase" and (
        not settings.SUPABASE_URL or not settings.SUPABASE_KEY
    ):
        logger.warning("Supabase credentials not configured!")

    logger.info("Startup complete - ready to accept webhooks")

    yield

    logger.info("Call Event Sync shutting down...")


# ===========================================
# FastAPI Application
# ===========================================

def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Call Event Sync",
        description="""
        Retell AI call event ingestion for recruitment campaigns.

        ## Webhooks

        - `POST /webhook/retell` - Call started / ended / analyzed / failed events

        ## Calls

        - `POST /calls` - Register an outbound call
        - `GET /calls/{call_id}` - Call status
        - `POST /calls/campaigns/{campaign_id}/cancel-pending` - Cancel pending calls

        ## Testing

        - `POST /test/replay` - Replay a logged webhook body
        - `GET /test/health` - Health check
        """,
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhook_router)
    app.include_router(calls_router)
    app.include_router(test_router)

    return app


app = create_app()


# ===========================================
# Root Endpoint
# ===========================================

@app.get("/", tags=["root"])
async def root():
    """Root endpoint with API information."""
    return JSONResponse({
        "service": "Call Event Sync",
        "version": "1.0.0",
        "status": "running",
        "endpoints": {
            "webhooks": {
                "retell": "POST /webhook/retell"
            },
            "calls": {
                "register": "POST /calls",
                "status": "GET /calls/{call_id}",
                "cancel_pending": "POST /calls/campaigns/{campaign_id}/cancel-pending"
            },
            "testing": {
                "replay": "POST /test/replay",
                "health": "GET /test/health"
            },
            "docs": "GET /docs"
        }
    })


# ===========================================
# Error Handlers
# ===========================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc) if get_settings().DEBUG else "An error occurred"
        }
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
