"""
Proposal Engine - FastAPI application.

Run with:
    uvicorn proposal_engine.main:app --port 8000
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from proposal_engine import __version__
from proposal_engine.api.proposals import router as proposals_router
from proposal_engine.core.config import get_settings
from proposal_engine.core.database import db_service
from proposal_engine.core.logging import setup_logging

logger = setup_logging()


# ===========================================
# Application Lifespan
# ===========================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    settings = get_settings()
    logger.info(
        f"Proposal Engine {__version__} starting "
        f"(templates: {settings.TEMPLATES_DIR}, output: {settings.OUTPUT_DIR})"
    )

    if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
        logger.warning("Supabase credentials not configured, proposal records will fail")

    if not settings.templates_path.is_dir():
        logger.warning(f"Templates directory not found: {settings.TEMPLATES_DIR}")

    yield

    logger.info("Proposal Engine shutting down")


# ===========================================
# FastAPI Application
# ===========================================

def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title="Proposal Engine",
        description="Assembles versioned multi-section PDF proposals from templates.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(proposals_router)

    return app


app = create_app()


@app.get("/", tags=["root"])
async def root():
    return JSONResponse({
        "service": "Proposal Engine",
        "version": __version__,
        "status": "running",
    })


@app.get("/health", tags=["root"])
async def health():
    """Liveness check including database connectivity."""
    database_ok = await db_service.health_check()
    return JSONResponse({
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
        "version": __version__
    })


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "errors": [str(exc) if get_settings().DEBUG else "An error occurred"],
            "status_code": 500
        }
    )


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "proposal_engine.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
    )
