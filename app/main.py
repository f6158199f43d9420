"""FastAPI application entry point for CreatorLens."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_settings
from app.database import db
from core.errors import ContractCoreError
from core.extraction.contract_extractor import ContractExtractionAgent
from core.lifecycle.controller import ContractLifecycleController
from core.lifecycle.repository import InMemoryContractRepository

logger = logging.getLogger("creatorlens.app")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.app_env}")

    if settings.use_database:
        await db.connect()
        repository = db.repository()
    else:
        repository = InMemoryContractRepository()
        logger.info("Using in-memory contract repository")

    app.state.controller = ContractLifecycleController(
        repository=repository,
        extractor=ContractExtractionAgent(settings),
        extraction_timeout_seconds=settings.extraction_timeout_seconds,
        auto_analyze=settings.auto_analyze,
    )

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    await db.disconnect()


settings = get_settings()

app = FastAPI(
    title=settings.app_name,
    description="Creator contract risk analysis, negotiation and deal conversion",
    version=settings.app_version,
    lifespan=lifespan,
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ContractCoreError)
async def contract_error_handler(request: Request, exc: ContractCoreError) -> JSONResponse:
    """Translate core errors into JSON responses."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"success": False, **exc.to_dict()})


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "operational",
    }


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Import and include routers
from app.api.routes import contracts
app.include_router(contracts.router, prefix="/api/v1/contracts", tags=["contracts"])
