"""Main application entry point."""

import asyncio
import logging
from contextlib import asynccontextmanager

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries (must be set before importing them)
logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from marketlens import __version__
from marketlens.api import get_aggregation_service, get_analysis_service, router
from marketlens.config import get_settings
from marketlens.storage import get_database, init_database

logger = logging.getLogger(__name__)

_aggregation_task: asyncio.Task | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global _aggregation_task

    settings = get_settings()
    if settings.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    logger.info("Starting marketlens...")
    await init_database()
    logger.info("Database initialized")

    # Loads analysis.yaml once; a bad file fails startup
    analysis = get_analysis_service()
    logger.info(
        f"Analysis ready: min_candles={analysis.config.indicators.min_candles}, "
        f"symbols={settings.symbols}"
    )

    if settings.aggregation_interval_seconds > 0:
        _aggregation_task = asyncio.create_task(
            get_aggregation_service().run_periodic(settings.aggregation_interval_seconds)
        )
        logger.info(
            f"Periodic aggregation every {settings.aggregation_interval_seconds}s"
        )

    yield

    logger.info("Shutting down...")
    if _aggregation_task:
        _aggregation_task.cancel()
        try:
            await _aggregation_task
        except asyncio.CancelledError:
            pass
        _aggregation_task = None

    await get_database().close()
    logger.info("Shutdown complete")


app = FastAPI(
    title="marketlens",
    description="Candle aggregation, technical indicators and trading signals",
    version=__version__,
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "marketlens API", "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "marketlens.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
