from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, Request

from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from epg_guide.config import settings, setup_logging
from epg_guide.services import EPGGuide, EPGScheduler

from epg_guide.routers import main_router


setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting EPG Guide...")

    try:
        scheduler = EPGScheduler(
            cron=settings.epg_update_cron,
            misfire_grace_sec=settings.epg_update_misfire_grace_sec,
        )
        guide = EPGGuide.from_settings(settings, scheduler=scheduler)
        app.state.epg_scheduler = scheduler
        app.state.epg_guide = guide

        if settings.epg_source_url:
            # First load runs in the background so startup is not held by the download
            logger.info("Scheduling initial EPG load...")
            app.state.initial_load = asyncio.create_task(guide.initialize(settings.epg_source_url))
        else:
            logger.warning("EPG_SOURCE_URL not configured - guide will stay empty")
            app.state.initial_load = None

        logger.info("EPG Guide started successfully")
    except Exception as e:
        logger.error(f"Failed to start EPG Guide: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down EPG Guide...")

    initial_load = app.state.initial_load
    if initial_load is not None and not initial_load.done():
        initial_load.cancel()
        try:
            await initial_load
        except asyncio.CancelledError:
            logger.info("Initial EPG load cancelled")

    try:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    logger.info("EPG Guide stopped")


app = FastAPI(
    title="EPG Guide",
    version="0.1.0",
    lifespan=lifespan
)

app.include_router(main_router)

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.error(f"Validation error for {request.method} {request.url.path}")
    logger.error(f"Validation details: {exc.errors()}")

    # Create a properly serializable error response
    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )
