"""
Dependency Injection Configuration

FastAPI dependencies resolving the guide and scheduler instances created in the
application lifespan. Tests can place their own instances on app.state
instead of relying on module-level globals.
"""
from datetime import datetime
import logging

from fastapi import HTTPException, Query, Request

from epg_guide.services.guide_service import EPGGuide
from epg_guide.services.scheduler_service import EPGScheduler
from epg_guide.utils.date_parsing import DateFormatError, parse_iso8601_to_utc, utc_now


logger = logging.getLogger(__name__)


def get_epg_guide(request: Request) -> EPGGuide:
    """Return the guide owned by this application instance."""
    guide = getattr(request.app.state, "epg_guide", None)
    if guide is None:
        raise RuntimeError("EPG guide not initialized. It is created during application startup.")
    return guide


def get_epg_scheduler(request: Request) -> EPGScheduler | None:
    """Return the scheduler, if the application started one."""
    return getattr(request.app.state, "epg_scheduler", None)


def get_evaluation_time(
    at: str | None = Query(
        None,
        description="ISO8601 datetime to evaluate at, e.g. 2025-01-17T06:45:00Z (defaults to now)",
    )
) -> datetime:
    """Parse the optional 'at' query parameter into an aware UTC datetime."""
    if at is None:
        return utc_now()
    try:
        return parse_iso8601_to_utc(at)
    except DateFormatError as exc:
        logger.debug("Rejected evaluation time %r: %s", at, exc)
        raise HTTPException(
            status_code=422,
            detail=f"Invalid datetime format: {at}. Must be valid ISO8601 format (e.g., '2025-01-17T06:45:00Z')",
        ) from exc
