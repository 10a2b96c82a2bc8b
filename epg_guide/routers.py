from datetime import datetime
from typing import Annotated
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from epg_guide.config import settings
from epg_guide.dependencies import get_epg_guide, get_epg_scheduler, get_evaluation_time
from epg_guide.schemas import (
    ChannelMatchResponse,
    ChannelSearchResponse,
    CurrentProgramResponse,
    ErrorDetail,
    ProgramResponse,
    StatusResponse,
    UpcomingProgramsResponse,
)
from epg_guide.services import EPGGuide, EPGScheduler


logger = logging.getLogger(__name__)

main_router = APIRouter()

GuideDep = Annotated[EPGGuide, Depends(get_epg_guide)]
SchedulerDep = Annotated[EPGScheduler | None, Depends(get_epg_scheduler)]
EvaluationTimeDep = Annotated[datetime, Depends(get_evaluation_time)]


@main_router.get("/")
async def root(scheduler: SchedulerDep) -> dict:
    """Root endpoint with service information"""
    next_run = scheduler.get_next_run_time() if scheduler else None

    return {
        "service": "EPG Guide",
        "version": "0.1.0",
        "next_scheduled_update": next_run.isoformat() if next_run else None,
        "endpoints": {
            "update": "/update - Manually trigger EPG update (POST)",
            "status": "/status - Guide update state and size",
            "current": "/channels/{channel_id}/current - Program airing now",
            "upcoming": "/channels/{channel_id}/upcoming - Next programs (query param: limit)",
            "search": "/channels/search - Find similar channel ids (query param: q)",
            "health": "/health - Health check"
        }
    }


@main_router.get("/health")
async def health_check(guide: GuideDep, scheduler: SchedulerDep) -> dict:
    """Health check endpoint"""
    next_run = scheduler.get_next_run_time() if scheduler else None
    return {
        "status": "ok",
        "scheduler_running": scheduler.is_running() if scheduler else False,
        "next_update": next_run.isoformat() if next_run else None,
        "epg_available": guide.is_available(),
    }


@main_router.get("/status", response_model=StatusResponse)
async def get_status(guide: GuideDep) -> StatusResponse:
    """Update state, freshness and index size"""
    return StatusResponse(
        **guide.status(),
        needs_update=guide.needs_update(),
        is_available=guide.is_available(),
    )


@main_router.post("/update")
async def trigger_update(guide: GuideDep) -> dict:
    """
    Manually trigger an EPG update from the configured source

    This will download, parse and index EPG data
    """
    if not settings.epg_source_url:
        logger.warning("EPG_SOURCE_URL not configured - update aborted")
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(code="NOT_CONFIGURED", message="EPG_SOURCE_URL not configured").model_dump(),
        )

    logger.info("Manual EPG update triggered via API")
    outcome = await guide.trigger_update(settings.epg_source_url)

    if outcome.status == "failed":
        raise HTTPException(
            status_code=500,
            detail=ErrorDetail(
                code="UPDATE_FAILED",
                message=outcome.error or "EPG update failed",
                context={"failed_stage": outcome.failed_stage},
            ).model_dump(),
        )

    return outcome.to_dict()


@main_router.get("/channels/search", response_model=ChannelSearchResponse)
async def search_channels(
    guide: GuideDep,
    q: Annotated[str, Query(min_length=1, description="Channel id or fragment, case-insensitive")]
) -> ChannelSearchResponse:
    """Find stored channel ids resembling a query"""
    matches = guide.similar_channels(q)
    return ChannelSearchResponse(
        query=q,
        count=len(matches),
        matches=[ChannelMatchResponse.from_match(match) for match in matches],
    )


@main_router.get("/channels/{channel_id}/current", response_model=CurrentProgramResponse)
async def get_current_program(
    channel_id: str,
    guide: GuideDep,
    at: EvaluationTimeDep
) -> CurrentProgramResponse:
    """Program airing on a channel (exact channel id match)"""
    program = guide.current_program(channel_id, at=at)
    if program is None:
        raise HTTPException(status_code=404, detail=f"No current program for channel '{channel_id}'")

    return CurrentProgramResponse(
        channel_id=channel_id,
        at=at.isoformat(),
        program=ProgramResponse.from_record(program),
    )


@main_router.get("/channels/{channel_id}/upcoming", response_model=UpcomingProgramsResponse)
async def get_upcoming_programs(
    channel_id: str,
    guide: GuideDep,
    at: EvaluationTimeDep,
    limit: Annotated[int | None, Query(description="Maximum programs; non-positive uses the default")] = None
) -> UpcomingProgramsResponse:
    """Next programs on a channel (exact channel id match)"""
    programs = guide.upcoming_programs(channel_id, limit, at=at)
    return UpcomingProgramsResponse(
        channel_id=channel_id,
        at=at.isoformat(),
        count=len(programs),
        programs=[ProgramResponse.from_record(program) for program in programs],
    )
