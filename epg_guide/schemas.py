from pydantic import BaseModel, Field

from epg_guide.services.guide_types import ProgramRecord
from epg_guide.services.lookup_service import ChannelMatch


class ProgramResponse(BaseModel):
    """Single program data"""
    start: str = Field(..., description="ISO8601 UTC start time")
    stop: str = Field(..., description="ISO8601 UTC stop time")
    title: str
    description: str = ""
    category: str = ""

    @classmethod
    def from_record(cls, record: ProgramRecord) -> "ProgramResponse":
        return cls(**record.to_dict())


class CurrentProgramResponse(BaseModel):
    """Program airing on a channel at a given instant"""
    channel_id: str
    at: str = Field(..., description="ISO8601 UTC evaluation time")
    program: ProgramResponse


class UpcomingProgramsResponse(BaseModel):
    """Next programs on a channel"""
    channel_id: str
    at: str = Field(..., description="ISO8601 UTC evaluation time")
    count: int
    programs: list[ProgramResponse]


class ChannelMatchResponse(BaseModel):
    """Stored channel id resembling a query"""
    channel_id: str
    match_type: str = Field(..., description="'exact-case-insensitive' or 'partial'")
    program_count: int
    sample: ProgramResponse | None = None

    @classmethod
    def from_match(cls, match: ChannelMatch) -> "ChannelMatchResponse":
        return cls(
            channel_id=match.channel_id,
            match_type=match.match_type,
            program_count=match.program_count,
            sample=ProgramResponse.from_record(match.sample) if match.sample else None,
        )


class ChannelSearchResponse(BaseModel):
    query: str
    count: int
    matches: list[ChannelMatchResponse]


class IngestionSummary(BaseModel):
    """Tallies of the last successful ingestion pass"""
    programmes_seen: int
    programmes_stored: int
    programmes_skipped: int
    missing_channel: int
    chunks_processed: int
    channels: int
    started_at: str
    completed_at: str | None
    duration_seconds: float


class StatusResponse(BaseModel):
    """Guide update state and size"""
    state: str = Field(..., description="Update state: 'idle' or 'updating'")
    is_updating: bool
    last_update: str | None = Field(None, description="ISO8601 UTC time of the last successful update")
    channels_count: int
    programs_count: int
    last_error: str | None = None
    last_ingestion: IngestionSummary | None = None
    needs_update: bool
    is_available: bool


class ErrorDetail(BaseModel):
    """Standard error detail"""
    code: str = Field(..., description="Error code (e.g., 'UPDATE_FAILED', 'VALIDATION_ERROR')")
    message: str = Field(..., description="Human-readable error message")
    context: dict | None = Field(None, description="Additional context about the error")
