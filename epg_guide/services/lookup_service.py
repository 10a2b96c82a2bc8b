"""
EPG Lookup Service

Read-only queries against a published channel index: the program airing now,
the next programs on a channel, and fuzzy channel-id diagnostics.
"""
from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Literal

from epg_guide.services.channel_index import ChannelIndex
from epg_guide.services.guide_types import ProgramRecord
from epg_guide.utils.date_parsing import utc_now

logger = logging.getLogger(__name__)

DEFAULT_UPCOMING_LIMIT = 5


@dataclass(frozen=True, slots=True)
class ChannelMatch:
    """A stored channel id that resembles a queried one."""
    channel_id: str
    match_type: Literal["exact-case-insensitive", "partial"]
    program_count: int
    sample: ProgramRecord | None = None

    def to_dict(self) -> dict:
        return {
            "channel_id": self.channel_id,
            "match_type": self.match_type,
            "program_count": self.program_count,
            "sample": self.sample.to_dict() if self.sample else None,
        }


def _is_valid(program: ProgramRecord) -> bool:
    return (
        isinstance(program.start, datetime)
        and isinstance(program.stop, datetime)
        and program.start.tzinfo is not None
        and program.stop.tzinfo is not None
    )


def normalize_limit(limit: object, default: int = DEFAULT_UPCOMING_LIMIT) -> int:
    """Return limit when it is a positive integer, otherwise the default."""
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        return default
    return limit


def find_similar_channels(index: ChannelIndex, channel_id: str) -> list[ChannelMatch]:
    """
    Find stored channel ids resembling the query

    Matches are case-insensitive: equal ids, or ids where one contains the other.

    Args:
        index: Published channel index
        channel_id: Queried channel id

    Returns:
        Matches in index order
    """
    search_term = channel_id.lower()
    matches: list[ChannelMatch] = []

    for stored_id, programs in index.items():
        stored_lower = stored_id.lower()
        if stored_lower == search_term:
            match_type = "exact-case-insensitive"
        elif search_term in stored_lower or stored_lower in search_term:
            match_type = "partial"
        else:
            continue
        matches.append(ChannelMatch(
            channel_id=stored_id,
            match_type=match_type,
            program_count=len(programs),
            sample=programs[0] if programs else None,
        ))

    return matches


def _log_similar_channels(index: ChannelIndex, channel_id: str) -> None:
    matches = find_similar_channels(index, channel_id)
    if not matches:
        return
    logger.info(
        "Similar channel ids for '%s': %s",
        channel_id,
        ", ".join(f"{m.channel_id} ({m.match_type}, {m.program_count} programs)" for m in matches),
    )


def get_current_program(
    index: ChannelIndex,
    channel_id: str,
    at: datetime | None = None
) -> ProgramRecord | None:
    """
    Find the program airing on a channel

    Only the exact channel id is used for the result; similar ids are logged
    when the exact lookup finds nothing.

    Args:
        index: Published channel index
        channel_id: Exact channel id
        at: Evaluation instant (defaults to now, UTC)

    Returns:
        First program in start order with start <= at <= stop, or None
    """
    now = at or utc_now()
    programs = index.get(channel_id)

    if logger.isEnabledFor(logging.DEBUG) or not programs:
        _log_similar_channels(index, channel_id)

    if not programs:
        logger.debug("No programs found for exact channel id: %s", channel_id)
        return None

    valid_programs = [program for program in programs if _is_valid(program)]
    logger.debug("Valid programs for %s: %s/%s", channel_id, len(valid_programs), len(programs))

    for program in valid_programs:
        if program.start <= now <= program.stop:
            return program

    logger.debug(
        "No current program for %s at %s (first available starts %s)",
        channel_id,
        now.isoformat(),
        programs[0].start.isoformat(),
    )
    return None


def get_upcoming_programs(
    index: ChannelIndex,
    channel_id: str,
    limit: int | None = DEFAULT_UPCOMING_LIMIT,
    at: datetime | None = None,
    default_limit: int = DEFAULT_UPCOMING_LIMIT
) -> list[ProgramRecord]:
    """
    List the next programs on a channel

    Args:
        index: Published channel index
        channel_id: Exact channel id
        limit: Maximum number of programs; non-positive or missing uses default_limit
        at: Evaluation instant (defaults to now, UTC)
        default_limit: Limit used when limit is invalid

    Returns:
        Up to limit programs with start >= at, ascending by start
    """
    now = at or utc_now()
    effective_limit = normalize_limit(limit, default_limit)
    programs = index.get(channel_id)

    if not programs:
        logger.debug("No programs found for channel id: %s", channel_id)
        return []

    upcoming: list[ProgramRecord] = []
    for program in programs:
        if _is_valid(program) and program.start >= now:
            upcoming.append(program)
            if len(upcoming) >= effective_limit:
                break

    logger.debug("Found %s upcoming programs for %s", len(upcoming), channel_id)
    return upcoming
