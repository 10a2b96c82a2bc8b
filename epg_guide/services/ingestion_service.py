"""
Chunked Ingestion Service

Walks the programme nodes of one parsed XMLTV document in fixed-size chunks,
builds program records, groups them by channel and keeps per-channel tallies.
"""
from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from epg_guide.services.channel_index import ChannelIndex
from epg_guide.services.guide_types import (
    IngestionCounters,
    IngestionReport,
    ProgramRejection,
)
from epg_guide.services.program_builder import (
    MissingChannelError,
    build_program_record,
    programme_channel,
    text_payload,
)
from epg_guide.utils.date_parsing import utc_now
from epg_guide.utils.logging_helpers import log_channel_counters, log_chunk_progress


logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 10000
DIAGNOSTIC_SAMPLE_SIZE = 3


def _matches_filter(channel_id: str, diagnostic_filter: str | None) -> bool:
    return bool(diagnostic_filter) and diagnostic_filter.lower() in channel_id.lower()


def _log_diagnostic_samples(
    programmes: Sequence[Mapping[str, Any]],
    diagnostic_filter: str | None
) -> None:
    """Log the first few raw programmes of channels matching the diagnostic filter."""
    if not diagnostic_filter:
        return

    samples = []
    for node in programmes:
        channel_id = node.get("@channel") if isinstance(node, Mapping) else None
        if isinstance(channel_id, str) and _matches_filter(channel_id, diagnostic_filter):
            samples.append(node)
            if len(samples) >= DIAGNOSTIC_SAMPLE_SIZE:
                break

    if not samples:
        logger.info("No programmes found for channels matching '%s'", diagnostic_filter)
        return

    logger.info("Sample programmes for channels matching '%s':", diagnostic_filter)
    for node in samples:
        logger.info(
            "  channel=%s start=%s stop=%s title=%s",
            node.get("@channel"),
            node.get("@start"),
            node.get("@stop"),
            text_payload(node.get("title")),
        )


async def ingest_programmes(
    programmes: Sequence[Mapping[str, Any]] | None,
    index: ChannelIndex,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_delay: float = 0.0,
    diagnostic_filter: str | None = None
) -> IngestionReport:
    """
    Populate a channel index from programme nodes in input order

    The index is cleared first. A rejected node is counted and skipped; it
    never aborts the pass. Every channel list is sorted once at the end.

    Args:
        programmes: Programme nodes from one parsed document (None is treated as empty)
        index: Index to clear and rebuild in place
        chunk_size: Number of nodes per chunk
        chunk_delay: Seconds to pause between chunks
        diagnostic_filter: Channel id substring whose details are logged at INFO

    Returns:
        IngestionReport with overall and per-channel tallies

    Raises:
        ValueError: If chunk_size is not positive
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be > 0, got {chunk_size}")

    report = IngestionReport(started_at=utc_now())
    index.clear()

    if not programmes:
        logger.warning("No EPG programmes found - index left empty")
        report.completed_at = utc_now()
        return report

    total = len(programmes)
    total_chunks = math.ceil(total / chunk_size)
    logger.info("Processing %s programmes in %s chunk(s) of up to %s", total, total_chunks, chunk_size)
    _log_diagnostic_samples(programmes, diagnostic_filter)

    counters = report.channels

    for offset in range(0, total, chunk_size):
        chunk = programmes[offset:offset + chunk_size]
        chunk_number = offset // chunk_size + 1

        for node in chunk:
            report.programmes_seen += 1

            try:
                channel_id = programme_channel(node)
            except MissingChannelError:
                report.missing_channel += 1
                report.programmes_skipped += 1
                logger.debug("Skipping programme without channel attribute: %r", node)
                continue

            counter = counters.get(channel_id)
            if counter is None:
                counter = counters[channel_id] = IngestionCounters()
            counter.total += 1

            index.ensure_channel(channel_id)
            result = build_program_record(node)

            if isinstance(result, ProgramRejection):
                counter.skipped += 1
                report.programmes_skipped += 1
                if _matches_filter(channel_id, diagnostic_filter):
                    logger.info(
                        "Invalid dates for %s (%s): start=%r stop=%r",
                        channel_id,
                        result.reason.value,
                        result.raw_start,
                        result.raw_stop,
                    )
                continue

            index.append(channel_id, result)
            counter.valid += 1
            report.programmes_stored += 1

        report.chunks_processed += 1
        log_chunk_progress(logger, chunk_number, total_chunks, len(chunk))

        # Yield to other scheduled work between chunks
        await asyncio.sleep(chunk_delay)

    index.sort_all()
    report.completed_at = utc_now()

    _log_summary(report, index, diagnostic_filter)
    return report


def _log_summary(report: IngestionReport, index: ChannelIndex, diagnostic_filter: str | None) -> None:
    logger.info(
        "Ingestion summary: %s channels, %s programmes stored, %s skipped (%s without channel)",
        index.channels_count,
        report.programmes_stored,
        report.programmes_skipped,
        report.missing_channel,
    )

    for channel_id, counters in report.channels.items():
        stored = len(index.get(channel_id) or [])
        level = logging.INFO if _matches_filter(channel_id, diagnostic_filter) else logging.DEBUG
        log_channel_counters(logger, channel_id, counters, stored, level=level)


__all__ = ["ingest_programmes", "DEFAULT_CHUNK_SIZE"]
