"""
Structured logging helpers for consistent log formatting.

Provides utilities for structured, clean logging without excessive decorative separators.
"""
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

if TYPE_CHECKING:
    from epg_guide.services.guide_types import IngestionCounters


def log_section_start(logger: logging.Logger, section_name: str) -> None:
    """
    Log the start of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being started
    """
    logger.info(f"Starting: {section_name}")


def log_section_end(logger: logging.Logger, section_name: str) -> None:
    """
    Log the end of a processing section.

    Args:
        logger: Logger instance
        section_name: Name of the section being ended
    """
    logger.info(f"Completed: {section_name}")


def log_update_start(logger: logging.Logger, url: str) -> None:
    """Log EPG update operation start."""
    logger.info(
        f"EPG update started at {datetime.now(timezone.utc).isoformat()} "
        f"from {sanitize_url_for_logging(url)}"
    )


def log_chunk_progress(logger: logging.Logger, chunk_number: int, total_chunks: int, size: int) -> None:
    """Log completion of one ingestion chunk."""
    logger.info(f"Completed chunk {chunk_number}/{total_chunks} ({size} programmes)")


def log_channel_counters(
    logger: logging.Logger,
    channel_id: str,
    counters: "IngestionCounters",
    stored: int,
    level: int = logging.DEBUG
) -> None:
    """
    Log per-channel ingestion tallies.

    Args:
        logger: Logger instance
        channel_id: Channel identifier
        counters: Tallies collected during the pass
        stored: Programs held in the index for this channel
        level: Logging level to emit at
    """
    logger.log(
        level,
        "Channel %s: total=%s valid=%s skipped=%s in_guide=%s",
        channel_id,
        counters.total,
        counters.valid,
        counters.skipped,
        stored,
    )


def sanitize_url_for_logging(url: str) -> str:
    """Remove credentials from URL for safe logging."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"***:***@{host}"))
