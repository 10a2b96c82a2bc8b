"""
EPG Guide Service

Owns the published channel index and the update lifecycle, and exposes the
guide's public operations. Each EPGGuide is an independent instance; the
application creates one at startup and tests build their own.
"""
from __future__ import annotations

from datetime import datetime, timedelta
import functools
import logging
from typing import TYPE_CHECKING

from epg_guide.config import CustomSettings
from epg_guide.services.channel_index import ChannelIndex
from epg_guide.services.guide_types import ProgramRecord
from epg_guide.services.ingestion_service import DEFAULT_CHUNK_SIZE
from epg_guide.services.lookup_service import (
    DEFAULT_UPCOMING_LIMIT,
    ChannelMatch,
    find_similar_channels,
    get_current_program,
    get_upcoming_programs,
)
from epg_guide.services.update_coordinator import UpdateCoordinator, UpdateInProgressError
from epg_guide.services.update_pipeline import (
    Decompressor,
    Fetcher,
    GuideUpdatePipeline,
    TreeParser,
    UpdateOutcome,
)
from epg_guide.utils.compression import decompress_or_passthrough
from epg_guide.utils.date_parsing import utc_now
from epg_guide.utils.http_fetch import fetch_bytes
from epg_guide.utils.logging_helpers import log_section_end, log_section_start, log_update_start

if TYPE_CHECKING:
    from epg_guide.services.scheduler_service import EPGScheduler


logger = logging.getLogger(__name__)


class EPGGuide:
    """In-memory program guide with a guarded update lifecycle."""

    def __init__(
        self,
        *,
        fetcher: Fetcher = fetch_bytes,
        decompressor: Decompressor = decompress_or_passthrough,
        tree_parser: TreeParser | None = None,
        scheduler: EPGScheduler | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_delay: float = 0.0,
        parse_timeout: int | None = None,
        stale_after: timedelta = timedelta(hours=24),
        upcoming_default_limit: int = DEFAULT_UPCOMING_LIMIT,
        diagnostic_filter: str | None = None
    ) -> None:
        self._index = ChannelIndex()
        self._coordinator = UpdateCoordinator(stale_after=stale_after)
        self._fetcher = fetcher
        self._decompressor = decompressor
        self._tree_parser = tree_parser
        self.scheduler = scheduler
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._parse_timeout = parse_timeout
        self._upcoming_default_limit = upcoming_default_limit
        self._diagnostic_filter = diagnostic_filter

    @classmethod
    def from_settings(cls, settings: CustomSettings, scheduler: EPGScheduler | None = None) -> EPGGuide:
        """Build a guide wired to the configured transport and ingestion options."""
        fetcher = functools.partial(
            fetch_bytes,
            timeout=settings.epg_download_timeout_sec,
            max_retries=settings.epg_download_max_retries,
            backoff_factor=settings.epg_download_backoff_factor,
        )
        return cls(
            fetcher=fetcher,
            scheduler=scheduler,
            chunk_size=settings.epg_programs_chunk_size,
            chunk_delay=settings.epg_chunk_delay_sec,
            parse_timeout=settings.epg_parse_timeout_sec,
            stale_after=timedelta(hours=settings.epg_stale_after_hours),
            upcoming_default_limit=settings.epg_upcoming_default_limit,
            diagnostic_filter=settings.epg_diagnostic_channel_filter,
        )

    @property
    def index(self) -> ChannelIndex:
        """Currently published index (replaced wholesale on each successful update)."""
        return self._index

    @property
    def last_update(self) -> datetime | None:
        return self._coordinator.state.last_update

    async def initialize(self, url: str) -> UpdateOutcome | None:
        """
        Schedule daily updates and load the guide once if it is empty

        Args:
            url: EPG source URL

        Returns:
            Outcome of the initial update, or None if the guide already had data
        """
        logger.info("Initializing EPG guide...")

        if self.scheduler is not None:
            self.scheduler.start(functools.partial(self.trigger_update, url))

        if len(self._index) == 0:
            logger.info("Guide is empty, running first EPG load")
            return await self.trigger_update(url)

        logger.info("EPG already loaded, skipping first load")
        return None

    async def trigger_update(self, url: str) -> UpdateOutcome:
        """
        Run one update pass unless another one is in progress

        Never raises for fetch/decompress/parse/ingest failures; those are
        reported in the returned outcome and leave the published index as it was.

        Args:
            url: EPG source URL

        Returns:
            UpdateOutcome with status success, failed or skipped
        """
        started_at = utc_now()
        try:
            outcome = await self._coordinator.execute(functools.partial(self._run_update, url))
        except UpdateInProgressError as exc:
            return UpdateOutcome(
                status="skipped",
                started_at=started_at,
                completed_at=utc_now(),
                source_url=url,
                error=str(exc),
            )
        return outcome

    async def _run_update(self, url: str) -> UpdateOutcome:
        log_section_start(logger, "EPG update")
        log_update_start(logger, url)

        pipeline = GuideUpdatePipeline(
            url,
            fetcher=self._fetcher,
            decompressor=self._decompressor,
            tree_parser=self._tree_parser,
            chunk_size=self._chunk_size,
            chunk_delay=self._chunk_delay,
            parse_timeout=self._parse_timeout,
            diagnostic_filter=self._diagnostic_filter,
        )
        outcome = await pipeline.run()

        if outcome.status == "success" and outcome.index is not None:
            # Single reference swap: readers see either the old or the new index
            self._index = outcome.index
            self._coordinator.state.last_report = outcome.report
            self._coordinator.mark_success(outcome.completed_at)
            outcome.index = None
            logger.info(
                "EPG update completed successfully: %s channels, %s programs",
                self._index.channels_count,
                self._index.programs_count,
            )
        else:
            self._coordinator.mark_failure(f"{outcome.failed_stage}: {outcome.error}")
            logger.error(
                "EPG update failed at %s stage, keeping previous guide: %s",
                outcome.failed_stage,
                outcome.error,
            )

        log_section_end(logger, "EPG update")
        return outcome

    def current_program(self, channel_id: str, at: datetime | None = None) -> ProgramRecord | None:
        return get_current_program(self._index, channel_id, at=at)

    def upcoming_programs(
        self,
        channel_id: str,
        limit: int | None = None,
        at: datetime | None = None
    ) -> list[ProgramRecord]:
        return get_upcoming_programs(
            self._index,
            channel_id,
            limit,
            at=at,
            default_limit=self._upcoming_default_limit,
        )

    def similar_channels(self, query: str) -> list[ChannelMatch]:
        return find_similar_channels(self._index, query)

    def needs_update(self, now: datetime | None = None) -> bool:
        return self._coordinator.needs_update(now)

    def is_updating(self) -> bool:
        return self._coordinator.is_updating()

    def is_available(self) -> bool:
        return len(self._index) > 0 and not self._coordinator.is_updating()

    def status(self) -> dict:
        """Update state and index size; the only place ingestion health is surfaced."""
        state = self._coordinator.state
        return {
            "state": self._coordinator.status.value,
            "is_updating": state.is_updating,
            "last_update": state.last_update.isoformat() if state.last_update else None,
            "channels_count": self._index.channels_count,
            "programs_count": self._index.programs_count,
            "last_error": state.last_error,
            "last_ingestion": state.last_report.to_dict() if state.last_report else None,
        }
