"""
EPG Update Pipeline

Runs one ingestion pass as a sequence of stages: fetch, decompress, parse and
ingest. Each stage returns a StageResult and the pipeline stops at the first
failed stage, so a failed pass never produces an index.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Generic, Literal, TypeVar

from epg_guide.services.channel_index import ChannelIndex
from epg_guide.services.guide_types import IngestionReport
from epg_guide.services.ingestion_service import DEFAULT_CHUNK_SIZE, ingest_programmes
from epg_guide.services.xmltv_tree_service import extract_programmes, parse_xmltv_tree_async
from epg_guide.utils.compression import decompress_or_passthrough
from epg_guide.utils.date_parsing import utc_now
from epg_guide.utils.http_fetch import fetch_bytes
from epg_guide.utils.logging_helpers import sanitize_url_for_logging


logger = logging.getLogger(__name__)

T = TypeVar("T")

StageName = Literal["fetch", "decompress", "parse", "ingest"]

Fetcher = Callable[[str], Awaitable[bytes]]
Decompressor = Callable[[bytes], str]
TreeParser = Callable[[str], Awaitable[dict[str, Any]]]


@dataclass(slots=True)
class StageResult(Generic[T]):
    stage: StageName
    value: T | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class UpdateOutcome:
    """Result of one update trigger, as reported to callers."""
    status: Literal["success", "failed", "skipped"]
    started_at: datetime
    completed_at: datetime
    source_url: str | None = None
    failed_stage: StageName | None = None
    error: str | None = None
    report: IngestionReport | None = None
    index: ChannelIndex | None = field(default=None, repr=False)

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        payload = {
            "status": self.status,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat(),
            "duration_seconds": self.duration_seconds,
        }
        if self.source_url:
            payload["source_url"] = sanitize_url_for_logging(self.source_url)
        if self.failed_stage:
            payload["failed_stage"] = self.failed_stage
        if self.error:
            payload["error"] = self.error
        if self.report:
            payload["ingestion"] = self.report.to_dict()
        return payload


class GuideUpdatePipeline:
    """Coordinates fetch, decompress, parse and ingest stages for one update pass."""

    def __init__(
        self,
        url: str,
        *,
        fetcher: Fetcher = fetch_bytes,
        decompressor: Decompressor = decompress_or_passthrough,
        tree_parser: TreeParser | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_delay: float = 0.0,
        parse_timeout: int | None = None,
        diagnostic_filter: str | None = None
    ) -> None:
        self.url = url
        self._fetcher = fetcher
        self._decompressor = decompressor
        self._tree_parser = tree_parser or self._default_tree_parser
        self._chunk_size = chunk_size
        self._chunk_delay = chunk_delay
        self._parse_timeout = parse_timeout
        self._diagnostic_filter = diagnostic_filter

    async def _default_tree_parser(self, text: str) -> dict[str, Any]:
        return await parse_xmltv_tree_async(text, self._parse_timeout)

    async def run(self) -> UpdateOutcome:
        started_at = utc_now()
        safe_url = sanitize_url_for_logging(self.url)

        fetched = await self._fetch()
        if not fetched.ok:
            return self._failed(started_at, fetched)

        decoded = self._decompress(fetched.value)
        if not decoded.ok:
            return self._failed(started_at, decoded)

        parsed = await self._parse(decoded.value)
        if not parsed.ok:
            return self._failed(started_at, parsed)

        index = ChannelIndex()
        ingested = await self._ingest(parsed.value, index)
        if not ingested.ok:
            return self._failed(started_at, ingested)

        logger.info("Update pass from %s produced %r", safe_url, index)
        return UpdateOutcome(
            status="success",
            started_at=started_at,
            completed_at=utc_now(),
            source_url=self.url,
            report=ingested.value,
            index=index,
        )

    async def _fetch(self) -> StageResult[bytes]:
        try:
            data = await self._fetcher(self.url)
        except Exception as exc:
            logger.error(
                "Failed to fetch EPG from %s: %s",
                sanitize_url_for_logging(self.url),
                exc,
                exc_info=True,
            )
            return StageResult("fetch", error=f"{type(exc).__name__}: {exc}")
        return StageResult("fetch", value=data)

    def _decompress(self, data: bytes) -> StageResult[str]:
        try:
            text = self._decompressor(data)
        except Exception as exc:
            logger.error("Failed to decode EPG payload: %s", exc, exc_info=True)
            return StageResult("decompress", error=f"{type(exc).__name__}: {exc}")
        return StageResult("decompress", value=text)

    async def _parse(self, text: str) -> StageResult[list[Any]]:
        try:
            tree = await self._tree_parser(text)
        except Exception as exc:
            logger.error("Failed to parse EPG document: %s", exc, exc_info=True)
            return StageResult("parse", error=f"{type(exc).__name__}: {exc}")
        return StageResult("parse", value=extract_programmes(tree))

    async def _ingest(self, programmes: list[Any], index: ChannelIndex) -> StageResult[IngestionReport]:
        try:
            report = await ingest_programmes(
                programmes,
                index,
                chunk_size=self._chunk_size,
                chunk_delay=self._chunk_delay,
                diagnostic_filter=self._diagnostic_filter,
            )
        except Exception as exc:
            logger.error("Failed to ingest EPG programmes: %s", exc, exc_info=True)
            return StageResult("ingest", error=f"{type(exc).__name__}: {exc}")
        return StageResult("ingest", value=report)

    def _failed(self, started_at: datetime, result: StageResult) -> UpdateOutcome:
        return UpdateOutcome(
            status="failed",
            started_at=started_at,
            completed_at=utc_now(),
            source_url=self.url,
            failed_stage=result.stage,
            error=result.error,
        )
