"""
Shared dataclasses used across the EPG ingestion pipeline.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class RejectReason(str, Enum):
    """Why a programme node was dropped during ingestion."""
    INVALID_START = "invalid_start"
    INVALID_STOP = "invalid_stop"
    INVALID_START_AND_STOP = "invalid_start_and_stop"
    MISSING_CHANNEL = "missing_channel"


class UpdateStatus(str, Enum):
    IDLE = "idle"
    UPDATING = "updating"


@dataclass(frozen=True, slots=True)
class ProgramRecord:
    """Canonical in-memory program entry for one channel."""
    start: datetime
    stop: datetime
    title: str
    description: str = ""
    category: str = ""

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "stop": self.stop.isoformat(),
            "title": self.title,
            "description": self.description,
            "category": self.category,
        }


@dataclass(frozen=True, slots=True)
class ProgramRejection:
    """Soft rejection of a programme node with the raw values that failed."""
    reason: RejectReason
    raw_start: Any = None
    raw_stop: Any = None


@dataclass(slots=True)
class IngestionCounters:
    """Per-channel tallies for a single ingestion pass."""
    total: int = 0
    valid: int = 0
    skipped: int = 0


@dataclass(slots=True)
class IngestionReport:
    """Outcome of one ingestion pass over a programme list."""
    started_at: datetime
    completed_at: datetime | None = None
    programmes_seen: int = 0
    programmes_stored: int = 0
    programmes_skipped: int = 0
    missing_channel: int = 0
    chunks_processed: int = 0
    channels: dict[str, IngestionCounters] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return max(0.0, (self.completed_at - self.started_at).total_seconds())

    def to_dict(self) -> dict:
        return {
            "programmes_seen": self.programmes_seen,
            "programmes_stored": self.programmes_stored,
            "programmes_skipped": self.programmes_skipped,
            "missing_channel": self.missing_channel,
            "chunks_processed": self.chunks_processed,
            "channels": len(self.channels),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(slots=True)
class UpdateState:
    """Process-wide update lifecycle state owned by one guide instance."""
    is_updating: bool = False
    last_update: datetime | None = None
    last_error: str | None = None
    last_report: IngestionReport | None = None

    @property
    def status(self) -> UpdateStatus:
        return UpdateStatus.UPDATING if self.is_updating else UpdateStatus.IDLE


__all__ = [
    "RejectReason",
    "UpdateStatus",
    "ProgramRecord",
    "ProgramRejection",
    "IngestionCounters",
    "IngestionReport",
    "UpdateState",
]
