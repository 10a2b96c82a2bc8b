"""
Channel Index

Mapping from channel identifier to its time-ordered program list.
An index is populated during one ingestion pass, sorted once at the end,
and then published read-only by the guide.
"""
from collections.abc import Iterator
import logging

from epg_guide.services.guide_types import ProgramRecord


logger = logging.getLogger(__name__)


class ChannelIndex:
    """Channel id (case-sensitive) -> programs sorted ascending by start."""

    def __init__(self) -> None:
        self._programs: dict[str, list[ProgramRecord]] = {}

    def clear(self) -> None:
        """Drop every channel before a rebuild."""
        self._programs.clear()

    def ensure_channel(self, channel_id: str) -> list[ProgramRecord]:
        """Return the program list for a channel, creating an empty one if needed."""
        programs = self._programs.get(channel_id)
        if programs is None:
            programs = []
            self._programs[channel_id] = programs
        return programs

    def append(self, channel_id: str, program: ProgramRecord) -> None:
        self.ensure_channel(channel_id).append(program)

    def sort_all(self) -> None:
        """Sort each channel by start time; list.sort keeps equal starts in feed order."""
        for programs in self._programs.values():
            programs.sort(key=lambda program: program.start)
        logger.debug("Sorted programs for %s channels", len(self._programs))

    def get(self, channel_id: str) -> list[ProgramRecord] | None:
        return self._programs.get(channel_id)

    def channel_ids(self) -> list[str]:
        return list(self._programs)

    def items(self) -> Iterator[tuple[str, list[ProgramRecord]]]:
        return iter(self._programs.items())

    @property
    def channels_count(self) -> int:
        return len(self._programs)

    @property
    def programs_count(self) -> int:
        return sum(len(programs) for programs in self._programs.values())

    def __len__(self) -> int:
        return len(self._programs)

    def __contains__(self, channel_id: object) -> bool:
        return channel_id in self._programs

    def __repr__(self) -> str:
        return f"<ChannelIndex(channels={self.channels_count}, programs={self.programs_count})>"
