"""
Shared fixtures for EPG guide tests.
"""
from datetime import datetime, timedelta, timezone
import gzip

import pytest

from epg_guide.services.guide_service import EPGGuide
from epg_guide.utils.date_parsing import format_epg_date


SAMPLE_XMLTV = """<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="tests">
  <channel id="rai1"><display-name>Rai 1</display-name></channel>
  <programme channel="rai1" start="20250117070000 +0000" stop="20250117080000 +0000">
    <title lang="it">Film</title>
    <desc>Evening film</desc>
    <category lang="it">Movie</category>
  </programme>
  <programme channel="rai1" start="20250117063000 +0000" stop="20250117070000 +0000">
    <title>News</title>
  </programme>
  <programme channel="rai1" start="20250117080000 +0000" stop="20250117090000 +0000">
    <title>Quiz</title>
  </programme>
  <programme channel="rai2" start="20250117063000 +0100" stop="20250117073000 +0100">
    <title>Cartoons</title>
  </programme>
  <programme channel="rai2" start="broken" stop="20250117073000 +0100">
    <title>Broken</title>
  </programme>
  <programme channel="Rai3.it" start="20250117060000 +0000" stop="20250117120000 +0000">
    <title lang="it">Mattina</title>
  </programme>
</tv>
"""

EMPTY_XMLTV = """<?xml version="1.0" encoding="UTF-8"?>
<tv generator-info-name="tests"></tv>
"""


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def programme_node(
    channel: str | None,
    start: datetime | str | None,
    stop: datetime | str | None,
    title=None,
    desc=None,
    category=None,
) -> dict:
    """Build a generic programme node the way the XMLTV tree parser does."""
    node: dict = {}
    if channel is not None:
        node["@channel"] = channel
    if start is not None:
        node["@start"] = format_epg_date(start) if isinstance(start, datetime) else start
    if stop is not None:
        node["@stop"] = format_epg_date(stop) if isinstance(stop, datetime) else stop
    if title is not None:
        node["title"] = title
    if desc is not None:
        node["desc"] = desc
    if category is not None:
        node["category"] = category
    return node


def hourly_programmes(channel: str, first_start: datetime, count: int) -> list[dict]:
    return [
        programme_node(
            channel,
            first_start + timedelta(hours=i),
            first_start + timedelta(hours=i + 1),
            title=f"Show {i}",
        )
        for i in range(count)
    ]


class PayloadFetcher:
    """Async fetcher stub returning a fixed payload and counting calls."""

    def __init__(self, payload: bytes):
        self.payload = payload
        self.calls: list[str] = []

    async def __call__(self, url: str) -> bytes:
        self.calls.append(url)
        return self.payload


@pytest.fixture
def sample_gzip_payload() -> bytes:
    return gzip.compress(SAMPLE_XMLTV.encode("utf-8"))


@pytest.fixture
def sample_fetcher(sample_gzip_payload) -> PayloadFetcher:
    return PayloadFetcher(sample_gzip_payload)


@pytest.fixture
def guide(sample_fetcher) -> EPGGuide:
    return EPGGuide(fetcher=sample_fetcher, chunk_size=2)
