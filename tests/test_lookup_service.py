"""
Tests for current/upcoming program lookups and channel-id diagnostics.
"""
import logging

import pytest

from epg_guide.services.channel_index import ChannelIndex
from epg_guide.services.guide_types import ProgramRecord
from epg_guide.services.lookup_service import (
    find_similar_channels,
    get_current_program,
    get_upcoming_programs,
    normalize_limit,
)

from conftest import utc


def _record(start, stop, title) -> ProgramRecord:
    return ProgramRecord(start=start, stop=stop, title=title)


@pytest.fixture
def index() -> ChannelIndex:
    index = ChannelIndex()
    index.append("rai1", _record(utc(2025, 1, 17, 6, 30), utc(2025, 1, 17, 7), "News"))
    index.append("rai1", _record(utc(2025, 1, 17, 7, 30), utc(2025, 1, 17, 8), "Film"))
    index.append("rai1", _record(utc(2025, 1, 17, 8), utc(2025, 1, 17, 9), "Quiz"))
    index.append("rai1", _record(utc(2025, 1, 17, 9), utc(2025, 1, 17, 10), "Talk"))
    index.append("rai1", _record(utc(2025, 1, 17, 10), utc(2025, 1, 17, 11), "Cooking"))
    index.append("rai1", _record(utc(2025, 1, 17, 11), utc(2025, 1, 17, 12), "Weather"))
    index.append("rai1", _record(utc(2025, 1, 17, 12), utc(2025, 1, 17, 13), "Midday news"))
    index.append("Rai3.it", _record(utc(2025, 1, 17, 6), utc(2025, 1, 17, 12), "Mattina"))
    index.ensure_channel("empty")
    index.sort_all()
    return index


class TestCurrentProgram:
    """Test cases for get_current_program."""

    def test_program_airing_now(self, index):
        program = get_current_program(index, "rai1", at=utc(2025, 1, 17, 6, 45))

        assert program.title == "News"

    def test_gap_between_programs_is_not_found(self, index):
        assert get_current_program(index, "rai1", at=utc(2025, 1, 17, 7, 15)) is None

    def test_bounds_are_inclusive(self, index):
        assert get_current_program(index, "rai1", at=utc(2025, 1, 17, 6, 30)).title == "News"
        assert get_current_program(index, "rai1", at=utc(2025, 1, 17, 7, 0)).title == "News"

    def test_shared_boundary_returns_earlier_listed_program(self, index):
        assert get_current_program(index, "rai1", at=utc(2025, 1, 17, 8)).title == "Film"

    def test_overlapping_programs_return_first_in_start_order(self):
        index = ChannelIndex()
        index.append("c", _record(utc(2025, 1, 17, 7), utc(2025, 1, 17, 9), "Later"))
        index.append("c", _record(utc(2025, 1, 17, 6), utc(2025, 1, 17, 10), "Earlier"))
        index.sort_all()

        assert get_current_program(index, "c", at=utc(2025, 1, 17, 8)).title == "Earlier"

    def test_inverted_program_never_matches(self):
        index = ChannelIndex()
        index.append("c", _record(utc(2025, 1, 17, 9), utc(2025, 1, 17, 8), "Inverted"))

        assert get_current_program(index, "c", at=utc(2025, 1, 17, 8, 30)) is None

    def test_naive_times_are_ignored(self):
        from datetime import datetime

        index = ChannelIndex()
        index.append("c", _record(datetime(2025, 1, 17, 6), datetime(2025, 1, 17, 7), "Naive"))
        index.append("c", _record(utc(2025, 1, 17, 6), utc(2025, 1, 17, 7), "Aware"))

        assert get_current_program(index, "c", at=utc(2025, 1, 17, 6, 30)).title == "Aware"

    def test_unknown_and_empty_channels(self, index):
        assert get_current_program(index, "missing", at=utc(2025, 1, 17, 6, 45)) is None
        assert get_current_program(index, "empty", at=utc(2025, 1, 17, 6, 45)) is None

    def test_lookup_is_exact_and_case_sensitive(self, index, caplog):
        with caplog.at_level(logging.INFO, logger="epg_guide.services.lookup_service"):
            program = get_current_program(index, "RAI1", at=utc(2025, 1, 17, 6, 45))

        assert program is None
        assert any(
            "Similar channel ids for 'RAI1'" in record.getMessage()
            and "rai1 (exact-case-insensitive" in record.getMessage()
            for record in caplog.records
        )

    def test_defaults_to_now(self, index):
        # All sample programs are in the past
        assert get_current_program(index, "rai1") is None


class TestUpcomingPrograms:
    """Test cases for get_upcoming_programs."""

    def test_returns_at_most_limit_in_start_order(self, index):
        programs = get_upcoming_programs(index, "rai1", 3, at=utc(2025, 1, 17, 7, 15))

        assert [p.title for p in programs] == ["Film", "Quiz", "Talk"]
        assert all(p.start >= utc(2025, 1, 17, 7, 15) for p in programs)

    def test_program_starting_now_is_included(self, index):
        programs = get_upcoming_programs(index, "rai1", 1, at=utc(2025, 1, 17, 8))

        assert [p.title for p in programs] == ["Quiz"]

    def test_fewer_than_limit(self, index):
        programs = get_upcoming_programs(index, "rai1", 5, at=utc(2025, 1, 17, 11, 30))

        assert [p.title for p in programs] == ["Midday news"]

    @pytest.mark.parametrize("limit", [None, 0, -2, "3", 2.5, True])
    def test_invalid_limit_uses_default(self, index, limit):
        programs = get_upcoming_programs(index, "rai1", limit, at=utc(2025, 1, 17, 6))

        assert len(programs) == 5

    def test_default_limit_can_be_overridden(self, index):
        programs = get_upcoming_programs(index, "rai1", None, at=utc(2025, 1, 17, 6), default_limit=2)

        assert [p.title for p in programs] == ["News", "Film"]

    def test_unknown_channel_gives_empty_list(self, index):
        assert get_upcoming_programs(index, "missing", 3, at=utc(2025, 1, 17, 6)) == []
        assert get_upcoming_programs(index, "empty", 3, at=utc(2025, 1, 17, 6)) == []

    def test_nothing_upcoming(self, index):
        assert get_upcoming_programs(index, "rai1", 3, at=utc(2025, 1, 18)) == []


class TestFindSimilarChannels:
    """Test cases for find_similar_channels."""

    def test_exact_case_insensitive_match(self, index):
        matches = find_similar_channels(index, "RAI1")

        assert [(m.channel_id, m.match_type) for m in matches] == [("rai1", "exact-case-insensitive")]
        assert matches[0].program_count == 7
        assert matches[0].sample.title == "News"

    def test_partial_match_in_both_directions(self, index):
        assert [m.channel_id for m in find_similar_channels(index, "rai")] == ["rai1", "Rai3.it"]
        assert [(m.channel_id, m.match_type) for m in find_similar_channels(index, "rai1.it")] == [("rai1", "partial")]

    def test_empty_channel_has_no_sample(self, index):
        matches = find_similar_channels(index, "EMPTY")

        assert matches[0].sample is None
        assert matches[0].to_dict()["sample"] is None

    def test_no_match(self, index):
        assert find_similar_channels(index, "bbc") == []


class TestNormalizeLimit:
    """Test cases for normalize_limit."""

    @pytest.mark.parametrize("limit,expected", [(1, 1), (10, 10), (0, 5), (-1, 5), (None, 5), ("2", 5), (False, 5)])
    def test_normalize(self, limit, expected):
        assert normalize_limit(limit) == expected
