"""
Tests for mapping generic programme nodes into program records.
"""
from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from epg_guide.services.guide_types import ProgramRecord, ProgramRejection, RejectReason
from epg_guide.services.program_builder import (
    DEFAULT_TITLE,
    MissingChannelError,
    build_program_record,
    first_value,
    programme_channel,
    text_payload,
)

from conftest import programme_node


START = "20250117063000 +0000"
STOP = "20250117070000 +0000"


class TestTextPayload:
    """Each text representation the tree parser can produce."""

    def test_plain_string(self):
        assert text_payload("News") == "News"

    def test_direct_text_key(self):
        assert text_payload({"#text": "News", "@lang": "it"}) == "News"

    def test_attribute_text_key(self):
        assert text_payload({"@text": "News"}) == "News"

    def test_direct_text_wins_over_attribute_text(self):
        assert text_payload({"#text": "Direct", "@text": "Attribute"}) == "Direct"

    def test_empty_direct_text_falls_through_to_attribute(self):
        assert text_payload({"#text": "", "@text": "Attribute"}) == "Attribute"

    def test_underscore_text_key(self):
        assert text_payload({"_": "News"}, "no title") == "News"

    def test_nested_attribute_text(self):
        assert text_payload({"$": {"text": "News"}}, "no title") == "News"

    def test_underscore_text_wins_over_nested_attribute_text(self):
        assert text_payload({"_": "Direct", "$": {"text": "Attribute", "lang": "it"}}) == "Direct"

    def test_mapping_without_text_uses_default(self):
        assert text_payload({"@lang": "it"}, "fallback") == "fallback"

    def test_empty_string_uses_default(self):
        assert text_payload("", "fallback") == "fallback"

    def test_missing_value_uses_default(self):
        assert text_payload(None, "fallback") == "fallback"
        assert text_payload(None) == ""

    def test_repeated_child_uses_first_item(self):
        assert text_payload([{"#text": "First"}, "Second"]) == "First"

    def test_empty_list_uses_default(self):
        assert text_payload([], "fallback") == "fallback"

    def test_non_text_value_uses_default(self):
        assert text_payload(42, "fallback") == "fallback"
        assert text_payload({"#text": 42}, "fallback") == "fallback"

    def test_first_value(self):
        assert first_value(["a", "b"]) == "a"
        assert first_value([]) is None
        assert first_value("a") == "a"


class TestProgrammeChannel:
    """Test cases for programme_channel."""

    def test_returns_channel_as_is(self):
        assert programme_channel({"@channel": "Rai1.it"}) == "Rai1.it"

    @pytest.mark.parametrize("node", [{}, {"@channel": ""}, {"@channel": None}, {"channel": "rai1"}, "rai1", None])
    def test_missing_channel_raises(self, node):
        with pytest.raises(MissingChannelError):
            programme_channel(node)


class TestBuildProgramRecord:
    """Test cases for build_program_record."""

    def test_builds_record_with_all_fields(self):
        node = programme_node(
            "rai1", START, STOP,
            title={"#text": "News", "@lang": "it"},
            desc="Morning news",
            category=[{"@lang": "it", "#text": "News"}, {"@lang": "en", "#text": "Current affairs"}],
        )

        record = build_program_record(node)

        assert record == ProgramRecord(
            start=datetime(2025, 1, 17, 6, 30, tzinfo=timezone.utc),
            stop=datetime(2025, 1, 17, 7, 0, tzinfo=timezone.utc),
            title="News",
            description="Morning news",
            category="News",
        )

    def test_missing_optional_text_uses_fallbacks(self):
        record = build_program_record(programme_node("rai1", START, STOP))

        assert isinstance(record, ProgramRecord)
        assert record.title == DEFAULT_TITLE
        assert record.description == ""
        assert record.category == ""

    def test_attribute_style_title(self):
        record = build_program_record(programme_node("rai1", START, STOP, title={"@text": "Quiz"}))

        assert record.title == "Quiz"

    def test_rejects_invalid_start(self):
        result = build_program_record(programme_node("rai1", "bad", STOP))

        assert result == ProgramRejection(RejectReason.INVALID_START, "bad", STOP)

    def test_rejects_invalid_stop(self):
        result = build_program_record(programme_node("rai1", START, "20251340000000 +0000"))

        assert isinstance(result, ProgramRejection)
        assert result.reason is RejectReason.INVALID_STOP

    def test_rejects_missing_start_and_stop(self):
        result = build_program_record(programme_node("rai1", None, None))

        assert isinstance(result, ProgramRejection)
        assert result.reason is RejectReason.INVALID_START_AND_STOP
        assert result.raw_start is None
        assert result.raw_stop is None

    def test_stop_before_start_is_kept(self):
        record = build_program_record(programme_node("rai1", STOP, START, title="Inverted"))

        assert isinstance(record, ProgramRecord)
        assert record.start > record.stop

    def test_record_is_immutable(self):
        record = build_program_record(programme_node("rai1", START, STOP, title="News"))

        with pytest.raises(FrozenInstanceError):
            record.title = "Changed"
