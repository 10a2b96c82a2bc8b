"""
Program Record Builder

Maps a generic programme node (as produced by the XMLTV tree parser) into a
canonical ProgramRecord, or a ProgramRejection when its dates are unusable.

Node convention: attributes live under '@name' keys and element text under
'#text'. Trees in the xml2js shape (text under '_', attributes under '$')
are accepted as well. A child element without attributes or children is a plain string,
and a repeated child is a list whose first item is used.
"""
from collections.abc import Mapping
from typing import Any

from epg_guide.services.guide_types import ProgramRecord, ProgramRejection, RejectReason
from epg_guide.utils.date_parsing import parse_epg_date


DIRECT_TEXT_KEYS = ("#text", "_")
ATTRIBUTE_TEXT_KEY = "@text"
ATTRIBUTE_BAG_KEY = "$"

DEFAULT_TITLE = "no title"


class MissingChannelError(KeyError):
    """Raised when a programme node has no channel attribute"""
    pass


def first_value(value: Any) -> Any:
    """Return the first item of a repeated child, or the value itself."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


def text_payload(value: Any, default: str = "") -> str:
    """
    Resolve the text of a child node using a fixed precedence

    1. direct text key ('#text', or '_')
    2. attribute-style text key ('@text', or 'text' inside '$')
    3. the raw value when it is a plain string
    4. default

    Empty strings fall through to the next step.
    """
    value = first_value(value)

    if isinstance(value, Mapping):
        candidates = [value.get(key) for key in DIRECT_TEXT_KEYS]
        candidates.append(value.get(ATTRIBUTE_TEXT_KEY))
        attributes = value.get(ATTRIBUTE_BAG_KEY)
        if isinstance(attributes, Mapping):
            candidates.append(attributes.get("text"))
        for candidate in candidates:
            if isinstance(candidate, str) and candidate:
                return candidate
        return default

    if isinstance(value, str) and value:
        return value

    return default


def programme_channel(node: Mapping[str, Any]) -> str:
    """
    Extract the channel attribute of a programme node as-is

    Raises:
        MissingChannelError: If the node has no usable channel attribute
    """
    channel_id = node.get("@channel") if isinstance(node, Mapping) else None
    if not isinstance(channel_id, str) or not channel_id:
        raise MissingChannelError("programme node has no channel attribute")
    return channel_id


def build_program_record(node: Mapping[str, Any]) -> ProgramRecord | ProgramRejection:
    """
    Build a ProgramRecord from a generic programme node

    Args:
        node: Generic programme node

    Returns:
        ProgramRecord when both start and stop normalize, otherwise a
        ProgramRejection naming which date failed
    """
    raw_start = node.get("@start")
    raw_stop = node.get("@stop")
    start = parse_epg_date(raw_start)
    stop = parse_epg_date(raw_stop)

    if start is None and stop is None:
        return ProgramRejection(RejectReason.INVALID_START_AND_STOP, raw_start, raw_stop)
    if start is None:
        return ProgramRejection(RejectReason.INVALID_START, raw_start, raw_stop)
    if stop is None:
        return ProgramRejection(RejectReason.INVALID_STOP, raw_start, raw_stop)

    return ProgramRecord(
        start=start,
        stop=stop,
        title=text_payload(node.get("title"), DEFAULT_TITLE),
        description=text_payload(node.get("desc")),
        category=text_payload(node.get("category")),
    )
