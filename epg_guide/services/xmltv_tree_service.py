"""
XMLTV Tree Service

Parses XMLTV markup with lxml into a generic tree of plain dicts, lists and
strings. Only the parts of the document the guide consumes are converted:

    {"tv": {"@...": ..., "programme": [node, node, ...]}}

A node keeps its attributes under '@name' keys and its text under '#text'.
Child elements without attributes or children collapse to their text, and
repeated children become lists.
"""
import asyncio
import logging
from typing import Any

from lxml import etree  # type: ignore

logger = logging.getLogger(__name__)


class XMLTVParseError(ValueError):
    """Raised when the EPG document is not well-formed XMLTV"""
    pass


def _local_name(name: str) -> str:
    return etree.QName(name).localname


def _element_to_node(element: etree._Element) -> Any:
    """Convert an element (and its subtree) into the generic node shape"""
    node: dict[str, Any] = {
        f"@{_local_name(key)}": value for key, value in element.attrib.items()
    }

    for child in element:
        # Skip comments and processing instructions
        if not isinstance(child.tag, str):
            continue
        tag = _local_name(child.tag)
        value = _element_to_node(child)
        if tag not in node:
            node[tag] = value
        elif isinstance(node[tag], list):
            node[tag].append(value)
        else:
            node[tag] = [node[tag], value]

    text = (element.text or "").strip()
    if not node:
        return text
    if text:
        node["#text"] = text
    return node


def parse_xmltv_tree(text: str) -> dict[str, Any]:
    """
    Parse XMLTV text into a generic tree exposing tv.programme

    Args:
        text: Decoded XML document

    Returns:
        Generic tree; an empty dict when the root element is not <tv>

    Raises:
        XMLTVParseError: If the markup is malformed
    """
    parser = etree.XMLParser(
        encoding="utf-8",
        huge_tree=True,
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
    )

    if not text or not text.strip():
        raise XMLTVParseError("Malformed EPG document: document is empty")

    try:
        logger.debug("  Loading XML document (%s characters)...", len(text))
        root = etree.fromstring(text.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError as e:
        logger.error(f"  XML parsing error: {e}")
        raise XMLTVParseError(f"Malformed EPG document: {e}") from e

    if root is None:
        raise XMLTVParseError("Malformed EPG document: no root element")

    root_tag = _local_name(root.tag)
    if root_tag != "tv":
        logger.warning("Unexpected XMLTV root element <%s>, no programmes extracted", root_tag)
        return {}

    tv: dict[str, Any] = {
        f"@{_local_name(key)}": value for key, value in root.attrib.items()
    }
    programmes = [
        _element_to_node(element)
        for element in root.iterchildren("programme")
    ]
    tv["programme"] = programmes

    logger.info(f"XMLTV parsing complete: {len(programmes)} programmes")
    return {"tv": tv}


def extract_programmes(tree: dict[str, Any] | None) -> list[Any]:
    """Return the tv.programme sequence of a generic tree, or [] when absent"""
    if not isinstance(tree, dict):
        return []
    tv = tree.get("tv")
    if not isinstance(tv, dict):
        return []
    programmes = tv.get("programme")
    if programmes is None:
        return []
    if isinstance(programmes, list):
        return programmes
    return [programmes]


async def parse_xmltv_tree_async(text: str, timeout_seconds: int | None = None) -> dict[str, Any]:
    """
    Parse XMLTV text in the default thread pool with timeout protection

    Args:
        text: Decoded XML document
        timeout_seconds: Timeout in seconds for parsing (0/None disables timeout)

    Raises:
        XMLTVParseError: If markup is malformed or parsing times out
    """
    effective_timeout = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
    timeout_display = f"{effective_timeout}s" if effective_timeout else "disabled"
    logger.debug("Offloading XML parsing to thread pool executor (timeout: %s)...", timeout_display)

    loop = asyncio.get_running_loop()
    parse_task = loop.run_in_executor(None, parse_xmltv_tree, text)
    try:
        if effective_timeout:
            return await asyncio.wait_for(parse_task, timeout=effective_timeout)
        return await parse_task
    except asyncio.TimeoutError:
        logger.error("XML parsing timed out after %s", timeout_display)
        raise XMLTVParseError("XML parsing timed out - document may be too large or malformed")
