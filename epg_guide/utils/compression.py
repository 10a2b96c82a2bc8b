"""
Payload decompression

EPG feeds are served either gzip-compressed or as plain XML.
"""
import codecs
import gzip
import logging
import re
import zlib


logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

# encoding="..." in the XML declaration
XML_DECLARED_ENCODING = re.compile(
    rb"""^\s*<\?xml[^>]*?\sencoding\s*=\s*["']([A-Za-z][A-Za-z0-9._-]*)["']""",
)


def declared_encoding(document: bytes) -> str | None:
    """Return the codec named by the XML declaration, if Python knows it."""
    match = XML_DECLARED_ENCODING.match(document[:512])
    if not match:
        return None
    name = match.group(1).decode("ascii")
    try:
        return codecs.lookup(name).name
    except LookupError:
        logger.warning("Unknown XML encoding %r, decoding as %s", name, DEFAULT_ENCODING)
        return None


def decompress_or_passthrough(data: bytes, encoding: str | None = None) -> str:
    """
    Decode a downloaded EPG payload, gunzipping it when possible

    Any decompression failure falls back to decoding the raw bytes. This also
    hides corruption in payloads that really were gzip.

    Args:
        data: Raw response body
        encoding: Text encoding of the XML document. Defaults to the encoding
            named in the XML declaration, or UTF-8 when there is none.

    Returns:
        Decoded XML text
    """
    try:
        document = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        logger.info("Payload is not gzip-compressed (%s), processing as plain text", exc)
        document = data
    else:
        logger.info(
            "Decompressed gzip payload: %.2f MB -> %.2f MB",
            len(data) / (1024 * 1024),
            len(document) / (1024 * 1024),
        )

    codec = encoding or declared_encoding(document) or DEFAULT_ENCODING
    return document.decode(codec, errors="replace")
