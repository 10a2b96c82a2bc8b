"""
Tests for gzip-or-plain payload decoding.
"""
import gzip

import pytest

from epg_guide.utils.compression import declared_encoding, decompress_or_passthrough

from conftest import SAMPLE_XMLTV


class TestDecompressOrPassthrough:
    """Test cases for decompress_or_passthrough."""

    def test_gzip_payload_is_decompressed(self):
        payload = gzip.compress(SAMPLE_XMLTV.encode("utf-8"))

        assert decompress_or_passthrough(payload) == SAMPLE_XMLTV

    def test_plain_payload_is_passed_through(self):
        assert decompress_or_passthrough(SAMPLE_XMLTV.encode("utf-8")) == SAMPLE_XMLTV

    def test_non_ascii_text_survives(self):
        text = "<tv><programme><title>Caffè</title></programme></tv>"

        assert decompress_or_passthrough(gzip.compress(text.encode("utf-8"))) == text
        assert decompress_or_passthrough(text.encode("utf-8")) == text

    def test_truncated_gzip_falls_back_to_raw_bytes(self):
        payload = gzip.compress(SAMPLE_XMLTV.encode("utf-8"))[:20]

        result = decompress_or_passthrough(payload)

        assert isinstance(result, str)
        assert result == payload.decode("utf-8", errors="replace")

    def test_empty_payload(self):
        assert decompress_or_passthrough(b"") == ""

    def test_declared_encoding_is_honoured(self):
        text = '<?xml version="1.0" encoding="ISO-8859-1"?>\n<tv><programme><title>Caffè</title></programme></tv>'
        payload = text.encode("latin-1")

        assert decompress_or_passthrough(payload) == text
        assert decompress_or_passthrough(gzip.compress(payload)) == text

    def test_explicit_encoding_overrides_declaration(self):
        text = '<?xml version="1.0" encoding="ISO-8859-1"?><tv/>'

        assert decompress_or_passthrough(text.encode("utf-8"), encoding="utf-8") == text

    def test_unknown_declared_encoding_uses_utf8(self):
        text = '<?xml version="1.0" encoding="x-made-up"?><tv><title>Caffè</title></tv>'

        assert decompress_or_passthrough(text.encode("utf-8")) == text


class TestDeclaredEncoding:
    """Test cases for declared_encoding."""

    @pytest.mark.parametrize("document, expected", [
        (b'<?xml version="1.0" encoding="ISO-8859-1"?><tv/>', "iso8859-1"),
        (b"<?xml version='1.0' encoding='UTF-8'?><tv/>", "utf-8"),
        (b'  <?xml version="1.0" encoding="windows-1252"?><tv/>', "cp1252"),
        (b'<?xml version="1.0"?><tv/>', None),
        (b"<tv/>", None),
        (b'<tv encoding="latin-1"/>', None),
    ])
    def test_reads_xml_declaration(self, document, expected):
        assert declared_encoding(document) == expected
