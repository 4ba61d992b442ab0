import logging
import pytest
from app.fetch.charset import (
    charset_from_content_type,
    detect_charset,
    is_known_charset,
    sniff_meta_charset,
)

class TestContentTypeHeader:
    """Header charset wins over anything in the body"""

    def test_header_beats_conflicting_meta(self):
        headers = {"content-type": ["text/html; charset=ISO-8859-1"]}
        body = b'<html><head><meta charset="Shift_JIS"></head></html>'
        assert detect_charset(headers, body) == "ISO-8859-1"

    def test_plain_string_headers_case_insensitive(self):
        headers = {"Content-Type": 'text/html; charset="utf-8"'}
        assert detect_charset(headers, b"") == "utf-8"

    def test_unknown_header_charset_falls_through(self, caplog):
        headers = {"content-type": ["text/html; charset=x-made-up"]}
        body = b'<meta charset="windows-1252">'
        with caplog.at_level(logging.WARNING):
            assert detect_charset(headers, body) == "windows-1252"
        assert "x-made-up" in caplog.text

    @pytest.mark.parametrize("name", ["base64", "rot13", "hex", "idna"])
    def test_non_text_codecs_rejected(self, name, caplog):
        headers = {"content-type": [f"text/html; charset={name}"]}
        with caplog.at_level(logging.WARNING):
            assert detect_charset(headers, b"<p>x</p>") == "UTF-8"
        assert name in caplog.text

    def test_non_text_codec_in_meta_rejected(self):
        assert detect_charset({}, b'<meta charset="base64">') == "UTF-8"

    def test_text_codecs_accepted(self):
        assert is_known_charset("Shift_JIS")
        assert is_known_charset("utf-16")
        assert not is_known_charset("base64")
        assert not is_known_charset("idna")

    def test_parameter_parsing(self):
        assert charset_from_content_type("text/html; Charset = 'koi8-r' ") == "koi8-r"
        assert charset_from_content_type("text/html") is None
        assert charset_from_content_type(None) is None

class TestMetaSniffing:
    """Charset declared inside the document"""

    def test_meta_charset(self):
        body = b'<html><head><meta charset="Shift_JIS"><title>x</title></head></html>'
        assert detect_charset({}, body) == "Shift_JIS"

    def test_http_equiv_content_type(self):
        body = (b'<html><head><META HTTP-EQUIV="Content-Type" '
                b'CONTENT="text/html; charset=windows-1251"></head></html>')
        assert detect_charset({"content-type": ["text/html"]}, body) == "windows-1251"

    def test_only_first_1000_bytes_are_sniffed(self):
        body = b"<html><head>" + b" " * 1200 + b'<meta charset="Shift_JIS"></head></html>'
        assert detect_charset({}, body) == "UTF-8"

    def test_http_equiv_without_charset_ignored(self):
        assert sniff_meta_charset(b'<meta http-equiv="content-type" content="text/html">') is None

    def test_invalid_sniffed_charset_logs_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert detect_charset({}, b'<meta charset="no-such-charset">') == "UTF-8"
        assert "Invalid charset detected: no-such-charset" in caplog.text

class TestNeverFails:
    """detect_charset is total"""

    @pytest.mark.parametrize("headers,body", [
        (None, None),
        ({}, b""),
        ({"content-type": []}, b""),
        ({}, b"\xff\xfe\x00<<<\x80"),
        ({}, b'<meta charset="Shift'),
        ({"x-other": ["1"]}, b"<html><body>plain</body></html>"),
    ])
    def test_always_returns_a_charset(self, headers, body):
        result = detect_charset(headers, body)
        assert isinstance(result, str) and result
