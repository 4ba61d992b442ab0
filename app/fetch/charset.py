import codecs
import logging
import re
from typing import Mapping, Optional, Sequence, Union

from bs4 import BeautifulSoup

DEFAULT_CHARSET = "UTF-8"
SNIFF_BYTES = 1000

_CHARSET_PARAM = re.compile(r"charset\s*=\s*[\"']?\s*([^\s;\"',>]+)", re.IGNORECASE)

HeaderValues = Union[str, Sequence[str]]

_log = logging.getLogger(__name__)


def _header(headers: Optional[Mapping[str, HeaderValues]], name: str) -> Optional[str]:
    if not headers:
        return None
    for key, value in headers.items():
        if key.lower() != name.lower():
            continue
        if isinstance(value, str):
            return value
        return value[0] if value else None
    return None


def is_known_charset(name: str) -> bool:
    """
    True when ``name`` is a text encoding usable both ways with the error
    handlers the rewriter relies on. Rules out bytes-to-bytes codecs such
    as base64 and codecs like idna that refuse ``errors="replace"``.
    """
    try:
        codecs.lookup(name)
        b"a".decode(name, errors="replace")
        "a".encode(name, errors="xmlcharrefreplace")
    except (LookupError, ValueError):
        return False
    return True


def charset_from_content_type(content_type: Optional[str]) -> Optional[str]:
    """Pull the ``charset`` parameter out of a Content-Type value."""
    if not content_type:
        return None
    for part in content_type.split(";")[1:]:
        key, _, value = part.partition("=")
        if key.strip().lower() == "charset":
            value = value.strip().strip("\"'").strip()
            return value or None
    return None


def sniff_meta_charset(prefix: bytes) -> Optional[str]:
    """
    Look for a charset declared by a <meta> tag in the start of a document.

    Handles both ``<meta charset="...">`` and the older
    ``<meta http-equiv="content-type" content="text/html; charset=...">``.
    """
    text = prefix[:SNIFF_BYTES].decode("utf-8", errors="replace")
    soup = BeautifulSoup(text, "html.parser")
    for meta in soup.find_all("meta"):
        if meta.has_attr("charset"):
            value = meta["charset"].strip()
            return value or None
        if (meta.get("http-equiv") or "").strip().lower() == "content-type":
            match = _CHARSET_PARAM.search(meta.get("content") or "")
            if match:
                return match.group(1)
    return None


def detect_charset(headers: Optional[Mapping[str, HeaderValues]], body: Optional[bytes],
                   logger: Optional[logging.Logger] = None) -> str:
    """
    Decide which charset decodes ``body``.

    Content-Type header first, then a <meta> declaration in the first
    1000 bytes, then UTF-8. Never raises.
    """
    log = logger or _log

    declared = charset_from_content_type(_header(headers, "Content-Type"))
    if declared:
        if is_known_charset(declared):
            return declared
        log.warning("Invalid charset in Content-Type header: %s", declared)

    sniffed = None
    try:
        sniffed = sniff_meta_charset(body or b"")
    except Exception as e:
        # the parser is error tolerant; this only guards against a broken prefix
        log.warning("Charset sniffing failed: %s", e)
    if sniffed:
        if is_known_charset(sniffed):
            return sniffed
        log.warning("Invalid charset detected: %s", sniffed)

    return DEFAULT_CHARSET
