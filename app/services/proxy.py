import logging
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import unquote_plus, urlsplit

from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.errors import DecodeError, FetchError, ParseError
from app.fetch.base import BaseFetcher, FetchResult
from app.fetch.charset import detect_charset
from app.rewrite.rewriter import HtmlRewriter, RewriteContext

HTML_TYPES = ("text/html", "application/xhtml+xml")
# statuses that must not carry a body
BODYLESS_STATUSES = (204, 205)
ERROR_CONTENT_TYPE = "text/plain; charset=utf-8"
PASSTHROUGH_CONTENT_TYPE = "application/octet-stream"

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")

@dataclass
class ProxyResponse:
    status_code: int
    content_type: str
    body: bytes

def raw_query_value(query: Optional[str], name: str) -> Optional[str]:
    """First value of ``name`` in a query string, still percent-encoded."""
    if not query:
        return None
    prefix = f"{name}="
    for pair in query.split("&"):
        if pair.startswith(prefix):
            return pair[len(prefix):]
    return None

def decode_url_param(raw: Optional[str]) -> str:
    """
    Percent-decode the inbound ``url`` parameter and check it is a web URL.
    ``raw`` must be the value as it appeared in the query string; it is
    decoded exactly once, with ``+`` read as a space.
    Raises DecodeError for malformed escapes, invalid UTF-8 or non-http(s) URLs.
    """
    if raw is None or not raw.strip():
        raise DecodeError("URL is required")
    if _BAD_ESCAPE.search(raw):
        raise DecodeError(f"Malformed percent-encoding in {raw!r}")
    try:
        url = unquote_plus(raw, errors="strict").strip()
    except UnicodeDecodeError as e:
        raise DecodeError(f"Percent-encoded bytes are not valid UTF-8: {e}") from e

    try:
        parts = urlsplit(url)
    except ValueError as e:
        raise DecodeError(f"Malformed URL {url!r}: {e}") from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise DecodeError("URL must start with http:// or https://")
    return url

def is_html(content_type: Optional[str]) -> bool:
    """Missing Content-Type counts as HTML."""
    if not content_type:
        return True
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime in HTML_TYPES

def error_response(message: str) -> ProxyResponse:
    return ProxyResponse(
        status_code=500,
        content_type=ERROR_CONTENT_TYPE,
        body=f"Error processing request: {message}".encode("utf-8"),
    )

class ProxyService:
    """Fetch, detect charset, rewrite: the whole /proxy pipeline."""

    def __init__(self, fetcher: BaseFetcher, rewriter: Optional[HtmlRewriter] = None,
                 max_hops: Optional[int] = None, logger: Optional[logging.Logger] = None):
        self._fetcher = fetcher
        self._log = logger or logging.getLogger(__name__)
        self._rewriter = rewriter or HtmlRewriter(logger=self._log)
        self._max_hops = settings.MAX_REDIRECTS if max_hops is None else max_hops

    async def handle(self, raw_url_param: Optional[str]) -> ProxyResponse:
        url = decode_url_param(raw_url_param)
        self._log.info("Decoding URL: %s", url)

        try:
            result = await self._fetcher.fetch(url, self._max_hops)
            if (not result.is_success or result.status_code in BODYLESS_STATUSES
                    or not is_html(result.content_type)):
                return self._passthrough(result)
            return await self._rewrite(result)
        except FetchError as e:
            self._log.error(
                "Error in proxy request: url=%s requested=%s hops=%s status=%s: %s",
                e.url, url, e.hops, e.status_code, e,
            )
            return error_response(str(e))
        except ParseError as e:
            self._log.error("Error in proxy request: url=%s: %s", url, e)
            return error_response(str(e))

    def _passthrough(self, result: FetchResult) -> ProxyResponse:
        self._log.info("Passing through %s response from %s", result.status_code, result.url)
        return ProxyResponse(
            status_code=result.status_code,
            content_type=result.content_type or PASSTHROUGH_CONTENT_TYPE,
            body=result.body,
        )

    async def _rewrite(self, result: FetchResult) -> ProxyResponse:
        charset = detect_charset(result.headers, result.body, self._log)
        self._log.info("Detected charset: %s", charset)

        ctx = RewriteContext(base_uri=result.url, charset=charset)
        self._log.info("base uri: %s", ctx.base_uri)
        # parsing is CPU bound; keep it off the event loop
        body = await run_in_threadpool(self._rewriter.rewrite, result.body, ctx)
        return ProxyResponse(
            status_code=result.status_code,
            content_type=f"text/html; charset={charset}",
            body=body,
        )
