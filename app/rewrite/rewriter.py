import logging
from dataclasses import dataclass
from typing import Optional

from app.fetch.url_resolver import absolute_url, proxy_url, resolve_or_keep
from .dom import Document, DocumentParser, parse_html


@dataclass(frozen=True)
class RewriteContext:
    base_uri: str  # final URL after redirects
    charset: str


class HtmlRewriter:
    """
    Relinks a fetched HTML document.

    Anchors and scripts are routed back through the proxy; images and
    stylesheets are made absolute and load straight from the origin.
    Inline styles, meta refresh targets and inline scripts are left alone.
    """

    def __init__(self, parser: DocumentParser = parse_html, endpoint: str = "/proxy",
                 logger: Optional[logging.Logger] = None) -> None:
        self._parse = parser
        self._endpoint = endpoint
        self._log = logger or logging.getLogger(__name__)

    def rewrite(self, body: bytes, ctx: RewriteContext) -> bytes:
        text = body.decode(ctx.charset, errors="replace")
        doc = self._parse(text, ctx.base_uri)

        doc.ensure_meta_charset(ctx.charset)
        self._rewrite_anchors(doc)
        self._rewrite_images(doc)
        self._rewrite_stylesheets(doc)
        self._rewrite_scripts(doc)

        return doc.serialize(ctx.charset)

    def _absolute(self, doc: Document, value: str) -> str:
        try:
            return absolute_url(doc.base_uri, value)
        except ValueError as e:
            self._log.warning("Error resolving URL: base=%s, path=%s (%s)", doc.base_uri, value, e)
            return value

    def _rewrite_anchors(self, doc: Document) -> None:
        for link in doc.select("a[href]"):
            href = link.get("href")
            target = resolve_or_keep(doc.base_uri, href, self._log)
            new_href = proxy_url(target, self._endpoint)
            self._log.debug("path: %s -> %s", href, new_href)
            link.set("href", new_href)

    def _rewrite_images(self, doc: Document) -> None:
        for img in doc.select("img[src]"):
            img.set("src", self._absolute(doc, img.get("src")))
        for img in doc.select("img[srcset]"):
            img.set("srcset", self._rewrite_srcset(doc, img.get("srcset")))

    def _rewrite_srcset(self, doc: Document, srcset: str) -> str:
        candidates = []
        for candidate in srcset.split(","):
            candidate = candidate.strip()
            if not candidate:
                continue
            parts = candidate.split(None, 1)
            url = self._absolute(doc, parts[0])
            descriptor = parts[1].strip() if len(parts) > 1 else ""
            candidates.append(f"{url} {descriptor}" if descriptor else url)
        return ", ".join(candidates)

    def _rewrite_stylesheets(self, doc: Document) -> None:
        for link in doc.select("link[href]"):
            rel = (link.get("rel") or "").lower().split()
            if "stylesheet" in rel:
                link.set("href", self._absolute(doc, link.get("href")))

    def _rewrite_scripts(self, doc: Document) -> None:
        # scripts go through the proxy too, unlike images and stylesheets
        for script in doc.select("script[src]"):
            target = self._absolute(doc, script.get("src"))
            script.set("src", proxy_url(target, self._endpoint))
