"""
Minimal document-tree interface used by the rewriter.

The rewriter only needs to find elements, read and write attributes,
guarantee a single <meta charset> and serialise the tree. Anything that
implements ``Document`` and ``Node`` can stand in for BeautifulSoup.
"""

from typing import Callable, List, Optional, Protocol

from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from app.core.errors import ParseError


class Node(Protocol):
    name: str

    def has(self, attr: str) -> bool: ...

    def get(self, attr: str) -> Optional[str]: ...

    def set(self, attr: str, value: str) -> None: ...


class Document(Protocol):
    base_uri: str

    def select(self, selector: str) -> List[Node]: ...

    def ensure_meta_charset(self, charset: str) -> None: ...

    def serialize(self, charset: str) -> bytes: ...


DocumentParser = Callable[[str, str], Document]


class SoupNode:
    __slots__ = ("tag",)

    def __init__(self, tag: Tag) -> None:
        self.tag = tag

    @property
    def name(self) -> str:
        return self.tag.name

    def has(self, attr: str) -> bool:
        return self.tag.has_attr(attr)

    def get(self, attr: str) -> Optional[str]:
        value = self.tag.get(attr)
        # multi-valued attributes (rel, class) come back as lists
        if isinstance(value, list):
            return " ".join(value)
        return value

    def set(self, attr: str, value: str) -> None:
        self.tag[attr] = value


class SoupDocument:
    def __init__(self, soup: BeautifulSoup, base_uri: str) -> None:
        self.soup = soup
        self.base_uri = base_uri

    def select(self, selector: str) -> List[SoupNode]:
        return [SoupNode(tag) for tag in self.soup.select(selector)]

    def _head(self) -> Tag:
        head = self.soup.find("head")
        if head is not None:
            return head
        head = self.soup.new_tag("head")
        html = self.soup.find("html")
        if html is not None:
            html.insert(0, head)
        else:
            self.soup.insert(0, head)
        return head

    def ensure_meta_charset(self, charset: str) -> None:
        metas = self.soup.find_all("meta", attrs={"charset": True})
        if metas:
            first = metas[0]
            first["charset"] = charset
            for extra in metas[1:]:
                extra.decompose()
            return
        meta = self.soup.new_tag("meta")
        meta["charset"] = charset
        self._head().insert(0, meta)

    def serialize(self, charset: str) -> bytes:
        # also rewrites a parsed http-equiv content-type to name the same charset
        return self.soup.encode(charset, errors="xmlcharrefreplace")


def parse_html(text: str, base_uri: str) -> SoupDocument:
    try:
        soup = BeautifulSoup(text, "html.parser")
    except ParserRejectedMarkup as e:
        raise ParseError(f"Unable to parse document from {base_uri}: {e}") from e
    return SoupDocument(soup, base_uri)
