from typing import Optional


class ProxyError(Exception):
    """Base class for every failure of the fetch-and-rewrite pipeline."""


class DecodeError(ProxyError):
    """The inbound ``url`` parameter is not a usable percent-encoded URL."""


class URIResolutionError(ProxyError):
    """A link could not be resolved because the base URI is malformed."""

    def __init__(self, base_uri: str, path: Optional[str], reason: str = "malformed base URI"):
        super().__init__(f"cannot resolve {path!r} against {base_uri!r}: {reason}")
        self.base_uri = base_uri
        self.path = path


class ParseError(ProxyError):
    """The document could not be parsed at all."""


class FetchError(ProxyError):
    """Base class for outbound fetch failures."""

    def __init__(self, message: str, url: str, hops: Optional[int] = None,
                 status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.hops = hops
        self.status_code = status_code


class NetworkError(FetchError):
    """Connection, DNS or timeout failure talking to the origin."""


class TooManyRedirects(FetchError):
    """The hop budget ran out before a non-redirect response."""


class UpstreamProtocolError(FetchError):
    """The origin sent a response that cannot be followed or read."""
