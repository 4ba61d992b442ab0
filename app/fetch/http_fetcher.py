import logging
from typing import Dict, List, Optional
from urllib.parse import urlsplit

import httpx

from app.core.config import OutboundHeaders, settings
from app.core.errors import NetworkError, TooManyRedirects, UpstreamProtocolError
from .base import DEFAULT_MAX_HOPS, BaseFetcher, FetchRequest, FetchResult


def build_client(timeout_sec: Optional[float] = None,
                 connect_timeout_sec: Optional[float] = None) -> httpx.AsyncClient:
    """Shared client: one connection pool for all concurrent proxy requests."""
    timeout = httpx.Timeout(
        timeout_sec if timeout_sec is not None else settings.REQUEST_TIMEOUT,
        connect=connect_timeout_sec if connect_timeout_sec is not None else settings.CONNECT_TIMEOUT,
    )
    return httpx.AsyncClient(timeout=timeout, follow_redirects=False)


def _multi_headers(headers: httpx.Headers) -> Dict[str, List[str]]:
    out: Dict[str, List[str]] = {}
    for key, value in headers.multi_items():
        out.setdefault(key.lower(), []).append(value)
    return out


def _is_absolute(location: str) -> bool:
    try:
        parts = urlsplit(location)
    except ValueError:
        return False
    return parts.scheme in ("http", "https") and bool(parts.netloc)


class HttpFetcher(BaseFetcher):
    """
    GETs a URL and chases 3xx responses itself, at most ``max_hops`` times.

    Redirect targets are taken from ``Location`` as-is; relative targets are
    rejected instead of being resolved against the previous URL.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None,
                 headers: Optional[OutboundHeaders] = None,
                 logger: Optional[logging.Logger] = None) -> None:
        self._client = client
        self._owns_client = client is None
        self._headers = (headers or settings.outbound_headers()).as_dict()
        self._log = logger or logging.getLogger(__name__)

    async def start(self) -> None:
        if self._client is None:
            self._client = build_client()
            self._owns_client = True

    async def stop(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, max_hops: int = DEFAULT_MAX_HOPS) -> FetchResult:
        if self._client is None:
            await self.start()

        request = FetchRequest(target_url=url, remaining_hops=max_hops)
        while True:
            response = await self._get(request)
            status = response.status_code

            if not 300 <= status < 400:
                return FetchResult(
                    url=request.target_url,
                    status_code=status,
                    headers=_multi_headers(response.headers),
                    body=response.content,
                )

            location = response.headers.get("location")
            if not location:
                raise UpstreamProtocolError(
                    f"Redirect {status} from {request.target_url} has no Location header",
                    url=request.target_url, hops=request.remaining_hops, status_code=status,
                )
            if request.remaining_hops <= 0:
                raise TooManyRedirects(
                    f"Too many redirects: hop budget of {max_hops} exhausted at {request.target_url}",
                    url=request.target_url, hops=max_hops, status_code=status,
                )
            if not _is_absolute(location):
                raise UpstreamProtocolError(
                    f"Relative redirect to {location!r} from {request.target_url} is not followed",
                    url=request.target_url, hops=request.remaining_hops, status_code=status,
                )

            self._log.info("Redirect %s: %s -> %s (%d hops left)",
                           status, request.target_url, location, request.remaining_hops - 1)
            request = request.next_hop(location)

    async def _get(self, request: FetchRequest) -> httpx.Response:
        url = request.target_url
        try:
            return await self._client.get(url, headers=self._headers)
        except httpx.TimeoutException as e:
            raise NetworkError(f"Timeout while fetching {url}", url=url, hops=request.remaining_hops) from e
        except (httpx.RemoteProtocolError, httpx.DecodingError, httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            raise UpstreamProtocolError(
                f"Malformed response or URL for {url}: {e}", url=url, hops=request.remaining_hops
            ) from e
        except httpx.TransportError as e:
            raise NetworkError(f"Failed to fetch {url}: {e}", url=url, hops=request.remaining_hops) from e
