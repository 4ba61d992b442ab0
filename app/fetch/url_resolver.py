"""
URL resolution helpers used when relinking a fetched document.

``resolve`` implements a simple prefix-join: it never collapses ``..``
segments and never merges query strings. ``absolute_url`` is the standard
RFC 3986 resolution used for sub-resources.
"""

import logging
from typing import Optional
from urllib.parse import quote, urljoin, urlsplit, urlunsplit

from app.core.errors import URIResolutionError

PROXY_ENDPOINT = "/proxy"

_PATH_SAFE = "/%:@!$&'()*+,;="
_QUERY_SAFE = "/?%:@!$&'()*+,;="


def _split_base(base_uri: str):
    try:
        base = urlsplit(base_uri)
    except ValueError as e:
        raise URIResolutionError(base_uri, None, str(e)) from e
    if not base.scheme or not base.netloc:
        raise URIResolutionError(base_uri, None, "base URI needs a scheme and an authority")
    return base


def site_root(base_uri: str) -> str:
    """Return ``scheme://authority`` of ``base_uri``."""
    base = _split_base(base_uri)
    return f"{base.scheme}://{base.netloc}"


def resolve(base_uri: str, path: Optional[str]) -> str:
    """
    Resolve ``path`` against ``base_uri``.

    Rules, first match wins:
    1. empty, ``"/"`` or None -> site root of the base
    2. ``http://`` / ``https://`` -> unchanged
    3. ``//host/...`` -> base scheme prepended
    4. ``./`` prefix is dropped
    5. anything else is joined onto the directory of the base path

    Raises URIResolutionError when the base URI is malformed.
    """
    base = _split_base(base_uri)

    if path is None or path == "" or path == "/":
        return f"{base.scheme}://{base.netloc}"
    if path.startswith(("http://", "https://")):
        return path
    if path.startswith("//"):
        return f"{base.scheme}:{path}"
    if path.startswith("./"):
        path = path[2:]

    base_dir = base.path
    if not base_dir or "/" not in base_dir:
        base_dir = "/"
    else:
        base_dir = base_dir[: base_dir.rindex("/") + 1]

    # only query and fragment are split off; the rest is joined verbatim
    rest, _, fragment = path.partition("#")
    rel_path, _, query = rest.partition("?")

    joined = base_dir + rel_path.lstrip("/")
    return urlunsplit((
        base.scheme,
        base.netloc,
        quote(joined, safe=_PATH_SAFE),
        quote(query, safe=_QUERY_SAFE),
        quote(fragment, safe=_QUERY_SAFE),
    ))


def resolve_or_keep(base_uri: str, path: Optional[str],
                    logger: Optional[logging.Logger] = None) -> str:
    """Like ``resolve`` but falls back to the untouched path on failure."""
    try:
        return resolve(base_uri, path)
    except URIResolutionError as e:
        (logger or logging.getLogger(__name__)).warning(
            "Error resolving URL: base=%s, path=%s (%s)", base_uri, path, e
        )
        return path or ""


def absolute_url(base_uri: str, value: str) -> str:
    return urljoin(base_uri, value.strip())


def proxy_url(absolute: str, endpoint: str = PROXY_ENDPOINT) -> str:
    """Route ``absolute`` back through the proxy endpoint."""
    return f"{endpoint}?url={quote(absolute, safe='')}"
