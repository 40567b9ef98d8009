"""Helper utilities.

This module centralises common helper functions such as creating a
configured HTTP session and turning transport failures into a single
exception type.  Requests are never retried here; the next scheduled
pass is the retry.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

import requests
from requests import Response


logger = logging.getLogger(__name__)

_BROWSER_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


def get_http_session() -> requests.Session:
    """Return a new HTTP session with browser-like defaults.

    An English locale is requested so marketplaces serve a consistent
    layout.  Caller is responsible for closing the session.
    """
    session = requests.Session()
    session.headers.update(
        {
            "User-Agent": _BROWSER_UA,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }
    )
    return session


class HTTPError(Exception):
    """Raised when an HTTP request fails or returns a non-success status."""


def _raise_for_status(resp: Response) -> None:
    try:
        resp.raise_for_status()
    except requests.RequestException as e:
        raise HTTPError(str(e)) from e


def checked_request(method: Callable[..., Response]) -> Callable[..., Response]:
    """Decorator that normalises transport failures to :class:`HTTPError`.

    The decorated function must accept a `requests.Session` as its first
    argument, followed by URL and optional kwargs, and return a
    `requests.Response`.  Network errors (including timeouts) and any
    status >= 400 are raised as `HTTPError`.
    """

    @functools.wraps(method)
    def wrapper(session: requests.Session, url: str, **kwargs: Any) -> Response:
        try:
            response = method(session, url, **kwargs)
        except requests.RequestException as e:
            raise HTTPError(f"Request to {url} failed: {e}") from e
        _raise_for_status(response)
        return response

    return wrapper


@checked_request
def _get(session: requests.Session, url: str, **kwargs: Any) -> Response:
    return session.get(url, **kwargs)


def fetch_page(session: requests.Session, url: str, *, timeout: float = 20) -> str:
    """Fetch a product page and return its body text.

    Raises `HTTPError` on network failure, timeout or non-success status.
    """
    resp = _get(session, url, timeout=timeout, allow_redirects=True)
    logger.debug("Fetched %s (%d bytes)", url, len(resp.text or ""))
    return resp.text or ""


__all__ = ["get_http_session", "checked_request", "fetch_page", "HTTPError"]
