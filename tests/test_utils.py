"""Tests for the HTTP helpers."""

import pytest
import requests
import responses

from pricewatch.utils import HTTPError, fetch_page, get_http_session

URL = "https://www.tokopedia.com/shop/phone-123"


@pytest.fixture
def session():
    s = get_http_session()
    yield s
    s.close()


def test_session_has_browser_headers(session):
    assert "Mozilla/5.0" in session.headers["User-Agent"]
    assert session.headers["Accept-Language"] == "en-US,en;q=0.9"


@responses.activate
def test_fetch_page_returns_body(session):
    responses.add(responses.GET, URL, body="<p>Stok: 3</p>", status=200)
    assert fetch_page(session, URL, timeout=5) == "<p>Stok: 3</p>"


@pytest.mark.parametrize("status", [403, 404, 500, 503])
@responses.activate
def test_fetch_page_raises_on_error_status(session, status):
    responses.add(responses.GET, URL, status=status)
    with pytest.raises(HTTPError):
        fetch_page(session, URL, timeout=5)
    assert len(responses.calls) == 1


@responses.activate
def test_fetch_page_wraps_network_errors(session):
    responses.add(responses.GET, URL, body=requests.exceptions.ConnectTimeout("too slow"))
    with pytest.raises(HTTPError):
        fetch_page(session, URL, timeout=5)

