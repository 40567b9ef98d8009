"""Pytest configuration and shared fixtures."""

import pytest

from pricewatch.db import Store


class FakeDispatcher:
    """Records alerts instead of posting them."""

    def __init__(self, fail_with=None):
        self.price_drops = []
        self.restocks = []
        self.fail_with = fail_with

    def send_price_drop(self, **kwargs):
        if self.fail_with:
            raise self.fail_with
        self.price_drops.append(kwargs)
        return True

    def send_restock(self, **kwargs):
        if self.fail_with:
            raise self.fail_with
        self.restocks.append(kwargs)
        return True


class FakeFetcher:
    """Serves canned pages by URL; raises for URLs mapped to an exception."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    def __call__(self, url):
        self.calls.append(url)
        page = self.pages[url]
        if isinstance(page, Exception):
            raise page
        return page


@pytest.fixture
def store(tmp_path):
    """A fresh SQLite store in a temp directory."""
    s = Store(str(tmp_path / "watch.db"), "products", "users")
    s.init_db()
    return s


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def fetcher():
    return FakeFetcher()


def get_record(store, product_url):
    """Read a single product record straight from the store."""
    start_key = None
    while True:
        page = store.scan_products(start_key=start_key, limit=50)
        for item in page.items:
            if item["product_url"] == product_url:
                return item
        if page.last_key is None:
            return None
        start_key = page.last_key
