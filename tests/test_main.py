"""Tests for configuration validation and the scheduled entry point."""

import json
from unittest.mock import patch

import pytest
import responses

from pricewatch import config, main
from pricewatch.db import Store
from pricewatch.monitor import RunSummary
from conftest import get_record

PAGE_URL = "https://www.amazon.com/dp/B000TEST"
PRICE_HOOK = "https://discord.test/api/webhooks/price"


@pytest.fixture
def configured(monkeypatch, tmp_path):
    monkeypatch.setattr(config, "PRODUCTS_TABLE", "products")
    monkeypatch.setattr(config, "USERS_TABLE", "users")
    monkeypatch.setattr(config, "SQLITE_DB_PATH", str(tmp_path / "watch.db"))
    monkeypatch.setattr(config, "PRICE_DROP_WEBHOOK_URL", PRICE_HOOK)
    monkeypatch.setattr(config, "RESTOCK_WEBHOOK_URL", "")
    monkeypatch.setattr(config, "EMAIL_ENABLED", False)
    monkeypatch.setattr(config, "SCAN_PAGE_SIZE", 2)
    monkeypatch.setattr(config, "CHECK_INTERVAL_MINUTES", 0)
    return config


class TestValidate:

    @pytest.mark.parametrize("products, users", [("", "users"), ("products", ""), ("", "")])
    def test_missing_tables_are_fatal(self, monkeypatch, products, users):
        monkeypatch.setattr(config, "PRODUCTS_TABLE", products)
        monkeypatch.setattr(config, "USERS_TABLE", users)
        with pytest.raises(config.ConfigError):
            config.validate()

    def test_table_names_must_be_identifiers(self, monkeypatch):
        monkeypatch.setattr(config, "PRODUCTS_TABLE", "products; --")
        monkeypatch.setattr(config, "USERS_TABLE", "users")
        with pytest.raises(config.ConfigError):
            config.validate()

    def test_valid_config(self, configured):
        config.validate()

    def test_destinations_are_optional(self, configured, monkeypatch):
        monkeypatch.setattr(config, "PRICE_DROP_WEBHOOK_URL", "")
        config.validate()


@pytest.mark.parametrize("raw, default, expected", [
    ("15", 20, 15),
    ("abc", 20, 20),
    (None, 20, 20),
])
def test_parse_int(raw, default, expected):
    assert config._parse_int(raw, default) == expected


def test_handler_aborts_before_processing_on_bad_config(monkeypatch):
    monkeypatch.setattr(config, "PRODUCTS_TABLE", "")
    with patch("pricewatch.main.Store") as store_cls:
        with pytest.raises(config.ConfigError):
            main.handler()
    store_cls.assert_not_called()


@responses.activate
def test_handler_runs_a_full_pass(configured):
    store = Store(config.SQLITE_DB_PATH, "products", "users")
    store.init_db()
    store.track_product(PAGE_URL, "u1")
    store.update_product(PAGE_URL, price_field="last_price", price=600000, in_stock=True,
                         updated_at="2000-01-01T00:00:00.000000+00:00")
    store.track_product("https://example.com/unknown", "u1")
    store.upsert_user("u1", "a@example.com")

    responses.add(responses.GET, PAGE_URL,
                  body='{"desktop_buybox_group_1":[{"displayPrice":"IDR 501,282.85"}]}', status=200)
    responses.add(responses.POST, PRICE_HOOK, status=204)

    summary = main.handler()

    assert summary == RunSummary(processed=2, updated=1, skipped=1, failed=0)
    page_request = responses.calls[0].request
    assert page_request.headers["Accept-Language"].startswith("en-US")
    payload = json.loads(responses.calls[1].request.body)
    assert payload["content"] == "Price Drop Alert (Amazon)"
    assert "email: a@example.com" in payload["embeds"][0]["description"]

    record = get_record(store, PAGE_URL)
    assert record["last_price"] == 501282.85
    assert record["in_stock"] is True
    assert record["updated_at"] > "2000-01-01T00:00:00.000000+00:00"


@responses.activate
def test_handler_counts_fetch_failures(configured):
    store = Store(config.SQLITE_DB_PATH, "products", "users")
    store.init_db()
    store.track_product(PAGE_URL, "u1")
    responses.add(responses.GET, PAGE_URL, status=503)

    summary = main.handler()

    assert summary == RunSummary(processed=1, updated=0, skipped=0, failed=1)
    assert get_record(store, PAGE_URL)["updated_at"] is None


def test_main_runs_once_without_interval(configured):
    with patch("pricewatch.main.handler") as handler, patch("pricewatch.main.setup_logging"):
        main.main()
    handler.assert_called_once_with()
