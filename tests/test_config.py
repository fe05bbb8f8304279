"""Test environment configuration and structured logging."""
import json
import logging

from core.logging_config import JsonFormatter, RequestContextFilter, request_context
from patterns.domain_config import StorefrontConfig


def test_defaults():
    config = StorefrontConfig.default()
    assert config.pricing.currency == "AED"
    assert config.pricing.currency_minor_unit == 2
    assert config.catalog.per_page == 100


def test_from_env(monkeypatch):
    monkeypatch.setenv("STOREFRONT_CATALOG_URL", "https://shop.example.com")
    monkeypatch.setenv("STOREFRONT_CATALOG_TIMEOUT", "2.5")
    monkeypatch.setenv("STOREFRONT_CART_API_KEY", "secret")
    monkeypatch.setenv("STOREFRONT_CURRENCY", "usd")

    config = StorefrontConfig.from_env()
    assert config.catalog.base_url == "https://shop.example.com"
    assert config.cart.base_url == "https://shop.example.com"
    assert config.catalog.timeout_seconds == 2.5
    assert config.cart.api_key == "secret"
    assert config.pricing.currency == "USD"


def test_cart_url_overrides_catalog_url(monkeypatch):
    monkeypatch.setenv("STOREFRONT_CATALOG_URL", "https://shop.example.com")
    monkeypatch.setenv("STOREFRONT_CART_URL", "https://cart.example.com")
    config = StorefrontConfig.from_env()
    assert config.cart.base_url == "https://cart.example.com"


def test_json_log_lines_carry_request_context():
    record = logging.LogRecord(
        "verticals.bundles.pricing", logging.INFO, __file__, 1,
        "Priced bundle selection", None, None,
    )
    record.total = 8200

    token = request_context.set({"request_id": "req-1", "path": "/api/bundles"})
    try:
        RequestContextFilter().filter(record)
    finally:
        request_context.reset(token)

    payload = json.loads(JsonFormatter().format(record))
    assert payload["message"] == "Priced bundle selection"
    assert payload["request_id"] == "req-1"
    assert payload["path"] == "/api/bundles"
    assert payload["total"] == 8200
