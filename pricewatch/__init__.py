"""
Price and restock watch service package.

This package contains modules for extracting price and stock from
marketplace product pages (Amazon, Tokopedia, Lazada), detecting price
drops and restocks against stored state, persisting tracked products and
alerting owners through Discord webhooks.  See DESIGN.md for details.
"""

__all__ = [
    "config",
    "db",
    "detector",
    "emailer",
    "extractors",
    "main",
    "monitor",
    "notifier",
    "registry",
    "utils",
]
